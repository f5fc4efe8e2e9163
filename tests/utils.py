"""Test helpers shared by several modules."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel


class FakeInvoker:
    """Model invoker returning canned responses keyed by schema name.

    A response may be an exception instance (raised) or any object (returned).
    Every call is recorded in ``calls`` as ``(prompt, schema)``.
    """

    def __init__(self, responses: dict[str, Any] | None = None) -> None:
        self.responses: dict[str, Any] = responses or {}
        self.calls: list[tuple[str, type[BaseModel]]] = []

    def invoke(self, prompt: str, schema: type[BaseModel]) -> Any:
        self.calls.append((prompt, schema))
        response = self.responses[schema.__name__]
        if isinstance(response, BaseException):
            raise response
        return response


def analysis_payload(*vulnerabilities: dict[str, Any], risk: str = "low") -> dict[str, Any]:
    return {
        "vulnerabilities": list(vulnerabilities),
        "summary": {
            "total_issues": len(vulnerabilities),
            "critical_findings": [],
            "overall_risk": risk,
        },
    }


def insight_payload(insight: str = "The codebase is in reasonable shape.") -> dict[str, Any]:
    return {
        "insight": insight,
        "risk_assessment": {"overall_risk": "low", "priority_areas": []},
    }


def write_tree(root: Path, files: dict[str, str | bytes]) -> Path:
    """Create ``files`` (relative path -> content) under ``root``."""
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
    return root
