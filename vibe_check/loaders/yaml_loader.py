from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as SchemaValidationError

from vibe_check.errors import ReportExportError
from vibe_check.models.report import VulnerabilityReport

logger = logging.getLogger(__name__)


class _LiteralString(str):
    """Marker type to force YAML literal block style (|) for multi-line strings."""


def _literal_str_representer(dumper: yaml.SafeDumper, data: _LiteralString):  # type: ignore[name-defined]
    return dumper.represent_scalar("tag:yaml.org,2002:str", str(data), style="|")


yaml.SafeDumper.add_representer(_LiteralString, _literal_str_representer)  # type: ignore[arg-type]


def _literal_if_multiline(value: str) -> str:
    if "\n" in value or "\r" in value:
        return _LiteralString(value)
    return value


class ReportYamlLoader:
    """Persist a VulnerabilityReport as YAML.

    The document mirrors the JSON loader's shape. Multi-line descriptions,
    recommendations and insights are emitted as literal blocks (|).
    """

    def __init__(self, output_path: str | Path, indent: int = 2) -> None:
        self.output_path: Path = Path(output_path)
        self.indent: int = indent

    def _to_serializable(self, report: VulnerabilityReport) -> dict[str, Any]:
        payload = report.model_dump(mode="json")
        for row in payload["vulnerabilities"]:
            row["description"] = _literal_if_multiline(row["description"])
            row["recommendation"] = _literal_if_multiline(row["recommendation"])
        payload["insights"] = [_literal_if_multiline(text) for text in payload["insights"]]
        return payload

    def load(self, report: VulnerabilityReport) -> None:
        """Write the report to the configured YAML file."""
        if self.output_path.parent and not self.output_path.parent.exists():
            self.output_path.parent.mkdir(parents=True, exist_ok=True)

        payload = self._to_serializable(report)

        try:
            with self.output_path.open("w", encoding="utf-8") as f:
                yaml.safe_dump(
                    payload,
                    f,
                    allow_unicode=True,
                    sort_keys=False,
                    default_flow_style=False,
                    indent=self.indent,
                    width=4096,  # avoid line folding for readability
                )
        except OSError as exc:
            logger.exception("Failed to write YAML report to %s", self.output_path)
            raise ReportExportError(
                "Failed to write YAML report", self.output_path, cause=exc
            ) from exc

    def read(self) -> VulnerabilityReport:
        try:
            with self.output_path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
            return VulnerabilityReport.model_validate(data)
        except (OSError, yaml.YAMLError, SchemaValidationError) as exc:
            raise ReportExportError(
                "Failed to read YAML report", self.output_path, cause=exc
            ) from exc
