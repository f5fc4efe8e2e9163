from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from tests.consts import SAFE_PY, TEST_API_KEY, TEST_MODEL, VULNERABLE_JS
from tests.utils import write_tree
from vibe_check.models.config import ScanConfig
from vibe_check.models.report import Severity, Vulnerability
from vibe_check.repositories.config import ENV_OVERRIDES


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in ENV_OVERRIDES.values():
        monkeypatch.delenv(var, raising=False)
    monkeypatch.delenv("VIBE_CHECK_CONFIG_FILE", raising=False)


@pytest.fixture
def scan_config() -> ScanConfig:
    return ScanConfig(api_key=TEST_API_KEY, model=TEST_MODEL)


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Small project with one vulnerable JS file and one Python file."""
    return write_tree(
        tmp_path / "project",
        {
            "app.js": VULNERABLE_JS,
            "util.py": SAFE_PY,
            "node_modules/lib/index.js": "module.exports = {};\n",
            ".git/config": "[core]\n",
        },
    )


@pytest.fixture
def make_vulnerability() -> Callable[..., Vulnerability]:
    def _make(
        severity: Severity = Severity.HIGH,
        file: str = "app.js",
        line: int = 5,
        description: str = "SQL injection via string concatenation",
        recommendation: str = "Use parameterized queries",
    ) -> Vulnerability:
        return Vulnerability(
            severity=severity,
            file=file,
            line=line,
            description=description,
            recommendation=recommendation,
        )

    return _make
