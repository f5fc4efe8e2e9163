from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError as SchemaValidationError

from vibe_check.errors import ReportExportError
from vibe_check.models.report import VulnerabilityReport

logger = logging.getLogger(__name__)


class ReportJsonLoader:
    """Persist a VulnerabilityReport as JSON.

    The output is the report's wire format, a single object with three keys:
    - "vulnerabilities": list of {severity, file, line, description, recommendation}
    - "summary": {total, high, medium, low}
    - "insights": list of narrative strings

    Example:
    {
      "vulnerabilities": [{"severity": "high", "file": "app.js", "line": 12, ...}],
      "summary": {"total": 1, "high": 1, "medium": 0, "low": 0},
      "insights": ["..."]
    }
    """

    def __init__(self, output_path: str | Path, indent: int = 2) -> None:
        """Create a JSON loader.

        Args:
            output_path: Target file path to write the JSON report into.
            indent: Indentation level for pretty-printing JSON.
        """
        self.output_path: Path = Path(output_path)
        self.indent: int = indent

    def dumps(self, report: VulnerabilityReport) -> str:
        return json.dumps(report.model_dump(mode="json"), ensure_ascii=False, indent=self.indent)

    def load(self, report: VulnerabilityReport) -> None:
        """Write the report to the configured JSON file."""
        if self.output_path.parent and not self.output_path.parent.exists():
            self.output_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            self.output_path.write_text(self.dumps(report), encoding="utf-8")
        except OSError as exc:
            logger.exception("Failed to write JSON report to %s", self.output_path)
            raise ReportExportError(
                "Failed to write JSON report", self.output_path, cause=exc
            ) from exc

    def read(self) -> VulnerabilityReport:
        """Parse a previously written report back into a model."""
        try:
            return VulnerabilityReport.model_validate_json(
                self.output_path.read_text(encoding="utf-8")
            )
        except (OSError, SchemaValidationError) as exc:
            raise ReportExportError(
                "Failed to read JSON report", self.output_path, cause=exc
            ) from exc
