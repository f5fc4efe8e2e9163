from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Final

from jinja2 import Environment, select_autoescape

from vibe_check.errors import ReportExportError
from vibe_check.models.report import VulnerabilityReport
from vibe_check.services.terminal import RISK_LABELS, SEVERITY_BADGES

logger = logging.getLogger(__name__)

DEFAULT_FONT_STACK: Final[str] = (
    '-apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, "Helvetica Neue", Arial, sans-serif'
)
MONO_FONT_STACK: Final[str] = '"SF Mono", Menlo, Consolas, "Liberation Mono", monospace'

_TEMPLATE: Final[str] = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Vibe-Check Security Analysis Report</title>
  <style>
    * { box-sizing: border-box; margin: 0; padding: 0; }
    body { font-family: {{ font_stack|safe }}; font-size: 14px; line-height: 1.5; color: #2d3748; }
    .container { max-width: 800px; margin: 0 auto; padding: 40px 32px; }
    .header { border-bottom: 2px solid #e2e8f0; padding-bottom: 16px; margin-bottom: 24px; }
    .header h1 { font-size: 24px; }
    .meta { color: #718096; font-size: 12px; }
    section { margin-bottom: 28px; }
    h2 { font-size: 18px; margin-bottom: 12px; }
    .counts { display: flex; gap: 12px; }
    .count { flex: 1; border: 1px solid #e2e8f0; border-radius: 6px; padding: 12px; text-align: center; }
    .count .value { font-size: 22px; font-weight: 700; }
    .high .value { color: #c53030; } .medium .value { color: #b7791f; } .low .value { color: #2b6cb0; }
    .risk { margin-top: 12px; font-weight: 600; }
    .finding { border: 1px solid #e2e8f0; border-left-width: 4px; border-radius: 6px; padding: 12px 16px; margin-bottom: 12px; page-break-inside: avoid; }
    .finding.high { border-left-color: #c53030; } .finding.medium { border-left-color: #b7791f; } .finding.low { border-left-color: #2b6cb0; }
    .location { font-family: {{ mono_stack|safe }}; font-size: 12px; color: #4a5568; }
    .badge { font-size: 11px; font-weight: 700; padding: 2px 6px; border-radius: 4px; background: #edf2f7; }
    .clean { text-align: center; color: #2f855a; font-weight: 600; }
    footer { border-top: 1px solid #e2e8f0; padding-top: 12px; color: #a0aec0; font-size: 11px; }
  </style>
</head>
<body>
  <div class="container">
    <div class="header">
      <h1>Security Analysis Report</h1>
      <div class="meta">Generated {{ generated_at }}</div>
    </div>
    <section>
      <h2>Summary</h2>
      <div class="counts">
        <div class="count"><div class="value">{{ report.summary.total }}</div>Total</div>
        <div class="count high"><div class="value">{{ report.summary.high }}</div>High</div>
        <div class="count medium"><div class="value">{{ report.summary.medium }}</div>Medium</div>
        <div class="count low"><div class="value">{{ report.summary.low }}</div>Low</div>
      </div>
      <div class="risk">Risk Level: {{ risk_label }}</div>
    </section>
    {% if report.insights %}
    <section>
      <h2>AI Analysis &amp; Insights</h2>
      {% for insight in report.insights %}<p>{{ insight }}</p>{% endfor %}
    </section>
    {% endif %}
    <section>
      <h2>Detailed Findings</h2>
      {% for vuln in report.vulnerabilities %}
      <div class="finding {{ vuln.severity }}">
        <div><strong>Issue #{{ loop.index }}</strong> <span class="badge">{{ badges[vuln.severity] }}</span></div>
        <div class="location">{{ vuln.file }}:{{ vuln.line }}</div>
        <p><strong>Description:</strong> {{ vuln.description }}</p>
        <p><strong>Recommendation:</strong> {{ vuln.recommendation }}</p>
      </div>
      {% else %}
      <p class="clean">No security vulnerabilities detected. Your codebase appears to be secure.</p>
      {% endfor %}
    </section>
    <footer>Generated by vibe-check. Findings are produced by a language model and should be reviewed.</footer>
  </div>
</body>
</html>
"""

_env = Environment(autoescape=select_autoescape(default=True, default_for_string=True))


class HtmlFormatter:
    """Render a report as a standalone HTML document."""

    def __init__(self, font_family: str | None = None) -> None:
        # the family name is user supplied and is rendered unescaped inside <style>
        family = re.sub(r"[^A-Za-z0-9 _-]", "", font_family or "").strip()
        self.font_stack = f'"{family}", {DEFAULT_FONT_STACK}' if family else DEFAULT_FONT_STACK
        self._template = _env.from_string(_TEMPLATE)

    def format_report(self, report: VulnerabilityReport, generated_at: datetime | None = None) -> str:
        stamp = (generated_at or datetime.now(timezone.utc)).strftime("%Y-%m-%d %H:%M UTC")
        return self._template.render(
            report=report,
            risk_label=RISK_LABELS[report.risk_level],
            badges=SEVERITY_BADGES,
            generated_at=stamp,
            font_stack=self.font_stack,
            mono_stack=MONO_FONT_STACK,
        )


class HtmlLoader:
    """Write the HTML rendering of a report to disk."""

    def __init__(self, output_path: str | Path, font_family: str | None = None) -> None:
        self.output_path: Path = Path(output_path)
        self.formatter = HtmlFormatter(font_family)

    def load(self, report: VulnerabilityReport) -> None:
        if self.output_path.parent and not self.output_path.parent.exists():
            self.output_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self.output_path.write_text(self.formatter.format_report(report), encoding="utf-8")
        except OSError as exc:
            logger.exception("Failed to write HTML report to %s", self.output_path)
            raise ReportExportError(
                "Failed to write HTML report", self.output_path, cause=exc
            ) from exc
