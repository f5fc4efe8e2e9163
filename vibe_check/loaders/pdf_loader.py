from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Final

from fpdf import FPDF
from fpdf.enums import XPos, YPos
from fpdf.errors import FPDFException

from vibe_check.errors import ReportExportError
from vibe_check.models.report import Severity, VulnerabilityReport
from vibe_check.services.terminal import RISK_LABELS, SEVERITY_BADGES

logger = logging.getLogger(__name__)

DEFAULT_FONT: Final[str] = "Helvetica"
# names accepted for the built-in PDF fonts, common desktop names map to their metric twin
CORE_FONTS: Final[dict[str, str]] = {
    "helvetica": "Helvetica",
    "arial": "Helvetica",
    "sans-serif": "Helvetica",
    "times": "Times",
    "times new roman": "Times",
    "serif": "Times",
    "courier": "Courier",
    "courier new": "Courier",
    "monospace": "Courier",
}
FONT_FILE_SUFFIXES: Final[frozenset[str]] = frozenset({".ttf", ".otf"})
_EMBEDDED_FAMILY: Final[str] = "ReportFont"

_SEVERITY_COLORS: Final[dict[Severity, tuple[int, int, int]]] = {
    Severity.HIGH: (197, 48, 48),
    Severity.MEDIUM: (183, 121, 31),
    Severity.LOW: (43, 108, 176),
}
_TEXT_COLOR: Final[tuple[int, int, int]] = (45, 55, 72)
_MUTED_COLOR: Final[tuple[int, int, int]] = (113, 128, 150)
_HEADING_SIZES: Final[dict[str, tuple[int, float]]] = {"#": (20, 10), "##": (14, 8), "###": (12, 7)}


def _latin1(text: str) -> str:
    # core PDF fonts only cover latin-1
    return text.encode("latin-1", "replace").decode("latin-1")


def pdf_path(output_path: str | Path) -> Path:
    path = Path(output_path)
    if path.suffix.lower() != ".pdf":
        path = path.with_name(path.name + ".pdf")
    return path


def _generated_stamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")


def report_markdown(report: VulnerabilityReport) -> str:
    """Render a report as plain Markdown."""
    summary = report.summary
    lines = [
        "# Security Analysis Report",
        "",
        f"Generated {_generated_stamp()}",
        "",
        "## Summary",
        "",
        f"- Total issues: **{summary.total}**",
        f"- High: {summary.high}",
        f"- Medium: {summary.medium}",
        f"- Low: {summary.low}",
        f"- Risk Level: **{RISK_LABELS[report.risk_level]}**",
        "",
    ]
    if report.insights:
        lines += ["## AI Analysis & Insights", ""]
        for insight in report.insights:
            lines += [insight, ""]
    lines += ["## Detailed Findings", ""]
    if not report.vulnerabilities:
        lines += ["No security vulnerabilities detected. Your codebase appears to be secure.", ""]
    for index, vuln in enumerate(report.vulnerabilities, start=1):
        lines += [
            f"### Issue #{index} [{SEVERITY_BADGES[vuln.severity]}]",
            "",
            f"- File: {vuln.file}:{vuln.line}",
            f"- **Description:** {vuln.description}",
            f"- **Recommendation:** {vuln.recommendation}",
            "",
        ]
    return "\n".join(lines)


class PdfLoader:
    """Write a report as a PDF document.

    ``font`` is either a built-in family name (see :data:`CORE_FONTS`) or a
    path to a TrueType/OpenType file, which is embedded. Unknown family names
    fall back to Helvetica. With ``markdown`` set the report is laid out from
    its Markdown rendering instead of the styled layout.
    """

    def __init__(self, output_path: str | Path, font: str | None = None, markdown: bool = False) -> None:
        self.output_path: Path = pdf_path(output_path)
        self.markdown = markdown
        self.font_file: Path | None = None
        self.font_family = DEFAULT_FONT
        if font and Path(font).suffix.lower() in FONT_FILE_SUFFIXES:
            self.font_file = Path(font).expanduser()
            self.font_family = _EMBEDDED_FAMILY
        elif font:
            family = CORE_FONTS.get(font.strip().lower())
            if family is None:
                logger.warning("Unknown PDF font %r, using %s", font, DEFAULT_FONT)
            self.font_family = family or DEFAULT_FONT

    def _text(self, text: str) -> str:
        return text if self.font_file is not None else _latin1(text)

    def _line(
        self,
        pdf: FPDF,
        text: str,
        size: int = 11,
        style: str = "",
        height: float = 6,
        markdown: bool = False,
    ) -> None:
        pdf.set_font(self.font_family, style, size)
        pdf.multi_cell(
            0, height, self._text(text), new_x=XPos.LMARGIN, new_y=YPos.NEXT, markdown=markdown
        )

    def _new_document(self) -> FPDF:
        pdf = FPDF(format="A4")
        if self.font_file is not None:
            # one face serves every style the layout asks for
            for style in ("", "B", "I", "BI"):
                pdf.add_font(_EMBEDDED_FAMILY, style, str(self.font_file))
        pdf.set_auto_page_break(auto=True, margin=15)
        pdf.set_title("Vibe-Check Security Analysis Report")
        pdf.add_page()
        pdf.set_text_color(*_TEXT_COLOR)
        return pdf

    def _build_markdown(self, report: VulnerabilityReport) -> FPDF:
        pdf = self._new_document()
        for line in report_markdown(report).splitlines():
            marker, _, rest = line.partition(" ")
            if marker in _HEADING_SIZES:
                size, height = _HEADING_SIZES[marker]
                self._line(pdf, rest, size=size, style="B", height=height)
            elif not line.strip():
                pdf.ln(2)
            else:
                self._line(pdf, line, markdown=True)
        return pdf

    def _build(self, report: VulnerabilityReport) -> FPDF:
        pdf = self._new_document()
        self._line(pdf, "Security Analysis Report", size=20, style="B", height=10)
        pdf.set_text_color(*_MUTED_COLOR)
        self._line(pdf, f"Generated {_generated_stamp()}", size=9)
        pdf.ln(4)

        pdf.set_text_color(*_TEXT_COLOR)
        self._line(pdf, "Summary", size=14, style="B", height=8)
        summary = report.summary
        self._line(pdf, f"Total issues: {summary.total}")
        self._line(pdf, f"High: {summary.high}    Medium: {summary.medium}    Low: {summary.low}")
        self._line(pdf, f"Risk Level: {RISK_LABELS[report.risk_level]}", style="B")
        pdf.ln(4)

        if report.insights:
            self._line(pdf, "AI Analysis & Insights", size=14, style="B", height=8)
            for insight in report.insights:
                self._line(pdf, insight)
            pdf.ln(4)

        self._line(pdf, "Detailed Findings", size=14, style="B", height=8)
        if not report.vulnerabilities:
            self._line(pdf, "No security vulnerabilities detected. Your codebase appears to be secure.")
        for index, vuln in enumerate(report.vulnerabilities, start=1):
            pdf.set_text_color(*_SEVERITY_COLORS[vuln.severity])
            self._line(pdf, f"Issue #{index}  [{SEVERITY_BADGES[vuln.severity]}]", size=12, style="B", height=7)
            pdf.set_text_color(*_MUTED_COLOR)
            self._line(pdf, f"{vuln.file}:{vuln.line}", size=9)
            pdf.set_text_color(*_TEXT_COLOR)
            self._line(pdf, f"Description: {vuln.description}")
            self._line(pdf, f"Recommendation: {vuln.recommendation}")
            pdf.ln(3)
        return pdf

    def load(self, report: VulnerabilityReport) -> Path:
        """Render and write the PDF.

        Returns:
            Path actually written, with ``.pdf`` appended when it was missing.

        Raises:
            ReportExportError: If the font file is missing or the document
                cannot be rendered or written.
        """
        if self.font_file is not None and not self.font_file.is_file():
            raise ReportExportError(f"Font file not found: {self.font_file}", self.output_path)
        if self.output_path.parent and not self.output_path.parent.exists():
            self.output_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            pdf = self._build_markdown(report) if self.markdown else self._build(report)
            pdf.output(str(self.output_path))
        except (OSError, FPDFException) as exc:
            logger.exception("Failed to write PDF report to %s", self.output_path)
            raise ReportExportError(
                "PDF generation failed", self.output_path, cause=exc
            ) from exc
        return self.output_path
