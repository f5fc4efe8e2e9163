from __future__ import annotations

from typing import Final

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from vibe_check.models.report import ReportSummary, RiskLevel, Severity, Vulnerability, VulnerabilityReport

RISK_LABELS: Final[dict[RiskLevel | None, str]] = {
    RiskLevel.HIGH: "HIGH - Immediate attention required!",
    RiskLevel.MEDIUM: "MEDIUM - Review recommended",
    RiskLevel.LOW: "LOW - Monitor and improve",
    None: "EXCELLENT - No issues found!",
}

SEVERITY_BADGES: Final[dict[Severity, str]] = {
    Severity.HIGH: "CRITICAL",
    Severity.MEDIUM: "WARNING",
    Severity.LOW: "INFO",
}

_SEVERITY_STYLES: Final[dict[Severity, str]] = {
    Severity.HIGH: "bold white on red",
    Severity.MEDIUM: "bold black on yellow",
    Severity.LOW: "bold white on blue",
}

_RISK_STYLES: Final[dict[RiskLevel | None, str]] = {
    RiskLevel.HIGH: "bold red",
    RiskLevel.MEDIUM: "bold yellow",
    RiskLevel.LOW: "bold blue",
    None: "bold green",
}


class TerminalReporter:
    """Render a report as rich panels for the terminal."""

    def __init__(self, console: Console | None = None, width: int = 80) -> None:
        self.console = console or Console()
        self.width = width

    def _summary_panel(self, summary: ReportSummary, risk: RiskLevel | None) -> Panel:
        table = Table.grid(padding=(0, 2))
        table.add_column()
        table.add_column(justify="right")
        table.add_row(Text("Total Issues Found:", style="bold"), Text(str(summary.total), style="bold"))
        table.add_row(Text("High Severity:", style="bold"), Text(str(summary.high), style="bold red"))
        table.add_row(Text("Medium Severity:", style="bold"), Text(str(summary.medium), style="bold yellow"))
        table.add_row(Text("Low Severity:", style="bold"), Text(str(summary.low), style="bold green"))
        risk_line = Text.assemble(("Risk Level: ", "bold"), (RISK_LABELS[risk], _RISK_STYLES[risk]))
        return Panel(
            Group(table, Text(), risk_line),
            title="SECURITY SUMMARY",
            border_style="dim",
            width=self.width,
        )

    def _insights_panel(self, insights: list[str]) -> Panel:
        return Panel(
            Text("\n\n".join(insights)),
            title="AI ANALYSIS & INSIGHTS",
            border_style="cyan",
            width=self.width,
        )

    def _finding_panel(self, vuln: Vulnerability, index: int) -> Panel:
        body = Text()
        body.append("File: ", style="bold")
        body.append(vuln.file, style="cyan")
        body.append(f":{vuln.line}\n\n", style="dim")
        body.append("Description:\n", style="bold")
        body.append(f"{vuln.description}\n\n")
        body.append("Recommendation:\n", style="bold")
        body.append(vuln.recommendation, style="green")
        title = Text.assemble(
            (f"ISSUE #{index} ", "bold"),
            (f" {SEVERITY_BADGES[vuln.severity]} ", _SEVERITY_STYLES[vuln.severity]),
        )
        return Panel(body, title=title, title_align="left", border_style="dim", width=self.width)

    def _clean_panel(self) -> Panel:
        return Panel(
            Text.assemble(
                ("CONGRATULATIONS!\n", "bold green"),
                ("No security vulnerabilities detected!\n", "green"),
                ("Your codebase appears to be secure.\n\n", "dim"),
                ("Keep up the good work and continue following security best practices!", "dim"),
            ),
            border_style="green",
            width=self.width,
        )

    def render(self, report: VulnerabilityReport) -> None:
        self.console.print(self._summary_panel(report.summary, report.risk_level))
        if report.insights:
            self.console.print(self._insights_panel(report.insights))
        if not report.vulnerabilities:
            self.console.print(self._clean_panel())
            return
        self.console.rule("[bold red]DETAILED SECURITY FINDINGS")
        for index, vuln in enumerate(report.vulnerabilities, start=1):
            self.console.print(self._finding_panel(vuln, index))
