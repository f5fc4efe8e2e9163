from collections import Counter
from collections.abc import Sequence

from vibe_check.models.report import ReportSummary, Severity, Vulnerability, VulnerabilityReport


class ReportAssembler:
    """Combine findings and insights into the final report."""

    def generate_report(
        self, vulnerabilities: Sequence[Vulnerability], insights: Sequence[str]
    ) -> VulnerabilityReport:
        # counts come from the list itself, never from the model's own summary
        counts = Counter(v.severity for v in vulnerabilities)
        summary = ReportSummary(
            total=len(vulnerabilities),
            high=counts[Severity.HIGH],
            medium=counts[Severity.MEDIUM],
            low=counts[Severity.LOW],
        )
        return VulnerabilityReport(
            vulnerabilities=list(vulnerabilities),
            summary=summary,
            insights=list(insights),
        )
