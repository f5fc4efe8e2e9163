from __future__ import annotations

from collections.abc import Sequence
from typing import Final

from vibe_check.models.context import CodebaseContext
from vibe_check.models.report import Severity, Vulnerability
from vibe_check.models.schemas import InsightResponse, SecurityAnalysisResponse, describe_schema

SECURITY_CATEGORIES: Final[tuple[tuple[str, str], ...]] = (
    (
        "Authentication & Authorization",
        "Weak auth, missing access controls, privilege escalation",
    ),
    ("Input Validation", "SQL injection, XSS, command injection, path traversal"),
    ("Cryptography", "Weak encryption, hardcoded keys, insecure random generation"),
    ("Configuration", "Exposed secrets, debug mode, insecure defaults"),
    ("Dependencies", "Known vulnerable packages, outdated libraries"),
    (
        "Business Logic",
        "Race conditions, improper error handling, information disclosure",
    ),
    ("Infrastructure", "Insecure network configs, missing security headers"),
)

INSIGHT_SAMPLE_SIZE: Final[int] = 10


class PromptFormatter:
    """Serialize contexts and findings into prompt text."""

    def format_context(self, context: CodebaseContext) -> str:
        summary = context.summary
        languages = ", ".join(
            f"{language} ({count})" for language, count in summary.languages.items()
        )
        parts: list[str] = [
            "# Codebase Analysis Context\n",
            "## Summary",
            f"- Total files: {summary.total_files}",
            f"- Total lines: {summary.total_lines}",
            f"- Languages: {languages}\n",
            "## File Contents\n",
        ]
        for entry in context.files:
            parts.append(f"### {entry.path} ({entry.language})")
            parts.append(f"```{entry.language}\n{entry.content}\n```\n")
        return "\n".join(parts)

    def build_analysis_prompt(self, context: CodebaseContext) -> str:
        """Full prompt of the vulnerability analysis request."""
        categories = "\n".join(
            f"- **{name}**: {examples}" for name, examples in SECURITY_CATEGORIES
        )
        return (
            "You are a senior security engineer conducting a comprehensive security "
            "audit of a codebase.\n\n"
            f"{self.format_context(context)}\n"
            "Analyze this codebase for security vulnerabilities and respond with a "
            "single JSON object with these fields:\n\n"
            f"{describe_schema(SecurityAnalysisResponse)}\n\n"
            "Focus on these security areas:\n"
            f"{categories}\n\n"
            "Be thorough but practical. Only report real security issues, not style "
            "preferences.\nUse the file paths exactly as listed above, provide specific "
            "line numbers and actionable recommendations. Return an empty "
            "vulnerabilities array if nothing is found."
        )

    def build_insight_prompt(self, vulnerabilities: Sequence[Vulnerability]) -> str:
        """Prompt of the narrative insight request.

        Only the first ``INSIGHT_SAMPLE_SIZE`` findings are listed, in input order.
        """
        counts = {severity: 0 for severity in Severity}
        for vulnerability in vulnerabilities:
            counts[vulnerability.severity] += 1

        sample = vulnerabilities[:INSIGHT_SAMPLE_SIZE]
        if sample:
            sample_text = "\n".join(
                f"- {v.severity.upper()}: {v.description} ({v.file}:{v.line})" for v in sample
            )
        else:
            sample_text = "- None. The scan reported no vulnerabilities."

        return (
            "You are a senior security consultant analyzing a codebase security "
            "assessment.\n\n"
            "Security Scan Results:\n"
            f"- Total vulnerabilities found: {len(vulnerabilities)}\n"
            f"- High severity: {counts[Severity.HIGH]}\n"
            f"- Medium severity: {counts[Severity.MEDIUM]}\n"
            f"- Low severity: {counts[Severity.LOW]}\n\n"
            "Sample vulnerabilities:\n"
            f"{sample_text}\n\n"
            "Respond with a single JSON object with these fields:\n\n"
            f"{describe_schema(InsightResponse)}\n\n"
            "Write the insight as one cohesive paragraph covering patterns, trends and "
            "strategic, prioritized improvements rather than individual findings. If no "
            "vulnerabilities were found, describe what a clean result means for the "
            "codebase and what to keep doing."
        )
