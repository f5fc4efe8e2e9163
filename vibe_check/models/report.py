from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Severity(StrEnum):
    """Severity levels for reported vulnerabilities."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RiskLevel(StrEnum):
    """Overall risk of a codebase."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Vulnerability(BaseModel):
    """A single security issue reported by the model."""

    model_config = ConfigDict(frozen=True)

    severity: Severity = Field(..., description="Severity of the issue")
    file: str = Field(..., description="Relative path to the file")
    line: int = Field(..., ge=1, description="Line number where the issue occurs")
    description: str = Field(..., description="Clear description of the vulnerability")
    recommendation: str = Field(
        ..., description="Specific actionable recommendation to fix it"
    )


class ReportSummary(BaseModel):
    """Severity counts computed locally from the vulnerability list."""

    model_config = ConfigDict(frozen=True)

    total: int = Field(default=0, ge=0)
    high: int = Field(default=0, ge=0)
    medium: int = Field(default=0, ge=0)
    low: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _check_partition(self) -> ReportSummary:
        if self.total != self.high + self.medium + self.low:
            raise ValueError("summary total must equal high + medium + low")
        return self


class VulnerabilityReport(BaseModel):
    """Final value of a scan, serialized as the JSON report."""

    model_config = ConfigDict(frozen=True)

    vulnerabilities: list[Vulnerability] = Field(default_factory=list)
    summary: ReportSummary = Field(default_factory=ReportSummary)
    insights: list[str] = Field(default_factory=list)

    @property
    def risk_level(self) -> RiskLevel | None:
        """Risk derived from local counts; ``None`` when nothing was found."""
        if self.summary.high > 0:
            return RiskLevel.HIGH
        if self.summary.medium > 2:
            return RiskLevel.MEDIUM
        if self.summary.medium > 0 or self.summary.low > 0:
            return RiskLevel.LOW
        return None
