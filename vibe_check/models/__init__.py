from .config import ScanConfig
from .context import CodebaseContext, ContextSummary, FileEntry, Language
from .report import ReportSummary, RiskLevel, Severity, Vulnerability, VulnerabilityReport
from .schemas import InsightResponse, SecurityAnalysisResponse

__all__ = [
    "ScanConfig",
    "CodebaseContext",
    "ContextSummary",
    "FileEntry",
    "Language",
    "ReportSummary",
    "RiskLevel",
    "Severity",
    "Vulnerability",
    "VulnerabilityReport",
    "InsightResponse",
    "SecurityAnalysisResponse",
]
