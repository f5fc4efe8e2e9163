"""Error taxonomy shared by every stage of a scan.

Each failure carries an :class:`ErrorKind` so callers can branch on the kind
instead of matching message text. :func:`describe_error` turns any exception
into the prefix, detail lines and remediation hint shown by the CLI.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path


class ErrorKind(StrEnum):
    CONFIGURATION = "configuration"
    CONTEXT_BUILD = "context_build"
    VALIDATION = "validation"
    ANALYSIS = "analysis"
    INSIGHT_GENERATION = "insight_generation"
    FILE_PROCESSING = "file_processing"
    REPORT_EXPORT = "report_export"
    CANCELLED = "cancelled"
    UNEXPECTED = "unexpected"


class VibeCheckError(Exception):
    """Base class for every classified failure."""

    kind: ErrorKind = ErrorKind.UNEXPECTED

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.message: str = message
        self.cause: BaseException | None = cause
        if cause is not None:
            self.__cause__ = cause


class ConfigurationError(VibeCheckError):
    kind = ErrorKind.CONFIGURATION


class ContextBuildError(VibeCheckError):
    kind = ErrorKind.CONTEXT_BUILD

    def __init__(
        self,
        message: str,
        directory: str | Path | None = None,
        *,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.directory: str | None = str(directory) if directory is not None else None


class ValidationError(VibeCheckError):
    kind = ErrorKind.VALIDATION


class AIAnalysisError(VibeCheckError):
    kind = ErrorKind.ANALYSIS


class InsightGenerationError(VibeCheckError):
    kind = ErrorKind.INSIGHT_GENERATION


class FileProcessingError(VibeCheckError):
    kind = ErrorKind.FILE_PROCESSING

    def __init__(
        self,
        message: str,
        file_path: str | Path | None = None,
        *,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.file_path: str | None = str(file_path) if file_path is not None else None


class ReportExportError(VibeCheckError):
    kind = ErrorKind.REPORT_EXPORT

    def __init__(
        self,
        message: str,
        path: str | Path | None = None,
        *,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.path: str | None = str(path) if path is not None else None


class ScanCancelledError(VibeCheckError):
    kind = ErrorKind.CANCELLED


class ModelInvocationError(Exception):
    """Transport or protocol failure raised by a model invoker.

    Services never let this escape: it is wrapped into the analysis or insight
    failure of the stage that issued the request.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code: int | None = status_code


@dataclass(frozen=True)
class ErrorDescription:
    """Human-readable rendering of a failure."""

    kind: ErrorKind
    title: str
    message: str
    details: list[str] = field(default_factory=list)
    hint: str | None = None
    stack: str | None = None

    def lines(self, context: str | None = None) -> list[str]:
        prefix = f"[{context}] " if context else ""
        out = [f"{prefix}{self.title}: {self.message}"]
        out.extend(self.details)
        if self.hint:
            out.append(self.hint)
        if self.stack:
            out.append(f"Stack trace:\n{self.stack}")
        return out


_TITLES: dict[ErrorKind, str] = {
    ErrorKind.CONFIGURATION: "Configuration Error",
    ErrorKind.CONTEXT_BUILD: "Context Build Error",
    ErrorKind.VALIDATION: "Validation Error",
    ErrorKind.ANALYSIS: "AI Analysis Failed",
    ErrorKind.INSIGHT_GENERATION: "Insight Generation Failed",
    ErrorKind.FILE_PROCESSING: "File Processing Error",
    ErrorKind.REPORT_EXPORT: "Report Export Failed",
    ErrorKind.CANCELLED: "Scan Cancelled",
    ErrorKind.UNEXPECTED: "Unexpected Error",
}

_HINTS: dict[ErrorKind, str] = {
    ErrorKind.CONFIGURATION: 'Please run "vibe-check config setup" to configure the CLI.',
    ErrorKind.ANALYSIS: "Please check your API key and model configuration.",
    ErrorKind.INSIGHT_GENERATION: "Please check your API key and model configuration.",
    ErrorKind.CONTEXT_BUILD: "Make sure the directory exists and contains supported source files.",
}


def describe_error(error: BaseException) -> ErrorDescription:
    """Map an exception onto its user-facing description.

    Args:
        error: Any exception raised by a scan or config command.

    Returns:
        Description with a kind-specific title, detail lines and hint. Only
        unclassified errors carry a stack trace.
    """
    if not isinstance(error, VibeCheckError):
        stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        return ErrorDescription(
            kind=ErrorKind.UNEXPECTED,
            title=_TITLES[ErrorKind.UNEXPECTED],
            message=str(error) or error.__class__.__name__,
            stack=stack,
        )

    details: list[str] = []
    if isinstance(error, ContextBuildError) and error.directory:
        details.append(f"Directory: {error.directory}")
    if isinstance(error, FileProcessingError) and error.file_path:
        details.append(f"File: {error.file_path}")
    if isinstance(error, ReportExportError) and error.path:
        details.append(f"Output: {error.path}")
    if error.cause is not None:
        details.append(f"Underlying cause: {error.cause}")

    return ErrorDescription(
        kind=error.kind,
        title=_TITLES[error.kind],
        message=error.message,
        details=details,
        hint=_HINTS.get(error.kind),
    )
