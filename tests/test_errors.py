import pytest

from vibe_check.errors import (
    AIAnalysisError,
    ConfigurationError,
    ContextBuildError,
    ErrorKind,
    FileProcessingError,
    ModelInvocationError,
    ReportExportError,
    ScanCancelledError,
    describe_error,
)
from vibe_check.utils.cancellation import CancellationToken


def test_configuration_error_points_to_setup():
    description = describe_error(ConfigurationError("No configuration found."))

    assert description.kind is ErrorKind.CONFIGURATION
    assert description.lines("Scan")[0] == "[Scan] Configuration Error: No configuration found."
    assert description.hint is not None and "vibe-check config setup" in description.hint
    assert description.stack is None


def test_analysis_error_lists_underlying_cause():
    cause = ModelInvocationError("Model API returned HTTP 401: bad key", status_code=401)
    description = describe_error(AIAnalysisError("AI analysis request failed", cause=cause))

    assert description.title == "AI Analysis Failed"
    assert "Underlying cause: Model API returned HTTP 401: bad key" in description.details
    assert description.hint == "Please check your API key and model configuration."


@pytest.mark.parametrize(
    ("error", "detail"),
    [
        (ContextBuildError("No supported files", "/src"), "Directory: /src"),
        (FileProcessingError("Failed to analyze file", "a.py"), "File: a.py"),
        (ReportExportError("PDF generation failed", "out.pdf"), "Output: out.pdf"),
    ],
)
def test_location_details(error: Exception, detail: str):
    assert detail in describe_error(error).details


def test_unexpected_error_carries_stack():
    try:
        raise RuntimeError("boom")
    except RuntimeError as exc:
        description = describe_error(exc)

    assert description.kind is ErrorKind.UNEXPECTED
    assert description.message == "boom"
    assert description.stack is not None and "RuntimeError: boom" in description.stack


def test_cause_is_chained():
    cause = ValueError("bad")
    error = AIAnalysisError("wrapped", cause=cause)

    assert error.__cause__ is cause
    assert error.kind is ErrorKind.ANALYSIS


def test_cancellation_token():
    token = CancellationToken()
    token.raise_if_cancelled("idle")

    token.cancel("Scan interrupted by user")

    assert token.cancelled
    with pytest.raises(ScanCancelledError) as excinfo:
        token.raise_if_cancelled("insight request")
    assert excinfo.value.message == "Scan interrupted by user (insight request)"
    assert describe_error(excinfo.value).title == "Scan Cancelled"
