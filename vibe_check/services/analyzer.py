from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import StrEnum
from pathlib import Path
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as SchemaValidationError

from vibe_check.clients.llm import ModelInvoker
from vibe_check.errors import (
    AIAnalysisError,
    ContextBuildError,
    FileProcessingError,
    ValidationError,
    VibeCheckError,
)
from vibe_check.models.config import ScanConfig
from vibe_check.models.context import CodebaseContext
from vibe_check.models.report import Vulnerability
from vibe_check.models.schemas import SecurityAnalysisResponse
from vibe_check.services.condenser import ContextCondenser
from vibe_check.services.context_builder import (
    ContextBuilderService,
    FileTooLargeError,
    read_source_file,
)
from vibe_check.services.prompt_formatter import PromptFormatter
from vibe_check.utils.cancellation import CancellationToken

logger = logging.getLogger(__name__)

ANALYSIS_MAX_FILES: Final[int] = 15


class AnalysisState(StrEnum):
    IDLE = "idle"
    CONTEXT_BUILT = "context_built"
    REQUESTING = "requesting"
    VALIDATED = "validated"
    FAILED = "failed"


def check_credentials(cfg: ScanConfig, purpose: str) -> None:
    """Fail fast when the configuration cannot authenticate a request."""
    if not cfg.api_key or not cfg.api_key.strip():
        raise ValidationError(f"API key is required for {purpose}")
    if not cfg.model or not cfg.model.strip():
        raise ValidationError(f"Model configuration is required for {purpose}")


def normalize_reported_path(path: str) -> str:
    normalized = path.strip().replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


class CodeAnalyzerService(BaseModel):
    """Ask the model for the vulnerabilities of a codebase.

    The service walks Idle -> ContextBuilt -> Requesting -> Validated, or ends
    in Failed; the last reached state is kept in ``state`` for diagnostics.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    config: ScanConfig
    invoker: ModelInvoker
    builder: ContextBuilderService = Field(default_factory=ContextBuilderService)
    condenser: ContextCondenser = Field(default_factory=ContextCondenser)
    formatter: PromptFormatter = Field(default_factory=PromptFormatter)
    cancellation: CancellationToken | None = None
    max_files: int = ANALYSIS_MAX_FILES
    state: AnalysisState = AnalysisState.IDLE

    def analyze_codebase(self, root_dir: str | Path) -> list[Vulnerability]:
        """Analyze the most relevant files of a directory.

        Args:
            root_dir: Directory to scan.

        Returns:
            Vulnerabilities reported by the model; an empty list means the
            model found no issues.

        Raises:
            ValidationError: If the directory, API key or model is missing.
            AIAnalysisError: If the context cannot be built, the request fails
                or the response does not match the analysis schema.
        """
        self.state = AnalysisState.IDLE
        if root_dir is None or not str(root_dir).strip():
            raise ValidationError("Root directory path is required and must be a string")
        check_credentials(self.config, "AI analysis")

        try:
            context = self.condenser.condense(self.builder.build(root_dir), self.max_files)
        except ContextBuildError as exc:
            self.state = AnalysisState.FAILED
            raise AIAnalysisError(
                "Failed to build codebase context for AI analysis", cause=exc
            ) from exc

        if not context.files:
            self.state = AnalysisState.FAILED
            raise AIAnalysisError("No supported files found in the specified directory")

        self.state = AnalysisState.CONTEXT_BUILT
        logger.info(
            "Sending %d files (%d lines) for analysis",
            context.summary.total_files,
            context.summary.total_lines,
        )
        return self._request(context)

    def analyze_file(self, file_path: str | Path) -> list[Vulnerability]:
        """Analyze a single file through the same request path.

        Raises:
            ValidationError: If the path, API key or model is missing.
            FileProcessingError: If the file cannot be read or is too large.
            AIAnalysisError: If the request or its validation fails.
        """
        self.state = AnalysisState.IDLE
        if file_path is None or not str(file_path).strip():
            raise ValidationError("File path is required and must be a string")
        check_credentials(self.config, "AI analysis")

        path = Path(file_path).expanduser().resolve()
        try:
            entry = read_source_file(path, path.parent, self.builder.max_file_size)
        except (OSError, UnicodeDecodeError, FileTooLargeError) as exc:
            self.state = AnalysisState.FAILED
            raise FileProcessingError(
                f"Failed to analyze file: {file_path}", file_path, cause=exc
            ) from exc

        self.state = AnalysisState.CONTEXT_BUILT
        return self._request(CodebaseContext.from_files(path.parent, [entry]))

    def _request(self, context: CodebaseContext) -> list[Vulnerability]:
        if self.cancellation is not None:
            self.cancellation.raise_if_cancelled("analysis request")

        prompt = self.formatter.build_analysis_prompt(context)
        self.state = AnalysisState.REQUESTING
        try:
            raw = self.invoker.invoke(prompt, SecurityAnalysisResponse)
        except VibeCheckError:
            self.state = AnalysisState.FAILED
            raise
        except Exception as exc:
            self.state = AnalysisState.FAILED
            raise AIAnalysisError("AI analysis request failed", cause=exc) from exc

        try:
            response = self._validate(raw)
        except AIAnalysisError:
            self.state = AnalysisState.FAILED
            raise

        logger.debug(
            "Model summary: %d issues, overall risk %s, critical findings %s",
            response.summary.total_issues,
            response.summary.overall_risk,
            response.summary.critical_findings,
        )
        vulnerabilities = self._keep_known_paths(response.vulnerabilities, context)
        self.state = AnalysisState.VALIDATED
        return vulnerabilities

    @staticmethod
    def _validate(raw: Any) -> SecurityAnalysisResponse:
        if not isinstance(raw, Mapping) or not isinstance(raw.get("vulnerabilities"), list):
            raise AIAnalysisError("Invalid response format from AI analysis")
        try:
            return SecurityAnalysisResponse.model_validate(raw)
        except SchemaValidationError as exc:
            raise AIAnalysisError(
                "AI response does not match the analysis schema", cause=exc
            ) from exc

    @staticmethod
    def _keep_known_paths(
        vulnerabilities: list[Vulnerability], context: CodebaseContext
    ) -> list[Vulnerability]:
        known = context.paths()
        kept: list[Vulnerability] = []
        for vulnerability in vulnerabilities:
            path = normalize_reported_path(vulnerability.file)
            if path not in known:
                logger.warning(
                    "Dropping finding for file not sent to the model: %s:%d",
                    vulnerability.file,
                    vulnerability.line,
                )
                continue
            if path != vulnerability.file:
                vulnerability = vulnerability.model_copy(update={"file": path})
            kept.append(vulnerability)
        return kept
