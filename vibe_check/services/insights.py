from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as SchemaValidationError

from vibe_check.clients.llm import ModelInvoker
from vibe_check.errors import InsightGenerationError, ValidationError, VibeCheckError
from vibe_check.models.config import ScanConfig
from vibe_check.models.report import Vulnerability
from vibe_check.models.schemas import InsightResponse
from vibe_check.services.analyzer import check_credentials
from vibe_check.services.prompt_formatter import PromptFormatter
from vibe_check.utils.cancellation import CancellationToken

logger = logging.getLogger(__name__)


class InsightGeneratorService(BaseModel):
    """Turn a vulnerability list into a narrative risk assessment."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    config: ScanConfig
    invoker: ModelInvoker
    formatter: PromptFormatter = Field(default_factory=PromptFormatter)
    cancellation: CancellationToken | None = None

    def generate_insights(self, vulnerabilities: Sequence[Vulnerability]) -> list[str]:
        """Request the narrative for a set of findings.

        An empty list is valid input; the model then describes a clean codebase.

        Args:
            vulnerabilities: Findings returned by the analysis request.

        Returns:
            Single-element list holding the narrative paragraph.

        Raises:
            ValidationError: If the input is not a list or credentials are missing.
            InsightGenerationError: If the request fails or the response lacks
                the narrative or the risk assessment.
        """
        if not isinstance(vulnerabilities, (list, tuple)):
            raise ValidationError("Vulnerabilities must be provided as an array")
        check_credentials(self.config, "insight generation")

        if self.cancellation is not None:
            self.cancellation.raise_if_cancelled("insight request")

        prompt = self.formatter.build_insight_prompt(vulnerabilities)
        try:
            raw = self.invoker.invoke(prompt, InsightResponse)
        except VibeCheckError:
            raise
        except Exception as exc:
            raise InsightGenerationError("Failed to generate AI insights", cause=exc) from exc

        response = self._validate(raw)
        logger.debug(
            "Model risk assessment: %s, priority areas %s",
            response.risk_assessment.overall_risk,
            response.risk_assessment.priority_areas,
        )
        return [response.insight.strip()]

    @staticmethod
    def _validate(raw: Any) -> InsightResponse:
        if not isinstance(raw, Mapping):
            raise InsightGenerationError("Invalid response format from AI insight generation")
        insight = raw.get("insight")
        if not isinstance(insight, str) or not insight.strip():
            raise InsightGenerationError("AI response missing insight narrative")
        if raw.get("risk_assessment") is None:
            raise InsightGenerationError("AI response missing risk assessment")
        try:
            return InsightResponse.model_validate(raw)
        except SchemaValidationError as exc:
            raise InsightGenerationError(
                "AI response does not match the insight schema", cause=exc
            ) from exc
