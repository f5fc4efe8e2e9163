from __future__ import annotations

import json
import logging
import time
from typing import Any, Final, Protocol, runtime_checkable

import httpx
from openai import APIConnectionError, APIStatusError, APITimeoutError, OpenAI, OpenAIError
from pydantic import BaseModel

from vibe_check.errors import ModelInvocationError
from vibe_check.models.config import ScanConfig
from vibe_check.models.schemas import response_format

logger = logging.getLogger(__name__)

RETRIABLE_STATUS_CODES: Final[frozenset[int]] = frozenset({408, 429, 500, 502, 503, 504})
SYSTEM_PROMPT: Final[str] = (
    "You are a security analysis engine. Reply with ONLY a JSON object that "
    "matches the requested schema, without markdown fences or commentary."
)


@runtime_checkable
class ModelInvoker(Protocol):
    """Narrow capability used by the analysis and insight services."""

    def invoke(self, prompt: str, schema: type[BaseModel]) -> Any:
        """Send ``prompt`` and return the structured object the model produced.

        Raises:
            ModelInvocationError: On transport or protocol failures.
        """
        ...


def _strip_fences(text: str) -> str:
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = stripped.split("\n", 1)[1] if "\n" in stripped else ""
        if stripped.rstrip().endswith("```"):
            stripped = stripped.rstrip()[:-3]
    return stripped.strip()


def _is_retriable(error: OpenAIError) -> bool:
    if isinstance(error, (APIConnectionError, APITimeoutError)):
        return True
    if isinstance(error, APIStatusError):
        return error.status_code in RETRIABLE_STATUS_CODES
    return False


class OpenRouterClient:
    """Model invoker backed by an OpenAI-compatible chat completions API."""

    def __init__(
        self,
        cfg: ScanConfig,
        *,
        client: OpenAI | None = None,
        max_attempts: int = 3,
        initial_delay: float = 0.75,
        timeout: float = 120.0,
        max_tokens: int | None = None,
        sleep=time.sleep,
    ) -> None:
        self.cfg = cfg
        self._client: OpenAI = client or OpenAI(
            api_key=cfg.api_key,
            base_url=cfg.base_url,
            timeout=httpx.Timeout(timeout, connect=10.0),
            max_retries=0,
        )
        self.max_attempts = max(1, max_attempts)
        self.initial_delay = initial_delay
        self.max_tokens = max_tokens
        self._sleep = sleep

    def _chat_with_retry(self, params: dict[str, Any]) -> Any:
        delay = self.initial_delay
        attempt = 1
        while True:
            try:
                return self._client.chat.completions.create(**params)
            except OpenAIError as exc:
                if attempt >= self.max_attempts or not _is_retriable(exc):
                    raise
                logger.warning(
                    "Model request failed (attempt %d/%d), retrying in %.2fs: %s",
                    attempt,
                    self.max_attempts,
                    delay,
                    exc,
                )
                self._sleep(delay)
                delay *= 1.7
                attempt += 1

    def invoke(self, prompt: str, schema: type[BaseModel]) -> Any:
        params: dict[str, Any] = {
            "model": self.cfg.model,
            "response_format": response_format(schema),
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        }
        if self.max_tokens is not None:
            params["max_tokens"] = self.max_tokens

        logger.debug("Requesting %s from %s (%d prompt chars)", schema.__name__, self.cfg.model, len(prompt))
        try:
            response = self._chat_with_retry(params)
        except APIStatusError as exc:
            raise ModelInvocationError(
                f"Model API returned HTTP {exc.status_code}: {exc.message}",
                status_code=exc.status_code,
            ) from exc
        except OpenAIError as exc:
            raise ModelInvocationError(f"Model request failed: {exc}") from exc

        choices = getattr(response, "choices", None) or []
        if not choices:
            raise ModelInvocationError("Model response contained no choices")
        text = choices[0].message.content
        if not text:
            raise ModelInvocationError("Model response was empty")

        try:
            return json.loads(_strip_fences(text))
        except json.JSONDecodeError as exc:
            raise ModelInvocationError(f"Model response is not valid JSON: {exc}") from exc
