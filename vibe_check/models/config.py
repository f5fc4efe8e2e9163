from typing import Final

from pydantic import BaseModel, Field

OPENROUTER_BASE_URL: Final[str] = "https://openrouter.ai/api/v1"
OPENROUTER_KEY_PREFIX: Final[str] = "sk-or-v1-"

OPENROUTER_MODELS: Final[dict[str, str]] = {
    "deepseek/deepseek-r1": "DeepSeek R1 (Excellent reasoning, 163K context)",
    "google/gemini-2.0-flash-exp": "Gemini 2.0 Flash Exp (Fast & capable, 1M context)",
    "meta-llama/llama-3.3-70b-instruct": "Llama 3.3 70B (Balanced performance)",
    "qwen/qwen-2.5-72b-instruct": "Qwen 2.5 72B (Strong coding ability)",
    "qwen/qwen-2.5-coder-32b-instruct": "Qwen 2.5 Coder 32B (Code specialist)",
    "mistralai/mistral-small-3.1-24b-instruct": "Mistral Small 3.1 24B (Efficient & fast)",
    "deepseek/deepseek-chat-v3-0324": "DeepSeek V3 (Fast responses)",
    "google/gemma-3-27b-it": "Gemma 3 27B (Google's latest)",
    "qwen/qwq-32b": "QwQ 32B (Reasoning focused)",
    "meta-llama/llama-4-maverick": "Llama 4 Maverick (Latest Meta)",
}

DEFAULT_MODEL: Final[str] = "deepseek/deepseek-r1"


class ScanConfig(BaseModel):
    """Credentials and model selection used by every remote request."""

    api_key: str = Field(..., description="API key for the model provider")
    model: str = Field(default=DEFAULT_MODEL, description="Model identifier")
    base_url: str = Field(
        default=OPENROUTER_BASE_URL, description="OpenAI-compatible API base URL"
    )

    def validation_errors(self) -> list[str]:
        """List problems that make this configuration unusable."""
        errors: list[str] = []
        if not self.api_key.strip():
            errors.append("API key is required and must be a string")
        if not self.model.strip():
            errors.append("Model is required and must be a string")
        return errors

    @property
    def masked_api_key(self) -> str:
        return "****" + self.api_key[-4:]
