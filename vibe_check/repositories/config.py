from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Final

from dotenv import dotenv_values, find_dotenv
from pydantic import BaseModel, Field
from pydantic import ValidationError as SchemaValidationError

from vibe_check.errors import ConfigurationError
from vibe_check.models.config import ScanConfig

logger = logging.getLogger(__name__)

CONFIG_DIR: Final[Path] = Path.home() / ".vibe-check"
CONFIG_FILE: Final[Path] = CONFIG_DIR / "config.json"

ENV_OVERRIDES: Final[dict[str, str]] = {
    "api_key": "VIBE_CHECK_API_KEY",
    "model": "VIBE_CHECK_MODEL",
    "base_url": "VIBE_CHECK_BASE_URL",
}


class ConfigRepository(BaseModel):
    """Persisted ``{api_key, model, base_url}`` record.

    Values from the environment (or a ``.env`` file) take precedence over the
    stored file so CI jobs can scan without running the interactive setup.
    """

    config_file: Path = Field(default=CONFIG_FILE)
    use_env: bool = True

    def exists(self) -> bool:
        return self.config_file.is_file()

    def _read_file(self) -> dict[str, Any]:
        try:
            raw = self.config_file.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise ConfigurationError(
                f"Could not read configuration file {self.config_file}", cause=exc
            ) from exc
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(
                f"Configuration file {self.config_file} is not valid JSON", cause=exc
            ) from exc
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file {self.config_file} must hold an object")
        # files written by older releases used camelCase
        if "apiKey" in data and "api_key" not in data:
            data["api_key"] = data.pop("apiKey")
        return data

    def _env_values(self) -> dict[str, str]:
        if not self.use_env:
            return {}
        # the .env is looked up from the working directory, process variables win over it
        dotenv_path = find_dotenv(usecwd=True)
        file_values = dotenv_values(dotenv_path) if dotenv_path else {}
        values: dict[str, str] = {}
        for field, var in ENV_OVERRIDES.items():
            value = (os.getenv(var) or file_values.get(var) or "").strip()
            if value:
                values[field] = value
        return values

    def load(self) -> ScanConfig | None:
        """Load the configuration.

        Returns:
            The configuration, or ``None`` when neither the file nor the
            environment provides one.

        Raises:
            ConfigurationError: If the stored configuration is unreadable or invalid.
        """
        data = self._read_file()
        data.update(self._env_values())
        if not data:
            return None
        try:
            cfg = ScanConfig.model_validate(data)
        except SchemaValidationError as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}", cause=exc) from exc
        errors = cfg.validation_errors()
        if errors:
            raise ConfigurationError(f"Invalid configuration: {', '.join(errors)}")
        return cfg

    def save(self, cfg: ScanConfig) -> None:
        errors = cfg.validation_errors()
        if errors:
            raise ConfigurationError(f"Invalid configuration: {', '.join(errors)}")
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        try:
            self.config_file.write_text(
                json.dumps(cfg.model_dump(mode="json"), indent=2), encoding="utf-8"
            )
            os.chmod(self.config_file, 0o600)
        except OSError:
            logger.exception("Failed to write configuration to %s", self.config_file)
            raise

    def update(self, **changes: str) -> ScanConfig:
        """Merge ``changes`` into the stored configuration and save it."""
        current = self._read_file()
        current.update({key: value for key, value in changes.items() if value is not None})
        try:
            cfg = ScanConfig.model_validate(current)
        except SchemaValidationError as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}", cause=exc) from exc
        self.save(cfg)
        return cfg

    def delete(self) -> bool:
        """Remove the configuration file; ``False`` when there was none."""
        try:
            self.config_file.unlink()
        except FileNotFoundError:
            return False
        return True
