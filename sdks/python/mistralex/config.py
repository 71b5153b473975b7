"""
Configuration for the mistralex Python SDK.

Settings come from, in order of precedence: explicit arguments, ``MISTRAL_*``
environment variables, built-in defaults.

    MISTRAL_API_KEY       API key (required)
    MISTRAL_BASE_URL      API base URL (default: https://api.mistral.ai)
    MISTRAL_TIMEOUT       Request timeout in milliseconds (default: 30000)
    MISTRAL_MAX_RETRIES   Retries after the first attempt (default: 3)
    MISTRAL_RETRY_DELAY   Base backoff delay in milliseconds (default: 1000)
    MISTRAL_USER_AGENT    User agent string
"""

import os
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .exceptions import MistralConfigurationError

DEFAULT_BASE_URL = "https://api.mistral.ai"
DEFAULT_TIMEOUT_MS = 30_000
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY_MS = 1_000
DEFAULT_USER_AGENT = "mistralex-python/0.1.0"

_ENV_VARS = {
    "api_key": "MISTRAL_API_KEY",
    "base_url": "MISTRAL_BASE_URL",
    "timeout": "MISTRAL_TIMEOUT",
    "max_retries": "MISTRAL_MAX_RETRIES",
    "retry_delay": "MISTRAL_RETRY_DELAY",
    "user_agent": "MISTRAL_USER_AGENT",
}
_INT_SETTINGS = ("timeout", "max_retries", "retry_delay")


class ClientConfig(BaseModel):
    """Validated, immutable client settings."""

    model_config = ConfigDict(frozen=True)

    api_key: str
    base_url: str = DEFAULT_BASE_URL
    timeout: int = DEFAULT_TIMEOUT_MS
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay: int = DEFAULT_RETRY_DELAY_MS
    user_agent: str = DEFAULT_USER_AGENT

    @field_validator("api_key")
    @classmethod
    def _api_key_present(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("API key is required")
        return v

    @field_validator("base_url")
    @classmethod
    def _base_url_http(cls, v: str) -> str:
        if not v:
            raise ValueError("Base URL must be a non-empty string")
        if not v.startswith(("http://", "https://")):
            raise ValueError("Base URL must start with http:// or https://")
        return v

    @field_validator("timeout")
    @classmethod
    def _timeout_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Timeout must be a positive integer")
        return v

    @field_validator("max_retries", "retry_delay")
    @classmethod
    def _non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be a non-negative integer")
        return v

    @property
    def timeout_seconds(self) -> float:
        return self.timeout / 1000.0

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        **overrides: Any,
    ) -> "ClientConfig":
        """
        Build a config from environment variables plus explicit overrides.

        Args:
            environ: Mapping to read instead of ``os.environ``
            **overrides: Explicit settings; ``None`` values are ignored

        Raises:
            MistralConfigurationError: If a setting is missing or invalid
        """
        environ = os.environ if environ is None else environ
        values: Dict[str, Any] = {}

        for setting, var in _ENV_VARS.items():
            raw = environ.get(var)
            if raw is None or raw == "":
                continue
            if setting in _INT_SETTINGS:
                try:
                    values[setting] = int(raw)
                except ValueError:
                    raise MistralConfigurationError(
                        f"{var} must be an integer, got {raw!r}", setting=setting
                    ) from None
            else:
                values[setting] = raw

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.create(**values)

    @classmethod
    def create(cls, **values: Any) -> "ClientConfig":
        """Validate settings, raising ``MistralConfigurationError`` on failure."""
        if not values.get("api_key"):
            raise MistralConfigurationError("API key is required", setting="api_key")
        try:
            return cls(**values)
        except ValidationError as e:
            first = e.errors()[0]
            setting = str(first["loc"][0]) if first.get("loc") else None
            raise MistralConfigurationError(
                f"Invalid setting '{setting}': {first['msg']}", setting=setting
            ) from e
