"""Environment-driven settings."""

from __future__ import annotations

from typing import Literal

from pydantic import Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from searchapi_mcp.exceptions import ConfigurationError
from searchapi_mcp.transport.http_body import DEFAULT_MAX_BODY_BYTES

DEFAULT_SEARCHAPI_BASE_URL = "https://www.searchapi.io/api/v1/search"
DEFAULT_SEARCHAPI_TIMEOUT_MS = 30_000

MISSING_API_KEY_MESSAGE = "SEARCHAPI_API_KEY environment variable is required"


class Settings(BaseSettings):
    """Server settings.

    Every field maps to the environment variable of the same name in upper
    case, e.g. SEARCHAPI_API_KEY or PORT. A ``.env`` file in the working
    directory is read as well.
    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # SearchAPI.io
    searchapi_api_key: SecretStr
    searchapi_base_url: str = DEFAULT_SEARCHAPI_BASE_URL
    searchapi_timeout: int = Field(DEFAULT_SEARCHAPI_TIMEOUT_MS, gt=0)
    """Upstream request timeout in milliseconds."""

    # HTTP settings
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # Session settings
    session_idle_timeout: float | None = Field(None, gt=0)
    """Seconds of inactivity after which a session is closed. Unset means sessions never expire."""
    max_body_bytes: int = Field(DEFAULT_MAX_BODY_BYTES, gt=0)

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value

    @field_validator("searchapi_api_key")
    @classmethod
    def _require_api_key(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value().strip():
            raise ValueError(MISSING_API_KEY_MESSAGE)
        return value


def load_settings(**overrides: object) -> Settings:
    """Load settings, turning a missing API key into a ConfigurationError."""
    try:
        return Settings(**overrides)  # type: ignore[arg-type]
    except ValidationError as e:
        if any(error["loc"] and error["loc"][0] == "searchapi_api_key" for error in e.errors()):
            raise ConfigurationError(MISSING_API_KEY_MESSAGE) from e
        raise ConfigurationError(f"Invalid configuration: {e}") from e
