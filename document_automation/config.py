from __future__ import annotations

from typing import Mapping, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError

DEFAULT_MODEL = "gemini-2.5-flash"


class Settings(BaseSettings):
    """Runtime configuration read from the environment and `.env`."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
        frozen=True,
        protected_namespaces=(),
    )

    gemini_api_key: Optional[str] = Field(None, validation_alias="GEMINI_API_KEY")
    model_name: str = Field(DEFAULT_MODEL, validation_alias="GEMINI_MODEL")
    webhook_url: Optional[str] = Field(None, validation_alias="N8N_WEBHOOK_URL")
    frontend_url: str = Field("*", validation_alias="FRONTEND_URL")
    host: str = Field("0.0.0.0", validation_alias="HOST")
    port: int = Field(4000, validation_alias="PORT")
    automation_timeout: float = Field(20.0, gt=0, validation_alias="AUTOMATION_TIMEOUT")
    max_upload_mb: float = Field(10.0, gt=0, validation_alias="MAX_UPLOAD_MB")
    strict_schema: bool = Field(False, validation_alias="STRICT_SCHEMA")
    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"

    @property
    def max_upload_bytes(self) -> int:
        return int(self.max_upload_mb * 1024 * 1024)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """
        Load settings from the process environment, or from `environ` when given.

        Invalid values raise ConfigurationError naming the offending variables.
        """
        try:
            if environ is None:
                return cls()
            return cls.model_validate(dict(environ))
        except ValidationError as exc:
            names = ", ".join(
                str(err["loc"][0]) for err in exc.errors() if err.get("loc")
            )
            raise ConfigurationError(f"Invalid configuration value for: {names}") from exc

    def require_api_key(self) -> str:
        if not self.gemini_api_key:
            raise ConfigurationError(
                "GEMINI_API_KEY is not set. Please set GEMINI_API_KEY in the environment or .env."
            )
        return self.gemini_api_key
