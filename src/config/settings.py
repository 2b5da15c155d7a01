# src/config/settings.py — v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for credentials, cache, retry and logging settings.
Explicit client options passed by a caller always win over these values.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === LLM ===
    default_model: str = "gpt-4o"

    # Provider credentials
    openai_api_key: str = ""
    openai_organization: str = ""
    openai_base_url: str = ""
    anthropic_api_key: str = ""
    anthropic_base_url: str = ""

    # Self-hosted relay / Codebuff proxy
    backend_url: str = ""
    codebuff_auth_token: str = ""
    codebuff_fingerprint_id: str = ""

    request_timeout_s: float = 60.0

    # === Retry ===
    llm_max_retries: int = 3
    retry_base_delay_s: float = 0.5
    retry_backoff_factor: float = 2.0
    retry_jitter: bool = True

    # === Cache ===
    enable_caching: bool = True
    cache_backend: Literal["memory", "json", "sqlite", "redis"] = "memory"
    cache_root: Path = Path("~/.pagepilot/cache")
    cache_redis_url: str = ""

    # === Logging ===
    verbose: int = Field(default=1, ge=0, le=2)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @field_validator("llm_max_retries")
    @classmethod
    def validate_max_retries(cls, v: int) -> int:  # noqa: N805
        if v < 0:
            raise ValueError("llm_max_retries must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.cache_backend == "redis" and not self.cache_redis_url:
            errors.append("CACHE_REDIS_URL must be set when CACHE_BACKEND=redis")

        if self.retry_base_delay_s < 0 or self.retry_backoff_factor < 1.0:
            errors.append(
                "RETRY_BASE_DELAY_S must be >= 0 and RETRY_BACKOFF_FACTOR >= 1"
            )

        if bool(self.codebuff_auth_token) != bool(self.codebuff_fingerprint_id):
            errors.append(
                "CODEBUFF_AUTH_TOKEN and CODEBUFF_FINGERPRINT_ID must be set together"
            )

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    def client_options_for(self, provider: str) -> dict[str, Any]:
        """Build client options for a provider from configured values.

        Empty values are omitted so provider SDKs fall back to their own
        environment lookup.
        """
        if provider == "openai":
            opts = {
                "api_key": self.openai_api_key,
                "organization": self.openai_organization,
                "base_url": self.openai_base_url,
            }
        elif provider == "anthropic":
            opts = {
                "api_key": self.anthropic_api_key,
                "base_url": self.anthropic_base_url,
            }
        elif provider == "backend":
            opts = {"backend_url": self.backend_url}
        elif provider == "codebuff":
            opts = {
                "backend_url": self.backend_url,
                "auth_token": self.codebuff_auth_token,
                "fingerprint_id": self.codebuff_fingerprint_id,
            }
        else:
            opts = {}
        opts = {k: v for k, v in opts.items() if v}
        opts["timeout"] = self.request_timeout_s
        return opts


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
