from __future__ import annotations

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Project-wide configuration loaded from environment variables (.env optional)."""

    # Rentcast API – the key MUST be provided via environment or .env
    RENTCAST_API_KEY: str | None = Field(None, description="API key sent in the X-Api-Key header")
    RENTCAST_BASE_URL: str = Field("https://api.rentcast.io/v1", description="Base URL of the Rentcast REST API")
    TIMEOUT_SECONDS: float = Field(30, gt=0, description="Timeout applied to every upstream request")

    # Session budget & rate limiting
    MAX_API_CALLS_PER_SESSION: int = Field(40, ge=0, description="Upstream calls allowed for the lifetime of the process")
    ENABLE_RATE_LIMITING: bool = Field(True, description="Space upstream calls according to RATE_LIMIT_PER_MINUTE")
    RATE_LIMIT_PER_MINUTE: int = Field(60, ge=1, description="Maximum upstream calls per minute when rate limiting is on")

    # Logging
    LOG_LEVEL: str = Field("INFO", description="Root log level for Loguru")
    LOG_FILE: str | None = Field(None, description="Optional rotating log file (stderr is always used)")
    DEBUG: bool = Field(False, description="Force DEBUG log level")

    # SSE transport
    HOST: str = Field("127.0.0.1", description="Bind address for the HTTP/SSE transport")
    PORT: int = Field(8000, description="HTTP port for the HTTP/SSE transport")

    model_config = {
        "env_file": ".env",
        "case_sensitive": False,
        "extra": "ignore",
        "env_prefix": "",
    }

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------
    @model_validator(mode="after")
    def _ensure_api_key_set(self):  # noqa: D401 – pydantic hook
        """Fail fast if the Rentcast API key is missing."""
        if not self.RENTCAST_API_KEY or not self.RENTCAST_API_KEY.strip():
            raise ValueError(
                "RENTCAST_API_KEY is not set. Define it via environment variable (.env or export) before starting the server."
            )
        self.RENTCAST_BASE_URL = self.RENTCAST_BASE_URL.rstrip("/")
        return self

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.DEBUG else self.LOG_LEVEL.upper()

    @property
    def masked_api_key(self) -> str:
        return f"{(self.RENTCAST_API_KEY or '')[:8]}..."


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide :class:`Settings` instance (built on first use)."""
    return Settings()
