"""Application configuration using pydantic-settings."""
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Admin client settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Backend REST API - shared with the dashboard frontend (VITE_ prefix)
    api_url: str = Field(
        default="http://localhost:8000/api/v1",
        validation_alias="VITE_API_URL",
    )
    api_timeout: float = Field(default=30.0, gt=0, validation_alias="ADMIN_API_TIMEOUT")

    # Optional token for unattended use; an interactive sign-in replaces it
    api_token: str | None = Field(default=None, validation_alias="ADMIN_API_TOKEN")

    # Cache behavior
    default_page_size: int = Field(default=10, gt=0, validation_alias="ADMIN_PAGE_SIZE")
    whole_collection_ttl: float = Field(
        default=300.0, ge=0, validation_alias="ADMIN_CACHE_TTL",
    )

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    @field_validator("api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the base URL so paths can always start with '/'."""
        return v.rstrip("/")

    @field_validator("api_token")
    @classmethod
    def empty_token_is_none(cls, v: str | None) -> str | None:
        """Treat an empty token variable as no token."""
        return v or None

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        """Accept log levels in any case."""
        return v.upper()


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
