"""
Configuration module for the web search orchestrator.

Uses Pydantic Settings for environment variable support and validation.
Runtime search preferences (API key, instances, feature flags) live in
the settings store instead; see ``core.search_config``.
"""

from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import Optional, Literal
from pathlib import Path


class Settings(BaseSettings):
    """
    Process-level configuration with environment variable support.

    All settings can be overridden via environment variables or .env file.
    """

    # API Keys
    anthropic_api_key: Optional[str] = Field(
        default=None,
        description="Anthropic API key used for query optimization (optional)"
    )
    brave_api_key: Optional[str] = Field(
        default=None,
        description="Initial Brave Search API key, used when none is stored yet"
    )

    # Query optimization
    optimization_model: str = Field(
        default="claude-3-5-haiku-latest",
        description="Preferred chat model for query rewriting"
    )
    default_language: Literal["de", "en"] = Field(
        default="de",
        description="Language assumed when detection is undecided"
    )

    # Quota
    brave_monthly_limit: int = Field(
        default=2000,
        ge=1,
        description="Monthly Brave Search request allowance"
    )

    # Caches
    search_cache_size: int = Field(default=100, ge=1)
    search_cache_ttl_minutes: float = Field(default=15, gt=0)
    content_cache_size: int = Field(default=50, ge=1)
    content_cache_ttl_minutes: float = Field(default=30, gt=0)

    # Concurrency and timeouts
    multi_query_workers: int = Field(default=3, ge=1, le=16)
    multi_query_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        description="Upper bound for a multi-query fan-out"
    )
    enrichment_workers: int = Field(default=4, ge=1, le=16)
    provider_timeout_seconds: float = Field(default=15.0, gt=0)
    fetch_timeout_seconds: float = Field(default=10.0, gt=0)

    # Logging settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level"
    )
    log_file: Optional[str] = Field(
        default=None,
        description="Optional log file path"
    )
    json_logs: bool = Field(
        default=False,
        description="Output logs as JSON (for production)"
    )

    # Paths
    settings_file: str = Field(
        default="data/settings.json",
        description="JSON file backing the settings store"
    )

    model_config = {
        "env_file": [
            ".env",
            Path(__file__).parent / ".env",
        ],
        "env_file_encoding": "utf-8",
        "extra": "ignore"
    }

    @field_validator("anthropic_api_key", "brave_api_key", mode="before")
    @classmethod
    def validate_api_key(cls, v: Optional[str]) -> Optional[str]:
        """Treat empty keys as unset and reject placeholder values."""
        if v is None or v == "":
            return None
        if v.startswith("your-") or v == "xxx":
            raise ValueError("API key must be set to a valid value or left empty")
        return v.strip()


def get_settings() -> Settings:
    """
    Get application settings.

    Returns a fresh settings instance read from the environment.
    """
    return Settings()
