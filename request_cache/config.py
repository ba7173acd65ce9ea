"""
Configuration management for the request cache.
"""

from typing import Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CacheSettings(BaseSettings):
    """Settings read from ``REQUEST_CACHE_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="REQUEST_CACHE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Logging
    log_level: str = Field(default="info")

    # Fetch defaults
    default_max_age: float = Field(default=float("inf"), ge=0)
    default_retries: int = Field(default=1, ge=0)

    # Retry backoff
    retry_base_delay: float = Field(default=1.0, ge=0)
    retry_max_delay: float = Field(default=30.0, ge=0)
    retry_exponential_base: float = Field(default=2.0, ge=1)
    retry_jitter: bool = Field(default=False)
    retry_backoff_strategy: str = Field(default="exponential", pattern="^(exponential|linear|fixed)$")

    # Transport
    base_url: Optional[str] = Field(default=None)
    transport_timeout: float = Field(default=10.0, gt=0)
    default_headers: Dict[str, str] = Field(default_factory=dict)


def get_settings(**overrides) -> CacheSettings:
    """Build settings from the environment, with explicit overrides on top."""
    return CacheSettings(**overrides)
