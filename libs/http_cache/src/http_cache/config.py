"""
Cache configuration for documents fetched over HTTP.

Documents are persisted under a single cache root on local disk and
refetched wholesale once they are older than their freshness window.
"""

from datetime import timedelta
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CacheConfig(BaseSettings):
    """On-disk document cache configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    cache_root: Path = Field(
        default=Path("cache"),
        description="Root directory; every cached artifact lives below it",
    )

    # Freshness windows (in days) - AniDB data changes slowly and is expensive to fetch
    series_max_age_days: float = Field(
        default=7,
        ge=0,
        description="Maximum age of anidb/series/<id>/series.xml before refetch",
    )
    title_index_max_age_days: float = Field(
        default=7,
        ge=0,
        description="Maximum age of the bulk animetitles.xml index before refetch",
    )

    @property
    def series_max_age(self) -> timedelta:
        """Freshness window of series detail documents."""
        return timedelta(days=self.series_max_age_days)

    @property
    def title_index_max_age(self) -> timedelta:
        """Freshness window of the bulk title index."""
        return timedelta(days=self.title_index_max_age_days)


@lru_cache
def get_cache_config() -> CacheConfig:
    """Get cached CacheConfig instance populated from environment variables.

    Environment variables are automatically read by Pydantic BaseSettings:
        CACHE_ROOT (default: "cache")
        SERIES_MAX_AGE_DAYS (default: 7)
        TITLE_INDEX_MAX_AGE_DAYS (default: 7)

    Returns:
        Cached CacheConfig instance.

    Note:
        Uses @lru_cache for singleton pattern. For testing, call
        get_cache_config.cache_clear() to reset the cache.
    """
    return CacheConfig()
