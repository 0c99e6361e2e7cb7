"""
Root test configuration for all tests.

Provides settings and cache configuration isolated from any local ``.env``
file and from the real cache directory.
"""

from collections.abc import Generator
from pathlib import Path

import pytest

from common.config.settings import Settings, get_settings
from http_cache.config import CacheConfig, get_cache_config


@pytest.fixture(autouse=True)
def clear_cached_config() -> Generator[None, None, None]:
    """Reset the lru-cached settings singletons around every test."""
    get_settings.cache_clear()
    get_cache_config.cache_clear()
    yield
    get_settings.cache_clear()
    get_cache_config.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Provide default settings that ignore any developer ``.env`` file."""
    return Settings(_env_file=None)


@pytest.fixture
def cache_config(tmp_path: Path) -> CacheConfig:
    """Provide a cache configuration rooted in a per-test temporary directory."""
    return CacheConfig(_env_file=None, cache_root=tmp_path)
