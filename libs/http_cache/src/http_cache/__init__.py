"""On-disk caching infrastructure for fetched documents."""

from .config import CacheConfig, get_cache_config
from .document_store import DocumentCache, atomic_write
from .keyed_lock import KeyedLock

__all__ = ["CacheConfig", "DocumentCache", "KeyedLock", "atomic_write", "get_cache_config"]
