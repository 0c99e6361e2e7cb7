"""Custom exceptions for the document cache library."""


class CacheError(Exception):
    """Base exception for cache-related errors."""


class CacheStorageError(CacheError):
    """Raised when a cache file cannot be written or replaced."""

    def __init__(self, path: str, reason: str | None = None):
        message = f"Failed to store cache document {path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.path = path


class InvalidMaxAgeError(CacheError):
    """Raised when a freshness window is negative."""

    def __init__(self, max_age_seconds: float | None = None):
        if max_age_seconds is not None:
            super().__init__(f"max_age must be non-negative, got {max_age_seconds}s")
        else:
            super().__init__("max_age must be non-negative")
