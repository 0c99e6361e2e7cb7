"""AniDB metadata fetching, caching and parsing."""

from .client import AniDBClient
from .exceptions import AniDBBannedError, AniDBError, AniDBFetchError, AniDBResponseError
from .providers import AniDBEpisodeProvider, AniDBSeriesImagesProvider, AniDBSeriesProvider
from .rate_limiter import AniDBRateLimiter, get_shared_anidb_rate_limiter
from .series_cache import AniDBSeriesCache

__all__ = [
    "AniDBBannedError",
    "AniDBClient",
    "AniDBEpisodeProvider",
    "AniDBError",
    "AniDBFetchError",
    "AniDBRateLimiter",
    "AniDBResponseError",
    "AniDBSeriesCache",
    "AniDBSeriesImagesProvider",
    "AniDBSeriesProvider",
    "get_shared_anidb_rate_limiter",
]
