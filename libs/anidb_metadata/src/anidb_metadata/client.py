"""AniDB HTTP API client.

Fetches the per-anime detail document and the bulk title index. Every request
first passes through the shared AniDB rate limiter, then through the optional
configured extra delay. Bodies are gunzipped when needed and stripped of the
NUL character references AniDB occasionally emits, which no XML parser accepts.
"""

import asyncio
import gzip
import logging
import zlib
from types import TracebackType
from typing import Any

import aiohttp

from common.config import Settings, get_settings

from .exceptions import AniDBBannedError, AniDBFetchError, AniDBResponseError
from .rate_limiter import AniDBRateLimiter, get_shared_anidb_rate_limiter

logger = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b"
NUL_CHARACTER_REFERENCE = b"&#x0;"
BANNED_STATUS = 555


def sanitize_document(content: bytes) -> bytes:
    """Remove ``&#x0;`` character references from a raw XML payload."""
    return content.replace(NUL_CHARACTER_REFERENCE, b"")


def decompress_document(content: bytes) -> bytes:
    """Gunzip ``content`` if it carries the gzip magic number.

    Raises:
        ValueError: If the payload looks gzipped but cannot be decompressed.
    """
    if not content.startswith(GZIP_MAGIC):
        return content
    try:
        return gzip.decompress(content)
    except (OSError, EOFError, zlib.error) as e:
        raise ValueError(f"corrupt gzip payload: {e}") from e


def _error_message(content: bytes) -> str | None:
    head = content.lstrip()[:512]
    if not head.startswith(b"<error"):
        return None
    text = head.decode("utf-8", errors="replace")
    start = text.find(">") + 1
    end = text.find("</error>")
    return text[start:end if end != -1 else None].strip() or "unknown error"


class AniDBClient:
    """Rate-limited async client for the AniDB HTTP API.

    Args:
        settings: Provider settings. Defaults to the environment-driven settings.
        session: Optional externally managed aiohttp session. The client only
            closes sessions it created itself.
        rate_limiter: Limiter acquired before every request. Defaults to the
            process-wide shared limiter.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
        rate_limiter: AniDBRateLimiter | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.session = session
        self._owns_session = session is None
        self.rate_limiter = rate_limiter or get_shared_anidb_rate_limiter()

    def _client_params(self) -> dict[str, str]:
        return {
            "client": self.settings.anidb_client_name,
            "clientver": self.settings.anidb_client_version,
            "protover": self.settings.anidb_protocol_version,
        }

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self.session is None:
            headers = {
                "Accept-Encoding": "gzip, deflate",
                "User-Agent": (
                    f"{self.settings.anidb_client_name}/"
                    f"{self.settings.anidb_client_version}"
                ),
                "Accept": "application/xml, text/xml",
            }
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.settings.anidb_request_timeout),
                headers=headers,
            )
            self._owns_session = True
            logger.debug("Created AniDB session")
        return self.session

    async def _get(self, url: str, params: dict[str, Any] | None = None) -> bytes:
        """Perform one rate-limited GET and return the decoded payload bytes.

        Raises:
            AniDBBannedError: On HTTP 555.
            AniDBResponseError: When the body is an ``<error>`` document.
            AniDBFetchError: On any other network or payload failure.
        """
        await self.rate_limiter.tick()
        if self.settings.anidb_wait_time_ms > 0:
            await asyncio.sleep(self.settings.anidb_wait_time_ms / 1000)

        session = await self._ensure_session()
        logger.debug(f"AniDB request: {url} params={params}")

        try:
            async with session.get(url, params=params) as response:
                if response.status == BANNED_STATUS:
                    logger.error("AniDB banned/blocked (555) - rate limit violation")
                    raise AniDBBannedError(url)
                if response.status != 200:
                    raise AniDBFetchError(url, f"HTTP {response.status}")
                content = await response.read()
        except aiohttp.ClientError as e:
            raise AniDBFetchError(url, str(e) or type(e).__name__) from e
        except asyncio.TimeoutError as e:
            raise AniDBFetchError(url, "request timed out") from e

        try:
            content = decompress_document(content)
        except ValueError as e:
            raise AniDBFetchError(url, str(e)) from e

        message = _error_message(content)
        if message is not None:
            logger.warning(f"AniDB returned error response: {message}")
            raise AniDBResponseError(url, message)

        logger.debug(f"AniDB response: {len(content)} bytes from {url}")
        return sanitize_document(content)

    async def fetch_anime(self, anidb_id: str) -> bytes:
        """Fetch the detail document of one anime."""
        params = {"request": "anime", **self._client_params(), "aid": str(anidb_id)}
        return await self._get(self.settings.anidb_api_url, params=params)

    async def fetch_title_index(self) -> bytes:
        """Fetch the bulk title index of every anime."""
        return await self._get(self.settings.anidb_titles_url)

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self.session is not None and self._owns_session:
            try:
                await self.session.close()
                logger.debug("AniDB session closed")
            except Exception as e:
                logger.warning(f"Error closing AniDB session: {e}")
            finally:
                self.session = None

    async def __aenter__(self) -> "AniDBClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> bool:
        await self.close()
        return False
