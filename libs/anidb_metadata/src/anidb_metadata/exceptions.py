"""Exceptions for AniDB fetching and parsing."""


class AniDBError(Exception):
    """Base exception for AniDB errors."""

    pass


class AniDBFetchError(AniDBError):
    """Raised when a document cannot be fetched from AniDB.

    Covers network failures, unexpected HTTP statuses and undecodable
    payloads. Never raised for cancellation.
    """

    def __init__(self, url: str, reason: str):
        super().__init__(f"AniDB request to {url} failed: {reason}")
        self.url = url
        self.reason = reason


class AniDBBannedError(AniDBFetchError):
    """Raised when AniDB answers HTTP 555, i.e. the client has been banned."""

    def __init__(self, url: str):
        super().__init__(url, "client banned (HTTP 555)")


class AniDBResponseError(AniDBFetchError):
    """Raised when AniDB answers 200 with an ``<error>`` document."""

    def __init__(self, url: str, message: str):
        super().__init__(url, f"error response: {message}")
        self.message = message
