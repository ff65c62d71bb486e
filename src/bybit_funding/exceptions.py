"""Custom exceptions for the funding rate downloader.

Every failure the downloader can hit is fatal to the run; nothing here is
retried. Kept in one module to avoid circular imports between layers.
"""

from pathlib import Path


class DownloaderError(Exception):
    """Base exception for all downloader errors."""


class NetworkError(DownloaderError):
    """Raised when a request fails, returns non-2xx, or the exchange rejects it."""


class DecodeError(DownloaderError):
    """Raised when an API response does not have the expected shape.

    The offending response body is kept on the exception so it can be logged.
    """

    def __init__(self, message: str, body: object = None) -> None:
        super().__init__(message)
        self.body = body


class ParseError(DownloaderError):
    """Raised when an existing on-disk series file is malformed."""

    def __init__(self, message: str, path: Path, line_number: int) -> None:
        super().__init__(f"{path}:{line_number}: {message}")
        self.path = path
        self.line_number = line_number


class LimiterClosedError(DownloaderError):
    """Raised when the rate limiter is used after it has been closed."""
