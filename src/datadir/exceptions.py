"""
Custom exception hierarchy for the data directory cache.

All exceptions inherit from DataDirError, which provides optional context
for structured error handling and logging.
"""

from __future__ import annotations

from typing import Any


class DataDirError(Exception):
    """Base exception for all data directory errors.

    Attributes:
        message: Human-readable error message.
        context: Optional structured context for logging/debugging.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class ConfigurationError(DataDirError):
    """Raised when configuration is invalid or missing.

    Examples:
        - HURDAT2_URL is not an http(s) URL
        - HTTP_TIMEOUT is not positive
    """

    pass


class StorageError(DataDirError):
    """Raised when a filesystem operation on the data directory fails.

    Context should include:
        - path: The path being created, written or renamed
        - error: The underlying OS error message
    """

    pass


class FetchError(DataDirError):
    """Raised when fetching a remote resource fails.

    Context should include:
        - url: The URL that was being fetched
        - error: The underlying transport error message
    """

    pass


class UnexpectedStatusError(FetchError):
    """Raised when the server answers with neither 200 nor 304.

    Context should include:
        - url: The URL that was being fetched
        - status_code: HTTP status code of the response
    """

    @property
    def status_code(self) -> int | None:
        """Status code of the offending response."""
        return self.context.get("status_code")


class MetadataError(DataDirError):
    """Raised when validator metadata cannot be decoded.

    Context should include:
        - path: The .meta file, when known
    """

    pass


class HeaderEncodingError(DataDirError):
    """Raised when a validator header value is not valid UTF-8.

    Context should include:
        - header: The header name (Last-Modified or ETag)
    """

    pass


class ObjectNotFoundError(DataDirError):
    """Raised when opening an object that has never been fetched.

    Context should include:
        - name: The object name
        - path: The resolved path that does not exist
    """

    pass
