"""Error taxonomy for the KAKEN client."""

from __future__ import annotations


class KakenError(Exception):
    """Base class for every error raised by the client."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class RequestError(KakenError):
    """Invalid search parameters or a request that could not be completed."""


class ResponseError(KakenError):
    """The response body could not be parsed into the expected format."""


class AuthError(KakenError):
    """Authentication failed."""

    def __init__(self, message: str, status_code: int | None = 401) -> None:
        super().__init__(message, status_code)


class RateLimitError(KakenError):
    """The API rate limit was exceeded."""

    def __init__(self, message: str, status_code: int | None = 429) -> None:
        super().__init__(message, status_code)


class NotFoundError(KakenError):
    """The requested resource does not exist."""

    def __init__(self, message: str, status_code: int | None = 404) -> None:
        super().__init__(message, status_code)


class FetchTimeoutError(KakenError):
    """A single transport attempt exceeded its timeout."""


class TransientHTTPError(KakenError):
    """A retryable (5xx or otherwise not ok) HTTP status."""
