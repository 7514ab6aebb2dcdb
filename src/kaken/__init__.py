"""Async client for the KAKEN research grant and researcher search APIs."""

from kaken.exceptions import (
    AuthError,
    KakenError,
    NotFoundError,
    RateLimitError,
    RequestError,
    ResponseError,
)
from kaken.services import KakenClient
from kaken.settings import Settings

__all__ = [
    "AuthError",
    "KakenClient",
    "KakenError",
    "NotFoundError",
    "RateLimitError",
    "RequestError",
    "ResponseError",
    "Settings",
]
