"""
Centralized failure classification for upload retry routing.

Every failure raised while delivering a recording ends up as exactly one of
three kinds, and the queue processor routes on that kind alone:

- NetworkFailure: the request never reached the server. Environment-wide,
  does not consume retry budget, stops the current pass.
- AuthFailure: the server rejected the credential (401/403) or there is no
  session. Environment-wide, does not consume retry budget, stops the pass.
- ServerFailure: anything else (validation, 5xx, bad response shape,
  unreadable artifact). Item-specific, consumes retry budget.

Classification inspects types and status codes only, never message text.
"""

import logging
from enum import Enum
from typing import Optional, Type

import httpx


# HTTP status codes that mean the credential was rejected or has expired
AUTH_CODES = frozenset({401, 403})

# Module logger
logger = logging.getLogger(__name__)


class FailureKind(str, Enum):
    """Classification-relevant kind carried by every UploadFailure."""
    NETWORK = "network"
    AUTH = "auth"
    SERVER = "server"


class UploadFailure(Exception):
    """Base class for typed upload failures."""

    kind: FailureKind = FailureKind.SERVER

    def __init__(self, message: str = "Upload failed", status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class NetworkFailure(UploadFailure):
    """Request could not reach the server at all (offline, DNS, timeout)."""
    kind = FailureKind.NETWORK


class AuthFailure(UploadFailure):
    """Credential rejected, expired or missing."""
    kind = FailureKind.AUTH


class ServerFailure(UploadFailure):
    """Any other failure: validation, server error, unexpected response shape."""
    kind = FailureKind.SERVER


_CLASS_BY_KIND = {
    FailureKind.NETWORK: NetworkFailure,
    FailureKind.AUTH: AuthFailure,
    FailureKind.SERVER: ServerFailure,
}


def classify_http_error(status_code: int) -> Type[UploadFailure]:
    """
    Classify an HTTP status code.

    Args:
        status_code: HTTP response status code

    Returns:
        AuthFailure for 401/403, ServerFailure for everything else
    """
    if status_code in AUTH_CODES:
        logger.debug(f"HTTP {status_code} classified as auth failure")
        return AuthFailure

    logger.debug(f"HTTP {status_code} classified as server failure")
    return ServerFailure


def classify_exception(exc: BaseException) -> Type[UploadFailure]:
    """
    Classify an exception raised by an upload attempt.

    Handles, in order:
    - Already typed UploadFailure: class for its kind
    - HTTP responses (httpx.HTTPStatusError or anything with .response): status code
    - Transport errors (httpx.TransportError, ConnectionError, TimeoutError, OSError): network
    - Missing/unreadable artifact (FileNotFoundError, PermissionError...): server
    - Unknown: server (item-specific, consumes retry budget)

    Args:
        exc: The exception to classify

    Returns:
        NetworkFailure, AuthFailure or ServerFailure class
    """
    if isinstance(exc, UploadFailure):
        return _CLASS_BY_KIND.get(exc.kind, ServerFailure)

    # Check for HTTP response (httpx, requests, etc.)
    response = getattr(exc, 'response', None)
    if response is not None:
        status_code = getattr(response, 'status_code', None)
        if isinstance(status_code, int):
            logger.debug(f"Exception has HTTP response with status {status_code}")
            return classify_http_error(status_code)

    if isinstance(exc, httpx.TransportError):
        logger.debug(f"Transport error classified as network failure: {type(exc).__name__}")
        return NetworkFailure

    # Local file problems are about this item, not connectivity
    if isinstance(exc, (FileNotFoundError, IsADirectoryError, PermissionError)):
        logger.debug(f"Artifact error classified as server failure: {type(exc).__name__}")
        return ServerFailure

    if isinstance(exc, (ConnectionError, TimeoutError, OSError)):
        logger.debug(f"Network error classified as network failure: {type(exc).__name__}")
        return NetworkFailure

    logger.debug(f"Unknown exception classified as server failure: {type(exc).__name__}")
    return ServerFailure


def failure_message(exc: BaseException) -> str:
    """Human-readable diagnostic for lastError."""
    if isinstance(exc, UploadFailure):
        return exc.message
    text = str(exc)
    return text if text else "Upload failed"


__all__ = [
    'AUTH_CODES',
    'FailureKind',
    'UploadFailure',
    'NetworkFailure',
    'AuthFailure',
    'ServerFailure',
    'classify_http_error',
    'classify_exception',
    'failure_message',
]
