"""
uploader.client: async recordings API client.

Design notes:
- Async-only: all public methods are coroutines. Synchronous callers use asyncio.run().
- Uses httpx.AsyncClient. Caller must call close() when done.
- Every failure leaves this module as a typed UploadFailure (NetworkFailure,
  AuthFailure, ServerFailure) so the queue processor never has to inspect
  messages.
- The access token is fetched per request from a provider callable, so a
  refreshed session is picked up without rebuilding the client.

Exports:
    RecordingUploader -- async client (upload + list)
    RemoteRecord      -- typed Pydantic model for a stored recording
"""

from __future__ import annotations

import asyncio
import base64
import inspect
import logging
import os
from datetime import datetime
from typing import Awaitable, Callable, Optional, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from validation.errors import (
    AuthFailure,
    NetworkFailure,
    ServerFailure,
    classify_http_error,
)

log = logging.getLogger("VoiceSync.uploader")

TokenProvider = Callable[[], Union[Optional[str], Awaitable[Optional[str]]]]


# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class RemoteRecord(BaseModel):
    """A recording as stored by the server. Unknown response fields are ignored."""

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    id: str
    filename: Optional[str] = None
    duration_seconds: Optional[float] = Field(default=None, alias='durationSeconds')
    recorded_at: Optional[datetime] = Field(default=None, alias='recordedAt')
    created_at: Optional[datetime] = Field(default=None, alias='createdAt')


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _read_artifact(locator: str) -> bytes:
    with open(locator, 'rb') as f:
        return f.read()


def _error_message(response: httpx.Response, fallback: str) -> str:
    """
    Extract an error message from an error response body.

    Handles both application errors ({"error": {"message": ...}}) and
    validation errors ({"message": ...}).
    """
    try:
        body = response.json()
    except ValueError:
        return fallback
    if not isinstance(body, dict):
        return fallback
    error = body.get('error')
    if isinstance(error, dict) and isinstance(error.get('message'), str):
        return error['message']
    if isinstance(body.get('message'), str):
        return body['message']
    return fallback


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class RecordingUploader:
    """
    Async client for the recordings API.

    Usage::

        uploader = RecordingUploader("https://api.example.com", token_provider=session.token)
        try:
            record = await uploader.upload("/rec/a.m4a", 12.0, recorded_at)
        finally:
            await uploader.close()
    """

    def __init__(
        self,
        api_url: str,
        token_provider: Optional[TokenProvider] = None,
        connect_timeout: float = 5.0,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Create the recordings client.

        Args:
            api_url:         Base URL of the API, e.g. ``https://api.example.com``.
                             Trailing slashes are stripped automatically.
            token_provider:  Callable (sync or async) returning the current access
                             token, or None when there is no session.
            connect_timeout: Connect timeout in seconds (default 5).
            timeout:         Total request timeout in seconds (default 60).
            transport:       Optional httpx transport (tests, proxies).
        """
        self._base_url = api_url.rstrip("/")
        self._token_provider = token_provider
        self._client = httpx.AsyncClient(
            headers={"Accept": "application/json"},
            timeout=httpx.Timeout(timeout, connect=connect_timeout),
            transport=transport,
        )
        log.debug("RecordingUploader initialised, url=%s", self._base_url)

    async def close(self) -> None:
        """Close the underlying httpx client and release connections."""
        await self._client.aclose()

    async def _auth_headers(self) -> dict[str, str]:
        """
        Build the Authorization header.

        Raises:
            AuthFailure: No active session.
        """
        token = None
        if self._token_provider is not None:
            token = self._token_provider()
            if inspect.isawaitable(token):
                token = await token
        if not token:
            raise AuthFailure("no active session")
        return {"Authorization": f"Bearer {token}"}

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """
        Send an authenticated request and map failures to typed errors.

        Raises:
            NetworkFailure: Server unreachable or request timed out.
            AuthFailure:    No session, or HTTP 401/403.
            ServerFailure:  Any other non-2xx response.
        """
        headers = await self._auth_headers()
        try:
            resp = await self._client.request(
                method, f"{self._base_url}{path}", headers=headers, **kwargs
            )
        except httpx.TransportError as exc:
            raise NetworkFailure(f"Cannot reach recordings API: {exc}") from exc

        if resp.is_error:
            failure = classify_http_error(resp.status_code)
            message = _error_message(resp, f"HTTP {resp.status_code}")
            raise failure(message, status_code=resp.status_code)
        return resp

    async def upload(
        self,
        locator: str,
        duration_seconds: float,
        recorded_at: datetime,
    ) -> RemoteRecord:
        """
        Upload a recording file.

        Args:
            locator:          Local path of the recording.
            duration_seconds: Recording length in seconds.
            recorded_at:      When it was recorded.

        Returns:
            RemoteRecord describing the stored recording.

        Raises:
            NetworkFailure: Server unreachable or request timed out.
            AuthFailure:    No session, or credential rejected.
            ServerFailure:  Artifact unreadable, server rejected the upload, or
                            the response could not be parsed.
        """
        try:
            data = await asyncio.to_thread(_read_artifact, locator)
        except OSError as exc:
            raise ServerFailure(f"Cannot read recording {locator}: {exc}") from exc

        payload = {
            "file": base64.b64encode(data).decode("ascii"),
            "filename": os.path.basename(locator),
            "durationSeconds": duration_seconds,
            "recordedAt": recorded_at.isoformat(),
        }
        resp = await self._request("POST", "/recordings", json=payload)

        try:
            record = RemoteRecord.model_validate(resp.json())
        except (ValueError, ValidationError) as exc:
            raise ServerFailure(f"Unexpected upload response: {exc}") from exc

        log.debug("Uploaded %s as recording %s (%d bytes)", locator, record.id, len(data))
        return record

    async def list_recordings(self, limit: int = 20, offset: int = 0) -> list[RemoteRecord]:
        """
        Fetch a page of the user's recordings.

        Accepts either a bare JSON list or an object with an ``items`` list.

        Raises:
            NetworkFailure, AuthFailure, ServerFailure: as for upload().
        """
        resp = await self._request(
            "GET", "/recordings", params={"limit": limit, "offset": offset}
        )
        try:
            body = resp.json()
            items = body.get("items", []) if isinstance(body, dict) else body
            return [RemoteRecord.model_validate(item) for item in items]
        except (ValueError, TypeError, AttributeError) as exc:
            raise ServerFailure(f"Unexpected recordings response: {exc}") from exc


__all__ = ['RecordingUploader', 'RemoteRecord', 'TokenProvider']
