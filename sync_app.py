"""
VoiceSync composition root.

SyncApp builds every piece of the upload queue from a validated SyncConfig
and wires them together explicitly:

    store -> queue state (rehydrated + recovered) -> processor
    uploader (recordings API)   recordings cache (invalidated on delivery)

The host application owns one SyncApp and passes it (or its ``state`` /
``processor``) to whatever needs to enqueue or trigger processing.

Usage:
    config, error = validate_config({"api_url": "https://api.example.com"})
    app = SyncApp(config, token_provider=session.access_token)
    outcome = await app.record_stopped("/rec/a.m4a", 12.0)
    await app.connectivity_restored()
    await app.close()
"""

import inspect
import os
from datetime import datetime
from typing import Callable, Optional

from hooks.handlers import (
    UploadOutcome,
    on_app_foregrounded,
    on_connectivity_restored,
    on_recording_stopped,
)
from shared.log import create_logger
from upload_queue.state import UploadQueueState
from upload_queue.storage import QueueStore, create_backend
from uploader.cache import RecordingsCache
from uploader.client import RecordingUploader, RemoteRecord, TokenProvider
from validation.config import SyncConfig
from worker.processor import PassResult, QueueProcessor, Uploader

log_trace, log_debug, log_info, log_warn, log_error = create_logger()


class SyncApp:
    """
    Owns the queue, its processor and their collaborators.

    Args:
        config: Validated configuration
        token_provider: Returns the current access token (or None when signed out)
        uploader: Override the recordings API client (tests, alternative transports)
        cache: Override the recordings cache
        session_check: Returns True while signed in. Required when token_provider
                       is async; otherwise derived from token_provider.
    """

    def __init__(
        self,
        config: SyncConfig,
        token_provider: Optional[TokenProvider] = None,
        uploader: Optional[Uploader] = None,
        cache: Optional[RecordingsCache] = None,
        session_check: Optional[Callable[[], bool]] = None,
    ):
        if (
            token_provider is not None
            and session_check is None
            and inspect.iscoroutinefunction(token_provider)
        ):
            raise ValueError("session_check is required when token_provider is async")

        self.config = config
        self._token_provider = token_provider
        self._session_check = session_check

        os.makedirs(config.data_dir, exist_ok=True)
        backend = create_backend(config.storage_backend, config.data_dir)
        self.store = QueueStore(backend, slot=config.queue_slot)
        self.state = UploadQueueState.open(self.store)

        if uploader is None:
            uploader = RecordingUploader(
                config.api_url,
                token_provider=token_provider,
                connect_timeout=config.connect_timeout,
                timeout=config.upload_timeout,
            )
        self.uploader = uploader

        if cache is None:
            cache = RecordingsCache(config.data_dir, ttl=config.cache_ttl)
        self.cache = cache

        self.processor = QueueProcessor(
            self.state,
            self.uploader,
            invalidate_cache=self.cache.invalidate,
            min_pass_interval=config.min_pass_interval,
        )

        stats = self.state.stats()
        if stats['total']:
            log_info(
                f"Upload queue: {stats['pending']} pending, {stats['failed']} failed, "
                f"{stats['exhausted']} exhausted"
            )

    def has_session(self) -> bool:
        """
        True if a session is available for queue passes.

        Raises:
            TypeError: token_provider returned an awaitable and no
                       session_check was given.
        """
        if self._session_check is not None:
            return self._session_check()
        if self._token_provider is None:
            return False
        token = self._token_provider()
        if inspect.isawaitable(token):
            if inspect.iscoroutine(token):
                token.close()
            raise TypeError("token_provider returned an awaitable; pass session_check to SyncApp")
        return bool(token)

    # -------------------------------------------------------------------------
    # Trigger surface
    # -------------------------------------------------------------------------

    def enqueue(self, locator: str, duration_seconds: float, recorded_at: Optional[datetime] = None) -> str:
        return self.state.enqueue(locator, duration_seconds, recorded_at)

    async def record_stopped(
        self,
        locator: str,
        duration_seconds: float,
        recorded_at: Optional[datetime] = None,
    ) -> UploadOutcome:
        return await on_recording_stopped(
            self.state,
            self.uploader,
            locator,
            duration_seconds,
            recorded_at,
            invalidate_cache=self.cache.invalidate,
        )

    async def process_queue(self) -> PassResult:
        return await self.processor.process_queue()

    async def connectivity_restored(self) -> Optional[PassResult]:
        return await on_connectivity_restored(self.processor, self.has_session)

    async def app_foregrounded(self) -> Optional[PassResult]:
        return await on_app_foregrounded(self.processor, self.has_session)

    def clear_exhausted(self) -> int:
        return self.state.clear_exhausted()

    def stats(self) -> dict:
        return self.state.stats()

    # -------------------------------------------------------------------------
    # Recordings list (read-through cache)
    # -------------------------------------------------------------------------

    async def get_recordings(self, limit: int = 20, offset: int = 0) -> list[RemoteRecord]:
        """
        Recordings page, served from cache when fresh.

        Raises:
            UploadFailure subclasses from the API client on a cache miss.
            TypeError: Cache miss and the uploader cannot list recordings.
        """
        cached = self.cache.get_recordings(limit, offset)
        if cached is not None:
            return cached
        list_recordings = getattr(self.uploader, 'list_recordings', None)
        if list_recordings is None:
            raise TypeError(f"{type(self.uploader).__name__} cannot list recordings")
        records = await list_recordings(limit=limit, offset=offset)
        self.cache.set_recordings(records, limit, offset)
        return records

    async def close(self) -> None:
        """Release the HTTP client, the cache and the storage backend."""
        if isinstance(self.uploader, RecordingUploader):
            await self.uploader.close()
        self.cache.close()
        self.store.close()
        log_trace("SyncApp closed")


__all__ = ['SyncApp']
