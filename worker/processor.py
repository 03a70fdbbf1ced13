"""
Queue processor for delivering queued recordings.

One pass walks a snapshot of eligible items in FIFO order and uploads them
one at a time:
- Success: item removed, recordings cache invalidated
- NetworkFailure / AuthFailure: item back to pending, pass stops (the
  condition is environment-wide, retrying the rest would only burn requests)
- ServerFailure: item marked failed (consumes one retry), pass continues
  (one bad recording must not block the others)

At most one pass runs at a time; the flag guarding that is always released,
whatever happens inside the pass.
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional, Protocol

from shared.log import create_logger
from upload_queue.models import QueuedUpload, UploadStatus
from upload_queue.state import UploadQueueState
from validation.errors import (
    AuthFailure,
    NetworkFailure,
    classify_exception,
    failure_message,
)

log_trace, log_debug, log_info, log_warn, log_error = create_logger("Worker")

NETWORK_UNAVAILABLE = "network unavailable"
AUTHENTICATION_REQUIRED = "authentication required"
UPLOAD_CANCELLED = "upload cancelled"
UPLOAD_INTERRUPTED = "upload interrupted"


class Uploader(Protocol):
    """Delivers one recording. Raises typed UploadFailure subclasses."""

    async def upload(self, locator: str, duration_seconds: float, recorded_at: datetime): ...


@dataclass
class PassResult:
    """Outcome of one process_queue() call."""
    attempted: int = 0
    delivered: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    stopped_by: Optional[str] = None       # "network", "auth" or None
    skipped: bool = False                  # another pass running, or throttled

    @property
    def stopped_early(self) -> bool:
        return self.stopped_by is not None


class QueueProcessor:
    """
    Runs processing passes over an UploadQueueState.

    Args:
        state: Queue state to read eligible items from and write transitions to
        uploader: Collaborator performing the actual upload
        invalidate_cache: Called (no arguments) after each successful delivery
        min_pass_interval: Skip a pass if the previous one started less than
                           this many seconds ago (0 = never skip)
        clock: Monotonic time source, for tests
    """

    def __init__(
        self,
        state: UploadQueueState,
        uploader: Uploader,
        invalidate_cache: Optional[Callable[[], None]] = None,
        min_pass_interval: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.state = state
        self.uploader = uploader
        self.invalidate_cache = invalidate_cache
        self.min_pass_interval = min_pass_interval
        self._clock = clock
        self._last_pass_started: Optional[float] = None

    def _throttled(self) -> bool:
        if self.min_pass_interval <= 0 or self._last_pass_started is None:
            return False
        elapsed = self._clock() - self._last_pass_started
        return elapsed < self.min_pass_interval

    async def process_queue(self) -> PassResult:
        """
        Run one pass over the queue.

        Returns immediately (skipped=True) if a pass is already running or the
        pass is throttled. Items enqueued while the pass runs are left for the
        next pass.
        """
        result = PassResult()

        with self.state.processing() as acquired:
            if not acquired:
                log_trace("Pass already running, skipping")
                result.skipped = True
                return result

            if self._throttled():
                log_trace(f"Pass throttled (min interval {self.min_pass_interval}s)")
                result.skipped = True
                return result

            items = self.state.eligible()
            if not items:
                return result

            self._last_pass_started = self._clock()
            log_debug(f"Processing {len(items)} queued upload(s)")

            for item in items:
                result.attempted += 1
                if not await self._process_item(item, result):
                    break

        self._log_pass_summary(result)
        return result

    async def _process_item(self, item: QueuedUpload, result: PassResult) -> bool:
        """
        Upload a single item and record the transition.

        Whatever aborts the attempt once the item is "uploading" (cancellation,
        a failed queue write) puts it back to pending before propagating, so
        the next pass picks it up again.

        Returns:
            True to continue with the next item, False to stop the pass
        """
        upload_id = item.id
        self.state.update_status(upload_id, UploadStatus.UPLOADING)
        log_trace(f"Uploading {upload_id} (attempt {item.retry_count + 1})")

        try:
            return await self._attempt_upload(item, result)
        except asyncio.CancelledError:
            self.state.release(upload_id, UPLOAD_CANCELLED)
            log_debug(f"Upload {upload_id} cancelled, returned to pending")
            raise
        except BaseException as e:
            self.state.release(upload_id, UPLOAD_INTERRUPTED)
            log_warn(f"Upload {upload_id} interrupted, returned to pending: {e}")
            raise

    async def _attempt_upload(self, item: QueuedUpload, result: PassResult) -> bool:
        upload_id = item.id
        try:
            await self.uploader.upload(item.locator, item.duration_seconds, item.recorded_at)
        except Exception as e:
            failure = classify_exception(e)

            if failure is NetworkFailure:
                self.state.update_status(upload_id, UploadStatus.PENDING, NETWORK_UNAVAILABLE)
                result.stopped_by = "network"
                log_debug(f"Network unavailable uploading {upload_id}, stopping pass: {e}")
                return False

            if failure is AuthFailure:
                self.state.update_status(upload_id, UploadStatus.PENDING, AUTHENTICATION_REQUIRED)
                result.stopped_by = "auth"
                log_warn(f"Authentication required uploading {upload_id}, stopping pass")
                return False

            message = failure_message(e)
            self.state.update_status(upload_id, UploadStatus.FAILED, message)
            result.failed.append(upload_id)
            updated = self.state.get(upload_id)
            if updated is not None and updated.is_exhausted:
                log_error(f"Upload {upload_id} exhausted its retries: {message}")
            else:
                log_warn(f"Upload {upload_id} failed: {message}")
            return True

        self.state.remove(upload_id)
        result.delivered.append(upload_id)
        log_info(f"Upload {upload_id} delivered")
        self._signal_delivery()
        return True

    def _signal_delivery(self) -> None:
        """Fire-and-forget cache invalidation. Errors never affect the queue."""
        if self.invalidate_cache is None:
            return
        try:
            self.invalidate_cache()
        except Exception as e:
            log_warn(f"Cache invalidation failed: {e}")

    def _log_pass_summary(self, result: PassResult) -> None:
        if result.attempted == 0:
            return
        summary = (
            f"Pass complete: {len(result.delivered)}/{result.attempted} delivered, "
            f"{len(result.failed)} failed"
        )
        if result.stopped_by:
            summary += f", stopped ({result.stopped_by})"
        log_info(summary)


__all__ = [
    'AUTHENTICATION_REQUIRED',
    'NETWORK_UNAVAILABLE',
    'UPLOAD_CANCELLED',
    'UPLOAD_INTERRUPTED',
    'PassResult',
    'QueueProcessor',
    'Uploader',
]
