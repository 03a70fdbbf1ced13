"""
Trigger handlers for the upload queue.

These are the entry points host application events call into:
- on_recording_stopped: immediate upload of a fresh recording; queued only
  when the attempt fails because the network is down
- on_connectivity_restored / on_app_foregrounded: run a queue pass, but only
  while a session is available (without one every item would just bounce
  with an auth failure)
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from shared.log import create_logger
from upload_queue.state import UploadQueueState
from validation.errors import NetworkFailure, classify_exception, failure_message
from worker.processor import PassResult, QueueProcessor, Uploader

log_trace, log_debug, log_info, log_warn, log_error = create_logger("Hooks")


class UploadOutcomeStatus(str, Enum):
    """What happened to a freshly stopped recording."""
    UPLOADED = "uploaded"
    QUEUED = "queued"
    ERROR = "error"


@dataclass
class UploadOutcome:
    status: UploadOutcomeStatus
    record: Optional[object] = None          # RemoteRecord on success
    queued_id: Optional[str] = None
    error: Optional[str] = None


async def on_recording_stopped(
    state: UploadQueueState,
    uploader: Uploader,
    locator: str,
    duration_seconds: float,
    recorded_at: Optional[datetime] = None,
    invalidate_cache: Optional[Callable[[], None]] = None,
) -> UploadOutcome:
    """
    Upload a just-finished recording right away.

    Only a NetworkFailure puts the recording in the queue; auth and server
    failures are reported back to the caller (the user can retry from the UI)
    and nothing is queued.

    Args:
        state: Upload queue to fall back to
        uploader: Upload collaborator
        locator: Local path of the recording
        duration_seconds: Recording length in seconds
        recorded_at: When it was recorded (default: now, UTC)
        invalidate_cache: Called after a successful upload

    Returns:
        UploadOutcome describing whether it was uploaded, queued, or failed
    """
    if recorded_at is None:
        recorded_at = datetime.now(timezone.utc)

    try:
        record = await uploader.upload(locator, duration_seconds, recorded_at)
    except Exception as e:
        if classify_exception(e) is NetworkFailure:
            upload_id = state.enqueue(locator, duration_seconds, recorded_at)
            log_info(f"Offline, recording queued for later upload ({upload_id})")
            return UploadOutcome(UploadOutcomeStatus.QUEUED, queued_id=upload_id)

        message = failure_message(e)
        log_warn(f"Upload failed, not queued: {message}")
        return UploadOutcome(UploadOutcomeStatus.ERROR, error=message)

    if invalidate_cache is not None:
        try:
            invalidate_cache()
        except Exception as e:
            log_warn(f"Cache invalidation failed: {e}")

    log_debug(f"Recording uploaded immediately ({duration_seconds:g}s)")
    return UploadOutcome(UploadOutcomeStatus.UPLOADED, record=record)


async def _run_pass(
    processor: QueueProcessor,
    has_session: Callable[[], bool],
    trigger: str,
) -> Optional[PassResult]:
    if not has_session():
        log_trace(f"{trigger}: no session, queue pass skipped")
        return None
    log_trace(f"{trigger}: running queue pass")
    return await processor.process_queue()


async def on_connectivity_restored(
    processor: QueueProcessor,
    has_session: Callable[[], bool],
) -> Optional[PassResult]:
    """
    Handle the device coming back online.

    Returns:
        PassResult, or None if skipped for lack of a session
    """
    return await _run_pass(processor, has_session, "Connectivity restored")


async def on_app_foregrounded(
    processor: QueueProcessor,
    has_session: Callable[[], bool],
) -> Optional[PassResult]:
    """
    Handle the app returning to the foreground (and initial launch).

    Returns:
        PassResult, or None if skipped for lack of a session
    """
    return await _run_pass(processor, has_session, "App foregrounded")


__all__ = [
    'UploadOutcome',
    'UploadOutcomeStatus',
    'on_recording_stopped',
    'on_connectivity_restored',
    'on_app_foregrounded',
]
