"""
In-memory upload queue with write-through persistence.

UploadQueueState is the only way to mutate the queue. It is constructed
explicitly (normally by the composition root) and passed to whoever needs to
enqueue or process; there is no module-level instance.

Thread safety: every operation holds an internal re-entrant lock, and each
mutation is persisted while the lock is held, so a UI thread enqueueing while
a pass runs cannot interleave partial writes.

Mutations are all-or-nothing: if persisting raises StorageError the
in-memory queue is left exactly as it was before the call.
"""

import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional, Sequence

from shared.log import create_logger
from upload_queue.models import (
    MAX_RETRIES,
    QueuedUpload,
    UploadStatus,
    create_upload,
)
from upload_queue.recovery import repair_interrupted
from upload_queue.storage import QueueStore, StorageError

log_trace, log_debug, log_info, log_warn, log_error = create_logger("Queue")


class UploadQueueState:
    """
    Ordered queue of uploads keyed by id, plus the processing flag.

    Insertion order is FIFO priority. Use UploadQueueState.open(store) to
    rehydrate from storage; the constructor trusts the items it is given.

    Args:
        store: Persistent store every mutation is written through to
        items: Initial items in FIFO order
    """

    def __init__(self, store: QueueStore, items: Sequence[QueuedUpload] = ()):
        self._store = store
        self._lock = threading.RLock()
        self._items: dict[str, QueuedUpload] = {}
        for item in items:
            self._items[item.id] = item
        self._is_processing = False

    @classmethod
    def open(cls, store: QueueStore) -> 'UploadQueueState':
        """
        Load the persisted queue, repair interrupted uploads, and return the state.

        Recovery runs exactly once here, before the state is visible to any
        caller, so no pass can ever observe a stale "uploading" item.
        """
        items = store.load()
        items, repaired = repair_interrupted(items)
        state = cls(store, items)
        if repaired:
            state._persist()
        log_debug(f"Queue opened with {len(items)} item(s)")
        return state

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def enqueue(
        self,
        locator: str,
        duration_seconds: float,
        recorded_at: Optional[datetime] = None,
    ) -> str:
        """
        Append a new pending upload at the end of the queue.

        Args:
            locator: Local path to the recording
            duration_seconds: Recording length in seconds
            recorded_at: When it was recorded (default: now, UTC)

        Returns:
            The new item's id
        """
        item = create_upload(locator, duration_seconds, recorded_at)
        with self._lock, self._transaction():
            self._items[item.id] = item
        log_info(f"Queued upload {item.id} ({duration_seconds:g}s)")
        return item.id

    def remove(self, upload_id: str) -> None:
        """Delete an item. Unknown ids are ignored."""
        with self._lock:
            if upload_id not in self._items:
                log_trace(f"Remove ignored, upload {upload_id} not in queue")
                return
            with self._transaction():
                del self._items[upload_id]
        log_trace(f"Removed upload {upload_id}")

    def update_status(
        self,
        upload_id: str,
        status: UploadStatus,
        error: Optional[str] = None,
    ) -> None:
        """
        Transition an item to a new status.

        Moving to FAILED increments retry_count; any other status leaves it
        unchanged. last_error is overwritten with ``error`` (None clears it).
        Unknown ids are ignored (the item may have been purged meanwhile).
        """
        status = UploadStatus(status)
        with self._lock:
            item = self._items.get(upload_id)
            if item is None:
                log_trace(f"Status update ignored, upload {upload_id} not in queue")
                return
            retry_count = item.retry_count + 1 if status == UploadStatus.FAILED else item.retry_count
            with self._transaction():
                self._items[upload_id] = item.model_copy(update={
                    'status': status,
                    'retry_count': retry_count,
                    'last_error': error,
                })
        log_trace(f"Upload {upload_id} -> {status.value} (retries: {retry_count})")

    def release(self, upload_id: str, error: str) -> None:
        """
        Return an item left "uploading" by an aborted attempt to pending.

        Unlike update_status(), the in-memory change always sticks: if the
        write fails it is logged and the stale "uploading" record on disk is
        repaired by startup recovery. Items in any other status are left
        alone. retry_count is unchanged.
        """
        with self._lock:
            item = self._items.get(upload_id)
            if item is None or item.status != UploadStatus.UPLOADING:
                return
            self._items[upload_id] = item.model_copy(update={
                'status': UploadStatus.PENDING,
                'last_error': error,
            })
            try:
                self._persist()
            except StorageError as e:
                log_warn(f"Upload {upload_id} released in memory only: {e}")
                return
        log_trace(f"Upload {upload_id} released back to pending ({error})")

    def clear_exhausted(self) -> int:
        """
        Remove every item whose retry budget is used up.

        Never called automatically: exhausted items stay visible until a
        caller decides to discard them.

        Returns:
            Number of items removed
        """
        with self._lock:
            exhausted = [i for i, item in self._items.items() if item.is_exhausted]
            if not exhausted:
                return 0
            with self._transaction():
                for upload_id in exhausted:
                    del self._items[upload_id]
        log_info(f"Cleared {len(exhausted)} exhausted upload(s)")
        return len(exhausted)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def snapshot(self) -> list[QueuedUpload]:
        """All items in FIFO order."""
        with self._lock:
            return list(self._items.values())

    def eligible(self) -> list[QueuedUpload]:
        """Items a pass may process: pending or failed, retries left, FIFO order."""
        with self._lock:
            return [item for item in self._items.values() if item.is_eligible]

    def get(self, upload_id: str) -> Optional[QueuedUpload]:
        with self._lock:
            return self._items.get(upload_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __contains__(self, upload_id: str) -> bool:
        with self._lock:
            return upload_id in self._items

    def stats(self) -> dict:
        """
        Counts for UI surfaces.

        Returns:
            Dict with 'pending', 'uploading', 'failed', 'exhausted' and 'total'.
            Exhausted items are also counted under their status.
        """
        stats = {
            'pending': 0,
            'uploading': 0,
            'failed': 0,
            'exhausted': 0,
            'total': 0,
        }
        with self._lock:
            for item in self._items.values():
                stats[item.status.value] += 1
                if item.retry_count >= MAX_RETRIES:
                    stats['exhausted'] += 1
                stats['total'] += 1
        return stats

    # -------------------------------------------------------------------------
    # Processing flag
    # -------------------------------------------------------------------------

    @property
    def is_processing(self) -> bool:
        with self._lock:
            return self._is_processing

    @contextmanager
    def processing(self) -> Iterator[bool]:
        """
        Scoped acquisition of the processing flag.

        Yields True if this caller now owns the flag, False if a pass is
        already running. An acquired flag is cleared on every exit path,
        including exceptions and task cancellation.

        Usage:
            with state.processing() as acquired:
                if not acquired:
                    return
                ...
        """
        with self._lock:
            acquired = not self._is_processing
            if acquired:
                self._is_processing = True
        try:
            yield acquired
        finally:
            if acquired:
                with self._lock:
                    self._is_processing = False

    # -------------------------------------------------------------------------

    def _persist(self) -> None:
        # Caller holds the lock
        self._store.save(list(self._items.values()))

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        """
        Apply an in-memory change and persist it, or neither.

        If the body or the save raises, the items are restored to what they
        were on entry and the error propagates. Caller holds the lock.
        """
        previous = dict(self._items)
        try:
            yield
            self._persist()
        except BaseException:
            self._items = previous
            raise


__all__ = ['UploadQueueState']
