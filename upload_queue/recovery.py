"""
Startup repair for uploads interrupted by process termination.

An item can only be "uploading" while a pass is running. If one is found in
freshly loaded state, the process died mid-upload; the item goes back to
pending so the next pass retries it. The interrupted attempt is not counted
against the retry budget.
"""

from typing import Sequence

from shared.log import create_logger
from upload_queue.models import QueuedUpload, UploadStatus

_, log_debug, log_info, _, _ = create_logger("Recovery")

INTERRUPTED_BY_RESTART = "interrupted by restart"


def repair_interrupted(items: Sequence[QueuedUpload]) -> tuple[list[QueuedUpload], int]:
    """
    Reset items stuck in "uploading" to "pending".

    Args:
        items: Items as loaded from storage, in FIFO order

    Returns:
        Tuple of (repaired items in the same order, number of items reset)
    """
    repaired: list[QueuedUpload] = []
    count = 0
    for item in items:
        if item.status == UploadStatus.UPLOADING:
            item = item.model_copy(update={
                'status': UploadStatus.PENDING,
                'last_error': INTERRUPTED_BY_RESTART,
            })
            count += 1
            log_debug(f"Upload {item.id} was interrupted by restart, reset to pending")
        repaired.append(item)

    if count:
        log_info(f"Recovered {count} upload(s) interrupted by restart")
    return repaired, count


__all__ = ['INTERRUPTED_BY_RESTART', 'repair_interrupted']
