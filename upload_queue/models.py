"""
Queue item model.

A QueuedUpload is one pending delivery obligation: a locally captured
recording that still has to reach the recordings API. Items are immutable
values; the queue state replaces an item with an updated copy on every
transition, so snapshots handed to callers never change under them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
import uuid

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

# Failed attempts allowed before an item is exhausted and skipped by passes
MAX_RETRIES = 3


class UploadStatus(str, Enum):
    """Queue item status. Delivered items are deleted, not marked done."""
    PENDING = "pending"
    UPLOADING = "uploading"
    FAILED = "failed"


class QueuedUpload(BaseModel):
    """
    A recording waiting to be uploaded.

    Serialized with camelCase keys (durationSeconds, recordedAt, retryCount,
    lastError). ``uri`` is accepted as an alias for ``locator`` when loading.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    locator: str = Field(
        min_length=1,
        validation_alias=AliasChoices('locator', 'uri'),
        serialization_alias='locator',
    )
    duration_seconds: float = Field(alias='durationSeconds', ge=0)
    recorded_at: datetime = Field(alias='recordedAt')
    status: UploadStatus = UploadStatus.PENDING
    retry_count: int = Field(default=0, ge=0, alias='retryCount')
    last_error: Optional[str] = Field(default=None, alias='lastError')

    @property
    def is_exhausted(self) -> bool:
        return self.retry_count >= MAX_RETRIES

    @property
    def is_eligible(self) -> bool:
        """True if a processing pass may pick this item up."""
        return (
            self.status in (UploadStatus.PENDING, UploadStatus.FAILED)
            and not self.is_exhausted
        )

    def to_record(self) -> dict:
        """Plain JSON-compatible dict for persistence."""
        return self.model_dump(mode='json', by_alias=True)


def new_upload_id() -> str:
    return uuid.uuid4().hex


def create_upload(
    locator: str,
    duration_seconds: float,
    recorded_at: Optional[datetime] = None,
) -> QueuedUpload:
    """
    Build a fresh queue item: new id, pending, zero retries.

    Args:
        locator: Local path (or other reference) to the recording
        duration_seconds: Recording length in seconds
        recorded_at: When the recording was made (default: now, UTC)

    Returns:
        New QueuedUpload
    """
    if recorded_at is None:
        recorded_at = datetime.now(timezone.utc)
    return QueuedUpload(
        id=new_upload_id(),
        locator=locator,
        duration_seconds=duration_seconds,
        recorded_at=recorded_at,
        status=UploadStatus.PENDING,
        retry_count=0,
    )
