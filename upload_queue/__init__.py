"""
Persistent Upload Queue Module

Provides the durable upload queue for VoiceSync. Queued recordings survive
process restarts, crashes and connectivity loss.
"""

from upload_queue.models import MAX_RETRIES, QueuedUpload, UploadStatus, create_upload
from upload_queue.recovery import INTERRUPTED_BY_RESTART, repair_interrupted
from upload_queue.state import UploadQueueState
from upload_queue.storage import (
    JsonFileBackend,
    MemoryBackend,
    QueueStore,
    SQLiteDictBackend,
    StorageError,
    create_backend,
    dump_queue,
    load_queue,
)

__all__ = [
    'MAX_RETRIES',
    'QueuedUpload',
    'UploadStatus',
    'create_upload',
    'INTERRUPTED_BY_RESTART',
    'repair_interrupted',
    'UploadQueueState',
    'JsonFileBackend',
    'MemoryBackend',
    'QueueStore',
    'SQLiteDictBackend',
    'StorageError',
    'create_backend',
    'dump_queue',
    'load_queue',
]
