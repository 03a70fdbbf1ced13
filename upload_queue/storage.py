"""
Durable storage for the upload queue.

Two layers, kept apart so the backend can be swapped without touching queue
logic:

- dump_queue() / load_queue(): pure serialization of the ordered queue into a
  JSON document ({"queue": [...]}). Only the queue is ever written; the
  processing flag is process-lifetime state and never persisted.
- Backends: where the document lives. Each stores opaque text under a named
  slot.

QueueStore ties the two together and owns the failure policy: a queue that
cannot be read degrades to an empty queue (logged) instead of failing
startup.
"""

import json
import os
from typing import Optional, Protocol, Sequence

from shared.log import create_logger
from upload_queue.models import QueuedUpload

log_trace, log_debug, log_info, log_warn, log_error = create_logger("Store")

DEFAULT_SLOT = 'upload-queue-store'


class StorageError(Exception):
    """Persisting the queue failed."""


# =============================================================================
# Serialization
# =============================================================================


def dump_queue(items: Sequence[QueuedUpload]) -> str:
    """
    Serialize queue items to a JSON document.

    Args:
        items: Queue items in FIFO order

    Returns:
        JSON text of the form {"queue": [record, ...]}
    """
    return json.dumps({'queue': [item.to_record() for item in items]})


def load_queue(text: str) -> list[QueuedUpload]:
    """
    Parse a JSON document produced by dump_queue().

    A bare JSON array of records is accepted too. Records with an id already
    seen earlier in the document are dropped (first one wins).

    Raises:
        ValueError: Invalid JSON, unexpected shape, or a record failing validation
    """
    data = json.loads(text)
    if isinstance(data, dict):
        records = data.get('queue', [])
    else:
        records = data
    if not isinstance(records, list):
        raise ValueError(f"Expected a list of queue records, got {type(records).__name__}")

    items: list[QueuedUpload] = []
    seen: set[str] = set()
    for record in records:
        item = QueuedUpload.model_validate(record)
        if item.id in seen:
            log_warn(f"Dropping duplicate queue record {item.id}")
            continue
        seen.add(item.id)
        items.append(item)
    return items


# =============================================================================
# Backends
# =============================================================================


class StorageBackend(Protocol):
    """Opaque text storage keyed by slot name."""

    def read(self, slot: str) -> Optional[str]: ...

    def write(self, slot: str, text: str) -> None: ...

    def close(self) -> None: ...


class MemoryBackend:
    """In-process backend. Contents are lost with the process."""

    def __init__(self):
        self.slots: dict[str, str] = {}

    def read(self, slot: str) -> Optional[str]:
        return self.slots.get(slot)

    def write(self, slot: str, text: str) -> None:
        self.slots[slot] = text

    def close(self) -> None:
        pass


class JsonFileBackend:
    """
    One JSON file per slot in a directory.

    Writes are atomic (write to temp, rename) so a crash mid-write leaves the
    previous document intact.
    """

    def __init__(self, directory: str):
        self.directory = directory
        os.makedirs(directory, exist_ok=True)

    def path_for(self, slot: str) -> str:
        return os.path.join(self.directory, f"{slot}.json")

    def read(self, slot: str) -> Optional[str]:
        path = self.path_for(slot)
        if not os.path.exists(path):
            return None
        with open(path, 'r', encoding='utf-8') as f:
            return f.read()

    def write(self, slot: str, text: str) -> None:
        path = self.path_for(slot)
        tmp_path = path + '.tmp'
        with open(tmp_path, 'w', encoding='utf-8') as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)

    def close(self) -> None:
        pass


class SQLiteDictBackend:
    """
    Slots stored in an embedded SQLite key-value table (persist-queue PDict).

    Args:
        directory: Directory for the SQLite database
        name: Table name inside the database (default: "voicesync")
    """

    def __init__(self, directory: str, name: str = 'voicesync'):
        from persistqueue import PDict

        os.makedirs(directory, exist_ok=True)
        self.directory = directory
        self._dict = PDict(directory, name, multithreading=True)

    def read(self, slot: str) -> Optional[str]:
        try:
            return self._dict[slot]
        except KeyError:
            return None

    def write(self, slot: str, text: str) -> None:
        self._dict[slot] = text

    def close(self) -> None:
        if self._dict is not None:
            self._dict.close()
            self._dict = None


def create_backend(kind: str, directory: str) -> StorageBackend:
    """
    Build a backend by name.

    Args:
        kind: "file", "sqlite" or "memory"
        directory: Data directory (ignored for memory)
    """
    if kind == 'file':
        return JsonFileBackend(directory)
    if kind == 'sqlite':
        return SQLiteDictBackend(directory)
    if kind == 'memory':
        return MemoryBackend()
    raise ValueError(f"Unknown storage backend: {kind}")


# =============================================================================
# Store
# =============================================================================


class QueueStore:
    """
    Persistent store for the serialized queue under a single named slot.

    Args:
        backend: Storage backend
        slot: Slot name (default: "upload-queue-store")
    """

    def __init__(self, backend: StorageBackend, slot: str = DEFAULT_SLOT):
        self.backend = backend
        self.slot = slot

    def save(self, items: Sequence[QueuedUpload]) -> None:
        """
        Persist the full queue.

        Raises:
            StorageError: Backend write failed
        """
        text = dump_queue(items)
        try:
            self.backend.write(self.slot, text)
        except Exception as e:
            log_error(f"Failed to persist queue ({len(items)} items): {e}")
            raise StorageError(f"Failed to persist queue: {e}") from e
        log_trace(f"Persisted {len(items)} queue item(s)")

    def load(self) -> list[QueuedUpload]:
        """
        Load the persisted queue.

        Never raises: unreadable or corrupt data degrades to an empty queue.
        """
        try:
            text = self.backend.read(self.slot)
        except Exception as e:
            log_warn(f"Could not read persisted queue, starting empty: {e}")
            return []

        if not text:
            return []

        try:
            items = load_queue(text)
        except (ValueError, TypeError, KeyError, RecursionError) as e:
            log_warn(f"Persisted queue corrupted, starting empty: {e}")
            return []

        log_debug(f"Loaded {len(items)} queue item(s)")
        return items

    def close(self) -> None:
        self.backend.close()


__all__ = [
    'DEFAULT_SLOT',
    'StorageError',
    'dump_queue',
    'load_queue',
    'StorageBackend',
    'MemoryBackend',
    'JsonFileBackend',
    'SQLiteDictBackend',
    'create_backend',
    'QueueStore',
]
