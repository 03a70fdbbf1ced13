"""
Shared pytest fixtures for VoiceSync tests.

Provides reusable fixtures for:
- Queue storage (in-memory store, file-backed store)
- Queue state (empty and pre-populated)
- A scripted uploader stub that records calls and raises on demand
- Recording files on disk for the real uploader client

The scripted uploader stands in for the recordings API so processor tests
never touch the network.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from upload_queue.state import UploadQueueState
from upload_queue.storage import JsonFileBackend, MemoryBackend, QueueStore


RECORDED_AT = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)


# =============================================================================
# Uploader stub
# =============================================================================

class ScriptedUploader:
    """
    Uploader stub driven by a per-locator script.

    ``outcomes`` maps a locator to a list of results consumed one per call;
    each result is either an exception instance (raised) or anything else
    (returned). Locators without a script succeed.

    Attributes:
        calls: List of (locator, duration_seconds, recorded_at) tuples, in call order
    """

    def __init__(self, outcomes=None):
        self.outcomes = {k: list(v) for k, v in (outcomes or {}).items()}
        self.calls = []

    @property
    def called_locators(self):
        return [call[0] for call in self.calls]

    async def upload(self, locator, duration_seconds, recorded_at):
        self.calls.append((locator, duration_seconds, recorded_at))
        script = self.outcomes.get(locator)
        if script:
            outcome = script.pop(0)
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome
        return {"id": f"remote-{locator}"}


@pytest.fixture
def uploader():
    """ScriptedUploader where every upload succeeds."""
    return ScriptedUploader()


@pytest.fixture
def make_uploader():
    """
    Factory for ScriptedUploader with a script.

    Usage:
        def test_x(make_uploader):
            up = make_uploader({"a.m4a": [ServerFailure("boom"), None]})
    """
    return ScriptedUploader


# =============================================================================
# Storage / state fixtures
# =============================================================================

@pytest.fixture
def memory_backend():
    return MemoryBackend()


@pytest.fixture
def memory_store(memory_backend):
    """QueueStore over an in-memory backend."""
    return QueueStore(memory_backend)


@pytest.fixture
def file_store(tmp_path):
    """QueueStore over a JSON file backend in tmp_path."""
    return QueueStore(JsonFileBackend(str(tmp_path / "queue")))


@pytest.fixture
def queue_state(memory_store):
    """Empty UploadQueueState persisted to memory."""
    return UploadQueueState.open(memory_store)


@pytest.fixture
def abc_state(queue_state):
    """
    Queue state holding three pending items enqueued in order A, B, C.

    Returns:
        Tuple of (state, [id_a, id_b, id_c])
    """
    ids = [
        queue_state.enqueue("a.m4a", 12, RECORDED_AT),
        queue_state.enqueue("b.m4a", 30, RECORDED_AT),
        queue_state.enqueue("c.m4a", 45.5, RECORDED_AT),
    ]
    return queue_state, ids


@pytest.fixture
def invalidate_cache():
    """Mock cache-invalidation signal."""
    return MagicMock(return_value=None)


# =============================================================================
# Recording files
# =============================================================================

@pytest.fixture
def recording_file(tmp_path):
    """A small fake .m4a file on disk. Returns its path as a string."""
    path = tmp_path / "a.m4a"
    path.write_bytes(b"\x00\x00\x00\x18ftypM4A fake audio")
    return str(path)
