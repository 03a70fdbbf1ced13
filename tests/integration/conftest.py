"""
Integration test fixtures for VoiceSync.

These fixtures compose the unit fixtures from tests/conftest.py into
restartable scenarios: a queue is opened on a real backend, mutated,
dropped, and reopened from the same data directory as a fresh process
would.

All integration tests should be marked with @pytest.mark.integration
"""

import pytest

from upload_queue.state import UploadQueueState
from upload_queue.storage import QueueStore, create_backend


@pytest.fixture(params=['file', 'sqlite'])
def backend_kind(request):
    """Each persistence scenario runs against both durable backends."""
    return request.param


@pytest.fixture
def reopen(tmp_path, backend_kind):
    """
    Factory opening the queue from tmp_path as a freshly started process.

    Usage:
        def test_x(reopen):
            state = reopen()
            ...
            state = reopen()   # "restart"
    """
    stores = []

    def _open():
        store = QueueStore(create_backend(backend_kind, str(tmp_path / "data")))
        stores.append(store)
        return UploadQueueState.open(store)

    yield _open

    for store in stores:
        store.close()


@pytest.fixture
def app_config(tmp_path):
    """Validated SyncConfig pointing at tmp_path with the JSON file backend."""
    from validation.config import validate_config

    config, error = validate_config({
        'api_url': 'http://api.test',
        'data_dir': str(tmp_path / "app"),
        'storage_backend': 'file',
    })
    assert error is None
    return config
