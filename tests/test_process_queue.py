"""
Tests for the process_queue.py manual CLI.
"""

import json
import logging

import pytest

from process_queue import load_config, main
from upload_queue.models import MAX_RETRIES, UploadStatus
from upload_queue.state import UploadQueueState
from upload_queue.storage import JsonFileBackend, QueueStore


@pytest.fixture(autouse=True)
def restore_root_logger():
    """main() reconfigures the root logger; put it back afterwards."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("VoiceSync").setLevel(logging.NOTSET)


@pytest.fixture
def seeded_data_dir(tmp_path):
    """Data dir holding one pending and one exhausted upload."""
    data_dir = tmp_path / "data"
    store = QueueStore(JsonFileBackend(str(data_dir)))
    state = UploadQueueState.open(store)
    recording = tmp_path / "a.m4a"
    recording.write_bytes(b"fake audio")
    state.enqueue(str(recording), 12)
    bad = state.enqueue("b.m4a", 30)
    for _ in range(MAX_RETRIES):
        state.update_status(bad, UploadStatus.FAILED, "HTTP 500")
    return data_dir


def _reload(data_dir):
    return UploadQueueState.open(QueueStore(JsonFileBackend(str(data_dir))))


class TestLoadConfig:
    """Tests for load_config()."""

    def test_reads_config_json(self, tmp_path):
        (tmp_path / "config.json").write_text(json.dumps({'api_url': 'https://api.example.com'}))
        assert load_config(str(tmp_path)) == {'api_url': 'https://api.example.com'}

    def test_falls_back_to_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv('VOICESYNC_API_URL', 'https://env.example.com')
        monkeypatch.setenv('VOICESYNC_STORAGE', 'sqlite')
        config = load_config(str(tmp_path / "nowhere"))
        assert config == {'api_url': 'https://env.example.com', 'storage_backend': 'sqlite'}


class TestMain:
    """Tests for main() actions."""

    def test_stats_only(self, seeded_data_dir, capsys, monkeypatch):
        monkeypatch.delenv('VOICESYNC_API_URL', raising=False)

        code = main(['--data-dir', str(seeded_data_dir), '--stats-only'])

        assert code == 0
        stats = json.loads(capsys.readouterr().out)
        assert stats == {'pending': 1, 'uploading': 0, 'failed': 1, 'exhausted': 1, 'total': 2}

    def test_clear_exhausted(self, seeded_data_dir, monkeypatch):
        monkeypatch.delenv('VOICESYNC_API_URL', raising=False)

        code = main(['--data-dir', str(seeded_data_dir), '--clear-exhausted'])

        assert code == 0
        state = _reload(seeded_data_dir)
        assert [item.duration_seconds for item in state.snapshot()] == [12]

    def test_invalid_config_exits_nonzero(self, tmp_path, monkeypatch):
        monkeypatch.delenv('VOICESYNC_API_URL', raising=False)
        assert main(['--data-dir', str(tmp_path)]) == 1

    def test_empty_queue_pass(self, tmp_path, monkeypatch):
        monkeypatch.delenv('VOICESYNC_TOKEN', raising=False)
        code = main(['--data-dir', str(tmp_path), '--api-url', 'http://api.test'])
        assert code == 0

    def test_pass_without_token_stops_on_auth(self, seeded_data_dir, monkeypatch):
        """Without VOICESYNC_TOKEN the pass stops at the first item, nothing sent."""
        monkeypatch.delenv('VOICESYNC_TOKEN', raising=False)

        code = main(['--data-dir', str(seeded_data_dir), '--api-url', 'http://api.test'])

        assert code == 1
        item = _reload(seeded_data_dir).snapshot()[0]
        assert item.status == UploadStatus.PENDING
        assert item.last_error == "authentication required"
        assert item.retry_count == 0


class TestLoggingOptions:
    """config.json logging settings, with command-line flags taking precedence."""

    @pytest.fixture(autouse=True)
    def no_env_url(self, monkeypatch):
        monkeypatch.delenv('VOICESYNC_API_URL', raising=False)

    def _write_config(self, data_dir, **settings):
        data_dir.mkdir(exist_ok=True)
        (data_dir / "config.json").write_text(json.dumps(settings))

    def test_log_level_from_config(self, tmp_path):
        data_dir = tmp_path / "data"
        self._write_config(data_dir, log_level='warning')

        assert main(['--data-dir', str(data_dir), '--stats-only']) == 0
        assert logging.getLogger().level == logging.WARNING

    def test_verbose_overrides_log_level(self, tmp_path):
        data_dir = tmp_path / "data"
        self._write_config(data_dir, log_level='error')

        assert main(['--data-dir', str(data_dir), '--stats-only', '--verbose']) == 0
        assert logging.getLogger().level == logging.DEBUG

    def test_json_logs_from_config(self, tmp_path):
        from pythonjsonlogger import json as jsonlogger

        data_dir = tmp_path / "data"
        self._write_config(data_dir, json_logs=True)

        assert main(['--data-dir', str(data_dir), '--stats-only']) == 0
        handler = logging.getLogger().handlers[0]
        assert isinstance(handler.formatter, jsonlogger.JsonFormatter)

    def test_plain_logs_by_default(self, tmp_path):
        from pythonjsonlogger import json as jsonlogger

        assert main(['--data-dir', str(tmp_path / "data"), '--stats-only']) == 0
        handler = logging.getLogger().handlers[0]
        assert not isinstance(handler.formatter, jsonlogger.JsonFormatter)

    def test_debug_logging_from_config(self, tmp_path):
        from shared.log import TRACE

        data_dir = tmp_path / "data"
        self._write_config(data_dir, debug_logging=True)

        assert main(['--data-dir', str(data_dir), '--stats-only']) == 0
        assert logging.getLogger("VoiceSync").level == TRACE
