"""
Tests for uploader/cache.py - disk-backed recordings cache.
"""

import time

import pytest

from uploader.cache import RecordingsCache
from uploader.client import RemoteRecord


@pytest.fixture
def cache(tmp_path):
    c = RecordingsCache(str(tmp_path))
    yield c
    c.close()


@pytest.fixture
def records():
    return [
        RemoteRecord(id="rec-1", filename="a.m4a", duration_seconds=12),
        RemoteRecord(id="rec-2", filename="b.m4a", duration_seconds=30),
    ]


class TestRecordingsCache:
    """Tests for RecordingsCache get/set/invalidate."""

    def test_miss_returns_none(self, cache):
        assert cache.get_recordings() is None
        assert cache.get_stats()['misses'] == 1

    def test_set_then_get(self, cache, records):
        cache.set_recordings(records)
        cached = cache.get_recordings()
        assert cached == records
        assert cache.get_stats()['hits'] == 1

    def test_pages_are_independent(self, cache, records):
        cache.set_recordings(records, limit=2, offset=0)
        assert cache.get_recordings(limit=2, offset=2) is None
        assert cache.get_recordings(limit=2, offset=0) == records

    def test_invalidate_drops_everything(self, cache, records):
        cache.set_recordings(records, limit=2, offset=0)
        cache.set_recordings(records[:1], limit=1, offset=0)

        cache.invalidate()

        assert cache.get_recordings(limit=2, offset=0) is None
        assert cache.get_recordings(limit=1, offset=0) is None
        stats = cache.get_stats()
        assert stats['invalidations'] == 1
        assert stats['size'] == 0

    def test_creates_cache_subdirectory(self, tmp_path):
        c = RecordingsCache(str(tmp_path / "data"))
        try:
            assert (tmp_path / "data" / "cache").is_dir()
        finally:
            c.close()

    def test_entries_expire(self, tmp_path, records):
        c = RecordingsCache(str(tmp_path), ttl=1)
        try:
            c.set_recordings(records)
            time.sleep(1.1)
            assert c.get_recordings() is None
        finally:
            c.close()

    def test_zero_ttl_never_expires(self, tmp_path, records):
        c = RecordingsCache(str(tmp_path), ttl=0)
        try:
            c.set_recordings(records)
            assert c.get_recordings() == records
        finally:
            c.close()

    def test_survives_reopen(self, tmp_path, records):
        first = RecordingsCache(str(tmp_path))
        first.set_recordings(records)
        first.close()

        second = RecordingsCache(str(tmp_path))
        try:
            assert second.get_recordings() == records
        finally:
            second.close()
