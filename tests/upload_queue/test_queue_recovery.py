"""
Tests for upload_queue/recovery.py and recovery on UploadQueueState.open().
"""

from datetime import datetime, timezone

from upload_queue.models import UploadStatus, create_upload
from upload_queue.recovery import INTERRUPTED_BY_RESTART, repair_interrupted
from upload_queue.state import UploadQueueState
from upload_queue.storage import QueueStore, load_queue


RECORDED_AT = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)


def _item(locator, status=UploadStatus.PENDING, retry_count=0, last_error=None):
    return create_upload(locator, 10, RECORDED_AT).model_copy(update={
        'status': status,
        'retry_count': retry_count,
        'last_error': last_error,
    })


class TestRepairInterrupted:
    """Tests for repair_interrupted()."""

    def test_uploading_reset_to_pending(self):
        stuck = _item("a.m4a", UploadStatus.UPLOADING, retry_count=2)

        repaired, count = repair_interrupted([stuck])

        assert count == 1
        assert repaired[0].status == UploadStatus.PENDING
        assert repaired[0].last_error == INTERRUPTED_BY_RESTART

    def test_retry_count_unchanged(self):
        """An interrupted attempt does not consume retry budget."""
        stuck = _item("a.m4a", UploadStatus.UPLOADING, retry_count=2)
        repaired, _ = repair_interrupted([stuck])
        assert repaired[0].retry_count == 2

    def test_other_items_untouched_and_order_kept(self):
        pending = _item("a.m4a")
        stuck = _item("b.m4a", UploadStatus.UPLOADING)
        failed = _item("c.m4a", UploadStatus.FAILED, retry_count=1, last_error="HTTP 500")

        repaired, count = repair_interrupted([pending, stuck, failed])

        assert count == 1
        assert [i.id for i in repaired] == [pending.id, stuck.id, failed.id]
        assert repaired[0] == pending
        assert repaired[2] == failed

    def test_nothing_to_repair(self):
        items = [_item("a.m4a"), _item("b.m4a", UploadStatus.FAILED, 1)]
        repaired, count = repair_interrupted(items)
        assert count == 0
        assert repaired == items


class TestOpenRecovers:
    """UploadQueueState.open() applies and persists the repair."""

    def test_open_leaves_no_uploading_items(self, memory_backend):
        store = QueueStore(memory_backend)
        store.save([_item("a.m4a", UploadStatus.UPLOADING), _item("b.m4a")])

        state = UploadQueueState.open(store)

        assert all(i.status != UploadStatus.UPLOADING for i in state.snapshot())
        assert len(state.eligible()) == 2

    def test_open_persists_repair(self, memory_backend):
        store = QueueStore(memory_backend)
        store.save([_item("a.m4a", UploadStatus.UPLOADING)])

        UploadQueueState.open(store)

        persisted = load_queue(memory_backend.read("upload-queue-store"))
        assert persisted[0].status == UploadStatus.PENDING
        assert persisted[0].last_error == INTERRUPTED_BY_RESTART

    def test_open_starts_not_processing(self, memory_store):
        assert UploadQueueState.open(memory_store).is_processing is False

    def test_open_corrupt_store_starts_empty(self, memory_backend):
        memory_backend.write("upload-queue-store", "{{{")
        state = UploadQueueState.open(QueueStore(memory_backend))
        assert len(state) == 0
