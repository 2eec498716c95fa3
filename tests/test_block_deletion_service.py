"""
Tests for cascade block deletion.
"""

import pytest

from annotation_blocks.api.annotations_api.block_deletion_service import (
    BlockDeletionService,
)
from annotation_blocks.api.annotations_api.config import ApiConfig
from annotation_blocks.common_libraries.blocks_utils import (
    annotation_key,
    block_key,
    image_key,
    label_key,
    task_key,
)
from annotation_blocks.common_libraries.errors import StoreFailureError
from tests.fakes import FakeObjectStore


@pytest.fixture
def populated(store):
    """
    Block B with task T1 (three images), task T2 (no images) and one label.
    Every image carries two annotations.
    """
    store.put(*block_key("B"), {"block_type": "floor", "image_count": 3})
    store.put(*task_key("B", "T1"), {"created_at": "2024-01-01", "image_count": 3})
    store.put(*task_key("B", "T2"), {"created_at": "2024-01-02", "image_count": 0})
    store.put(*label_key("B", "L1"), {"label_name": "doors"})
    for n in range(3):
        image_id = f"I{n}"
        store.put(*image_key("B", image_id), {"task_id": "T1", "url": f"s3://{n}"})
        for m in range(2):
            store.put(*annotation_key(image_id, f"A{n}{m}"), {"label_id": "L1"})
    # Image row kept under the task partition
    store.put("TASK#T1", "IMAGE#I0", {"url": "s3://0"})
    return store


@pytest.fixture
def block_objects():
    return FakeObjectStore(
        keys=[
            "annotations/blocks/B/I0.png",
            "annotations/blocks/B/I1.png",
            "annotations/blocks/B/I2.png",
            "annotations/blocks/OTHER/I9.png",
        ]
    )


class TestCascade:
    """Tests for what a block delete removes."""

    def test_removes_every_descendant(self, populated, block_objects, config):
        """Test that no row under the block survives and its prefix is empty."""
        service = BlockDeletionService(populated, block_objects, config)

        result = service.delete_block("B")

        assert result.complete
        assert result.keys_collected == 14
        assert result.keys_deleted == 14
        assert result.objects_purged == 3
        assert populated.items == {}
        assert list(block_objects.list_by_prefix("annotations/blocks/B/")) == []
        assert block_objects.objects == {"annotations/blocks/OTHER/I9.png"}

    def test_children_precede_parents(self, populated, config):
        """Test the collection order: tasks, labels, images, block."""
        keys = BlockDeletionService(populated, config=config).collect_keys("B")
        order = [(key["PK"], key["SK"]) for key in keys]

        assert order.index(("TASK#T1", "IMAGE#I0")) < order.index(task_key("B", "T1"))
        assert order.index(annotation_key("I0", "A00")) < order.index(image_key("B", "I0"))
        assert order.index(task_key("B", "T2")) < order.index(label_key("B", "L1"))
        assert order.index(label_key("B", "L1")) < order.index(image_key("B", "I0"))
        assert order[-1] == block_key("B")

    def test_counters_are_not_touched(self, populated, config):
        """Test that deletion issues no counter increments."""
        BlockDeletionService(populated, config=config).delete_block("B")

        assert populated.count_calls("increment") == 0

    def test_second_delete_succeeds(self, populated, block_objects, config):
        """Test that deleting an already deleted block is not an error."""
        service = BlockDeletionService(populated, block_objects, config)
        service.delete_block("B")

        result = service.delete_block("B")

        assert result.complete
        assert result.keys_collected == 1
        assert result.objects_purged == 0

    def test_query_failure_aborts_before_deleting(self, populated, config):
        """Test that a failed collection query deletes nothing."""
        populated.failing_query_prefixes.add("LABEL#")

        with pytest.raises(StoreFailureError):
            BlockDeletionService(populated, config=config).delete_block("B")

        assert populated.count_calls("batch_delete") == 0
        assert populated.row(*block_key("B")) is not None

    def test_purge_failure_is_reported_not_raised(self, populated, block_objects, config):
        """Test that rows are deleted even when the S3 purge fails."""
        block_objects.fail = True

        result = BlockDeletionService(populated, block_objects, config).delete_block("B")

        assert not result.complete
        assert result.purge_error
        assert populated.items == {}


    def test_failed_purge_page_does_not_stop_later_pages(self, populated, config):
        """Test that objects after a failed page are still purged."""
        object_store = FakeObjectStore(
            keys=[f"annotations/blocks/B/{n}.png" for n in range(5)], page_size=2
        )
        object_store.failing_keys.add("annotations/blocks/B/0.png")

        result = BlockDeletionService(populated, object_store, config).delete_block("B")

        assert not result.complete
        assert result.purge_error
        assert result.objects_purged == 3
        assert object_store.objects == {
            "annotations/blocks/B/0.png",
            "annotations/blocks/B/1.png",
        }


class TestBatching:
    """Tests for chunking and retries of the batch delete."""

    def test_chunks_of_twenty_five(self, store, config):
        """Test that 32 keys are deleted as 25 then 7."""
        store.put(*block_key("B"), {})
        for n in range(31):
            store.put(*label_key("B", f"L{n:02d}"), {"label_name": f"l{n}"})

        BlockDeletionService(store, config=config).delete_block("B")

        sizes = [args[0] for op, args in store.calls if op == "batch_delete"]
        assert sizes == [25, 7]
        assert store.items == {}

    def test_unprocessed_keys_are_retried_with_linear_backoff(self, populated):
        """Test retries sleep 100ms, then 200ms, before succeeding."""
        sleeps = []
        populated.unprocessed_rounds = 2
        service = BlockDeletionService(populated, config=ApiConfig(), sleep=sleeps.append)

        result = service.delete_block("B")

        assert result.complete
        assert sleeps == pytest.approx([0.1, 0.2])
        assert populated.count_calls("batch_delete") == 3
        assert populated.items == {}

    def test_stubborn_keys_are_dropped_after_five_attempts(self, populated):
        """Test that keys still unprocessed after the last attempt are reported."""
        sleeps = []
        populated.stubborn_keys.add(label_key("B", "L1"))
        service = BlockDeletionService(populated, config=ApiConfig(), sleep=sleeps.append)

        result = service.delete_block("B")

        assert not result.complete
        assert result.keys_dropped == [{"PK": "BLOCK#B", "SK": "LABEL#L1"}]
        assert result.keys_deleted == result.keys_collected - 1
        assert populated.count_calls("batch_delete") == 5
        assert sleeps == pytest.approx([0.1, 0.2, 0.3, 0.4])
        assert list(populated.items) == [label_key("B", "L1")]

    def test_attempts_follow_config(self, populated):
        """Test that the attempt ceiling is configurable."""
        populated.stubborn_keys.add(block_key("B"))
        config = ApiConfig(batch_delete_max_attempts=2, batch_delete_backoff_ms=0)

        result = BlockDeletionService(populated, config=config).delete_block("B")

        assert len(result.keys_dropped) == 1
        assert populated.count_calls("batch_delete") == 2
