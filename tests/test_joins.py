"""
Tests for the task/image join.
"""

from annotation_blocks.api.annotations_api.joins import list_tasks_with_images
from annotation_blocks.common_libraries.blocks_utils import image_key, task_key


class TestListTasksWithImages:
    """Tests for list_tasks_with_images."""

    def test_groups_images_under_their_tasks(self, store):
        """Test grouping, per-task image order and newest-first tasks."""
        store.put(*task_key("B", "T1"), {"task_name": "old", "created_at": "2024-01-01"})
        store.put(*task_key("B", "T2"), {"task_name": "new", "created_at": "2024-02-01"})
        store.put(*image_key("B", "I1"), {"task_id": "T1", "order": 2})
        store.put(*image_key("B", "I2"), {"task_id": "T1", "order": 1})
        store.put(*image_key("B", "I3"), {"task_id": "T2"})
        store.put(*image_key("B", "I4"), {})

        tasks = list_tasks_with_images(store, "B")

        assert [task.task_id for task in tasks] == ["T2", "T1"]
        assert [image.image_id for image in tasks[0].images] == ["I3"]
        assert [image.image_id for image in tasks[1].images] == ["I2", "I1"]

    def test_images_of_missing_tasks_are_dropped(self, store):
        """Test that orphaned images do not appear anywhere."""
        store.put(*task_key("B", "T1"), {"created_at": "2024-01-01"})
        store.put(*image_key("B", "I1"), {"task_id": "gone"})

        tasks = list_tasks_with_images(store, "B")

        assert len(tasks) == 1
        assert tasks[0].images == []

    def test_empty_block(self, store):
        """Test that a block without tasks yields an empty list."""
        assert list_tasks_with_images(store, "B") == []
