"""Task rows: PK=BLOCK#<block_id>, SK=TASK#<task_id>."""

from typing import Any, Dict, List

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.metrics import MetricUnit

from annotation_blocks.api.annotations_api import counters
from annotation_blocks.api.annotations_api.models import (
    CreateTaskRequest,
    Task,
    TaskState,
    UpdateTaskRequest,
    sparse_fields,
)
from annotation_blocks.api.annotations_api.ordering import sort_tasks
from annotation_blocks.api.annotations_api.repositories.images import (
    delete_image,
    list_images_for_task,
)
from annotation_blocks.common_libraries.blocks_utils import (
    BLOCK_PREFIX,
    TASK_PREFIX,
    block_partition,
    new_id,
    now_iso,
    strip_prefix,
    task_key,
)
from annotation_blocks.common_libraries.errors import NotFoundError
from annotation_blocks.common_libraries.keyed_store import KeyedStore

logger = Logger(service="tasks-repository", child=True)
tracer = Tracer(service="tasks-repository")
metrics = Metrics(namespace="annotations", service="tasks")


def to_task(item: Dict[str, Any]) -> Task:
    return Task(
        task_id=strip_prefix(item.get("SK", ""), TASK_PREFIX) or item.get("task_id"),
        block_id=strip_prefix(item.get("PK", ""), BLOCK_PREFIX) or item.get("block_id"),
        task_name=item.get("task_name", ""),
        task_state=item.get("task_state", TaskState.TODO.value),
        assignee=item.get("assignee", ""),
        checked_by=item.get("checked_by", ""),
        locked=bool(item.get("locked", False)),
        image_count=int(item.get("image_count", 0)),
        created_at=item.get("created_at", ""),
    )


@tracer.capture_method
def create_task(store: KeyedStore, block_id: str, request: CreateTaskRequest) -> Task:
    task_id = new_id()
    fields = {
        "task_name": request.task_name,
        "task_state": TaskState.TODO.value,
        "assignee": request.assignee,
        "checked_by": request.checked_by,
        "locked": False,
        "image_count": 0,
        "created_at": now_iso(),
    }
    store.put(*task_key(block_id, task_id), fields)
    logger.info(f"Created task {task_id}", extra={"block_id": block_id})

    return Task(task_id=task_id, block_id=block_id, **fields)


@tracer.capture_method
def get_task(store: KeyedStore, block_id: str, task_id: str) -> Task:
    item = store.get(*task_key(block_id, task_id))
    if item is None:
        raise NotFoundError(f"Task {task_id} not found", task_id)
    return to_task(item)


@tracer.capture_method
def list_tasks(store: KeyedStore, block_id: str) -> List[Task]:
    """Tasks of a block, newest first"""
    items = store.query(block_partition(block_id), TASK_PREFIX)
    return sort_tasks([to_task(item) for item in items])


@tracer.capture_method
def update_task(
    store: KeyedStore, block_id: str, task_id: str, request: UpdateTaskRequest
) -> Task:
    """
    Apply a sparse patch to a task.

    A state change moves the task's images in or out of the block's approved
    count. The delta uses the image_count read before the write; the task
    row is written first and the block counter second.
    """
    # 1. Capture the current state and image count
    current = store.get(*task_key(block_id, task_id))
    if current is None:
        raise NotFoundError(f"Task {task_id} not found", task_id)

    old_state = current.get("task_state")
    image_count = int(current.get("image_count", 0))

    # 2. Primary write
    fields = sparse_fields(request)
    try:
        item = store.update(*task_key(block_id, task_id), fields)
    except NotFoundError:
        raise NotFoundError(f"Task {task_id} not found", task_id)

    # 3. Approved image delta
    if "task_state" in fields:
        counters.on_task_state_changed(
            store, block_id, task_id, old_state, fields["task_state"], image_count
        )

    return to_task(item)


@tracer.capture_method
def delete_task(store: KeyedStore, block_id: str, task_id: str) -> int:
    """
    Delete a task and every image attached to it.

    Images go through the single-image delete path so block counters follow.
    Returns the number of images removed.
    """
    images = list_images_for_task(store, block_id, task_id)
    for image in images:
        delete_image(store, block_id, image.image_id)

    store.delete(*task_key(block_id, task_id))

    logger.info(
        f"Deleted task {task_id} with {len(images)} images",
        extra={"block_id": block_id},
    )
    metrics.add_metric(name="TasksDeleted", unit=MetricUnit.Count, value=1)
    return len(images)
