"""
Counter propagation for the annotation block hierarchy.

Every aggregate counter (block, task and image) is adjusted with an atomic
store increment after the primary write of the entity that changed. The
steps are independent calls: if one fails, the primary write and any earlier
steps stay applied, later steps are skipped and a CounterPropagationError
naming the failed step is raised.

    Event                    Counter                          Delta
    annotation created       block/image annotation_count     +1
    annotation deleted       block/image annotation_count     -1
    image created            block image_count                +1
      with task              task image_count                 +1
      task done              block approved_image_count       +1
    image deleted            block image_count                -1
      with task              task image_count                 -1
      task done              block approved_image_count       -1
    task state change        block approved_image_count       +/- image_count
"""

from typing import Any, Dict, Optional

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.metrics import MetricUnit

from annotation_blocks.common_libraries.blocks_utils import (
    TASK_STATE_DONE,
    block_key,
    image_key,
    task_key,
)
from annotation_blocks.common_libraries.errors import (
    CounterPropagationError,
    NotFoundError,
    StoreFailureError,
)
from annotation_blocks.common_libraries.keyed_store import KeyedStore

logger = Logger(service="counter-propagation", child=True)
tracer = Tracer(service="counter-propagation")
metrics = Metrics(namespace="annotations", service="counters")

IMAGE_COUNT = "image_count"
APPROVED_IMAGE_COUNT = "approved_image_count"
ANNOTATION_COUNT = "annotation_count"


def _apply(
    store: KeyedStore,
    step: str,
    key,
    field: str,
    delta: int,
    entity_id: Optional[str],
) -> Dict[str, Any]:
    if delta == 0:
        return {}

    pk, sk = key
    try:
        return store.increment(pk, sk, field, delta)
    except (NotFoundError, StoreFailureError) as e:
        raise _propagation_failure(step, e, entity_id)


def _propagation_failure(step: str, error: Exception, entity_id: Optional[str]):
    logger.error(
        f"Counter step {step} failed after primary write",
        extra={"step": step, "entity_id": entity_id, "error": str(error)},
    )
    metrics.add_metric(
        name="CounterPropagationFailures", unit=MetricUnit.Count, value=1
    )
    return CounterPropagationError(
        f"Counter update {step} failed: {error}", step=step, entity_id=entity_id
    )


def approved_delta(
    old_state: Optional[str], new_state: Optional[str], image_count: int
) -> int:
    """
    Change to a block's approved_image_count caused by a task state transition.

    ``image_count`` must be the task's count captured before the state write.
    """
    if new_state == TASK_STATE_DONE and old_state != TASK_STATE_DONE:
        return image_count
    if old_state == TASK_STATE_DONE and new_state != TASK_STATE_DONE:
        return -image_count
    return 0


@tracer.capture_method
def on_annotation_created(
    store: KeyedStore, block_id: str, image_id: str, annotation_id: str
) -> None:
    _apply(
        store,
        "block.annotation_count",
        block_key(block_id),
        ANNOTATION_COUNT,
        1,
        annotation_id,
    )
    _apply(
        store,
        "image.annotation_count",
        image_key(block_id, image_id),
        ANNOTATION_COUNT,
        1,
        annotation_id,
    )


@tracer.capture_method
def on_annotation_deleted(
    store: KeyedStore, block_id: str, image_id: str, annotation_id: str
) -> None:
    _apply(
        store,
        "block.annotation_count",
        block_key(block_id),
        ANNOTATION_COUNT,
        -1,
        annotation_id,
    )
    _apply(
        store,
        "image.annotation_count",
        image_key(block_id, image_id),
        ANNOTATION_COUNT,
        -1,
        annotation_id,
    )


def _increment_task(
    store: KeyedStore, block_id: str, task_id: str, delta: int, image_id: str
):
    """Adjust the task's image_count; None when the task no longer exists"""
    pk, sk = task_key(block_id, task_id)
    try:
        return store.increment(pk, sk, IMAGE_COUNT, delta)
    except NotFoundError:
        logger.warning(
            f"Task {task_id} of image {image_id} not found, skipping task counters",
            extra={"block_id": block_id, "task_id": task_id, "image_id": image_id},
        )
        return None
    except StoreFailureError as e:
        raise _propagation_failure("task.image_count", e, image_id)


@tracer.capture_method
def on_image_created(
    store: KeyedStore, block_id: str, image_id: str, task_id: Optional[str] = None
) -> None:
    # 1. Block image count
    _apply(store, "block.image_count", block_key(block_id), IMAGE_COUNT, 1, image_id)

    if not task_id:
        return

    # 2. Task image count
    task = _increment_task(store, block_id, task_id, 1, image_id)
    if task is None:
        return

    # 3. Approved count when the task is already done
    if task.get("task_state") == TASK_STATE_DONE and int(task.get(IMAGE_COUNT, 0)) > 0:
        _apply(
            store,
            "block.approved_image_count",
            block_key(block_id),
            APPROVED_IMAGE_COUNT,
            1,
            image_id,
        )


@tracer.capture_method
def on_image_deleted(
    store: KeyedStore, block_id: str, image_id: str, task_id: Optional[str] = None
) -> None:
    _apply(store, "block.image_count", block_key(block_id), IMAGE_COUNT, -1, image_id)

    if not task_id:
        return

    task = _increment_task(store, block_id, task_id, -1, image_id)
    if task is None:
        return

    if task.get("task_state") == TASK_STATE_DONE:
        _apply(
            store,
            "block.approved_image_count",
            block_key(block_id),
            APPROVED_IMAGE_COUNT,
            -1,
            image_id,
        )


@tracer.capture_method
def on_task_state_changed(
    store: KeyedStore,
    block_id: str,
    task_id: str,
    old_state: Optional[str],
    new_state: Optional[str],
    image_count: int,
) -> int:
    """Apply the approved-image delta for a task transition and return it"""
    delta = approved_delta(old_state, new_state, image_count)
    if delta:
        logger.info(
            f"Task {task_id} moved {old_state} -> {new_state}, approved delta {delta}",
            extra={"block_id": block_id, "task_id": task_id},
        )
    _apply(
        store,
        "block.approved_image_count",
        block_key(block_id),
        APPROVED_IMAGE_COUNT,
        delta,
        task_id,
    )
    return delta
