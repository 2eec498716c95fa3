"""
Image rows: PK=BLOCK#<block_id>, SK=IMAGE#<image_id>.

The block partition holds the canonical row; ``task_id`` links an image to
its task.
"""

from typing import Any, Dict, List, Optional

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.metrics import MetricUnit

from annotation_blocks.api.annotations_api import counters
from annotation_blocks.api.annotations_api.models import (
    CreateImageRequest,
    Image,
    UpdateImageRequest,
    sparse_fields,
)
from annotation_blocks.api.annotations_api.ordering import sort_images
from annotation_blocks.api.annotations_api.repositories.annotations import (
    delete_annotation,
    list_annotation_ids,
)
from annotation_blocks.common_libraries.blocks_utils import (
    BLOCK_PREFIX,
    IMAGE_PREFIX,
    block_partition,
    image_key,
    new_id,
    now_iso,
    strip_prefix,
)
from annotation_blocks.common_libraries.errors import NotFoundError
from annotation_blocks.common_libraries.keyed_store import KeyedStore

logger = Logger(service="images-repository", child=True)
tracer = Tracer(service="images-repository")
metrics = Metrics(namespace="annotations", service="images")


def to_image(item: Dict[str, Any]) -> Image:
    order = item.get("order")
    return Image(
        image_id=strip_prefix(item.get("SK", ""), IMAGE_PREFIX) or item.get("image_id"),
        block_id=strip_prefix(item.get("PK", ""), BLOCK_PREFIX) or item.get("block_id"),
        task_id=item.get("task_id") or None,
        url=item.get("url", ""),
        locked=bool(item.get("locked", False)),
        order=int(order) if order is not None else None,
        annotation_count=int(item.get("annotation_count", 0)),
        uploaded_at=item.get("uploaded_at", ""),
        updated_at=item.get("updated_at"),
    )


def _create(
    store: KeyedStore,
    block_id: str,
    url: str,
    task_id: Optional[str],
    order: Optional[int],
) -> Image:
    image_id = new_id()
    fields = {
        "task_id": task_id,
        "url": url,
        "locked": False,
        "order": order,
        "annotation_count": 0,
        "uploaded_at": now_iso(),
    }

    # Primary write, then block -> task -> approved counters
    store.put(*image_key(block_id, image_id), fields)
    counters.on_image_created(store, block_id, image_id, task_id)

    logger.info(
        f"Created image {image_id}", extra={"block_id": block_id, "task_id": task_id}
    )
    metrics.add_metric(name="ImagesCreated", unit=MetricUnit.Count, value=1)

    return Image(image_id=image_id, block_id=block_id, **fields)


@tracer.capture_method
def create_image(store: KeyedStore, block_id: str, request: CreateImageRequest) -> Image:
    return _create(store, block_id, request.url, request.task_id, request.order)


@tracer.capture_method
def create_image_for_task(
    store: KeyedStore,
    block_id: str,
    task_id: str,
    url: str,
    order: Optional[int] = None,
) -> Image:
    return _create(store, block_id, url, task_id, order)


@tracer.capture_method
def get_image(store: KeyedStore, block_id: str, image_id: str) -> Image:
    item = store.get(*image_key(block_id, image_id))
    if item is None:
        raise NotFoundError(f"Image {image_id} not found", image_id)
    return to_image(item)


@tracer.capture_method
def list_images_for_block(store: KeyedStore, block_id: str) -> List[Image]:
    items = store.query(block_partition(block_id), IMAGE_PREFIX)
    return sort_images([to_image(item) for item in items])


@tracer.capture_method
def list_images_for_task(store: KeyedStore, block_id: str, task_id: str) -> List[Image]:
    return [
        image
        for image in list_images_for_block(store, block_id)
        if image.task_id == task_id
    ]


@tracer.capture_method
def update_image(
    store: KeyedStore, block_id: str, image_id: str, request: UpdateImageRequest
) -> Image:
    fields = sparse_fields(request)
    fields["updated_at"] = now_iso()

    try:
        item = store.update(*image_key(block_id, image_id), fields)
    except NotFoundError:
        raise NotFoundError(f"Image {image_id} not found", image_id)
    return to_image(item)


@tracer.capture_method
def delete_image(store: KeyedStore, block_id: str, image_id: str) -> int:
    """
    Delete an image, its annotations and its share of the block counters.

    Order: read the image, decrement counters, delete each annotation
    (which decrements annotation counters), delete the image row. Returns
    the number of annotations removed.
    """
    # 1. Read the image; its task_id drives the counter steps
    image = get_image(store, block_id, image_id)

    # 2. Block, task and approved counters
    counters.on_image_deleted(store, block_id, image_id, image.task_id)

    # 3. Annotations
    annotation_ids = list_annotation_ids(store, image_id)
    for annotation_id in annotation_ids:
        delete_annotation(store, block_id, image_id, annotation_id)

    # 4. Image row
    store.delete(*image_key(block_id, image_id))

    logger.info(
        f"Deleted image {image_id} with {len(annotation_ids)} annotations",
        extra={"block_id": block_id, "task_id": image.task_id},
    )
    metrics.add_metric(name="ImagesDeleted", unit=MetricUnit.Count, value=1)
    return len(annotation_ids)
