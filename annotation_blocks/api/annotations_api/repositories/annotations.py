"""Annotation rows: PK=IMAGE#<image_id>, SK=ANNOTATION#<annotation_id>."""

from typing import Any, Dict, List

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.metrics import MetricUnit

from annotation_blocks.api.annotations_api import counters
from annotation_blocks.api.annotations_api.models import (
    Annotation,
    CreateAnnotationRequest,
    UpdateAnnotationRequest,
    deserialize_geometry,
    serialize_geometry,
    sparse_fields,
)
from annotation_blocks.common_libraries.blocks_utils import (
    ANNOTATION_PREFIX,
    IMAGE_PREFIX,
    annotation_key,
    image_partition,
    new_id,
    now_iso,
    strip_prefix,
)
from annotation_blocks.common_libraries.errors import NotFoundError
from annotation_blocks.common_libraries.keyed_store import KeyedStore

logger = Logger(service="annotations-repository", child=True)
tracer = Tracer(service="annotations-repository")
metrics = Metrics(namespace="annotations", service="annotations")


def to_annotation(item: Dict[str, Any]) -> Annotation:
    return Annotation(
        annotation_id=strip_prefix(item.get("SK", ""), ANNOTATION_PREFIX)
        or item.get("annotation_id"),
        image_id=strip_prefix(item.get("PK", ""), IMAGE_PREFIX) or item.get("image_id"),
        label_id=item.get("label_id", ""),
        geometry=deserialize_geometry(item.get("geometry")),
        created_by=item.get("created_by", ""),
        created_at=item.get("created_at", ""),
        updated_at=item.get("updated_at"),
    )


@tracer.capture_method
def create_annotation(
    store: KeyedStore,
    block_id: str,
    image_id: str,
    user_id: str,
    request: CreateAnnotationRequest,
) -> Annotation:
    annotation_id = new_id()
    created_at = now_iso()

    store.put(
        *annotation_key(image_id, annotation_id),
        {
            "label_id": request.label_id,
            "geometry": serialize_geometry(request.geometry),
            "created_by": user_id,
            "created_at": created_at,
        },
    )

    counters.on_annotation_created(store, block_id, image_id, annotation_id)
    metrics.add_metric(name="AnnotationsCreated", unit=MetricUnit.Count, value=1)

    return Annotation(
        annotation_id=annotation_id,
        image_id=image_id,
        label_id=request.label_id,
        geometry=request.geometry,
        created_by=user_id,
        created_at=created_at,
    )


@tracer.capture_method
def create_annotations(
    store: KeyedStore,
    block_id: str,
    image_id: str,
    user_id: str,
    requests: List[CreateAnnotationRequest],
) -> List[Annotation]:
    """Create annotations one at a time; the first failure stops the batch"""
    created = []
    for request in requests:
        created.append(create_annotation(store, block_id, image_id, user_id, request))

    logger.info(
        f"Created {len(created)} annotations",
        extra={"block_id": block_id, "image_id": image_id},
    )
    return created


@tracer.capture_method
def get_annotation(store: KeyedStore, image_id: str, annotation_id: str) -> Annotation:
    item = store.get(*annotation_key(image_id, annotation_id))
    if item is None:
        raise NotFoundError(f"Annotation {annotation_id} not found", annotation_id)
    return to_annotation(item)


@tracer.capture_method
def list_annotations(store: KeyedStore, image_id: str) -> List[Annotation]:
    items = store.query(image_partition(image_id), ANNOTATION_PREFIX)
    return [to_annotation(item) for item in items]


def list_annotation_ids(store: KeyedStore, image_id: str) -> List[str]:
    """Annotation ids of an image without decoding their geometry"""
    items = store.query(image_partition(image_id), ANNOTATION_PREFIX)
    return [strip_prefix(item["SK"], ANNOTATION_PREFIX) for item in items]


@tracer.capture_method
def update_annotation(
    store: KeyedStore,
    image_id: str,
    annotation_id: str,
    request: UpdateAnnotationRequest,
) -> Annotation:
    fields = sparse_fields(request)
    if "geometry" in fields:
        fields["geometry"] = serialize_geometry(request.geometry)
    fields["updated_at"] = now_iso()

    try:
        item = store.update(*annotation_key(image_id, annotation_id), fields)
    except NotFoundError:
        raise NotFoundError(f"Annotation {annotation_id} not found", annotation_id)
    return to_annotation(item)


@tracer.capture_method
def delete_annotation(
    store: KeyedStore, block_id: str, image_id: str, annotation_id: str
) -> bool:
    """
    Delete an annotation and decrement its counters.

    Counters only move when a row was actually removed, so repeating the
    call is a no-op. Returns whether a row was deleted.
    """
    removed = store.delete(*annotation_key(image_id, annotation_id))
    if removed is None:
        logger.info(
            f"Annotation {annotation_id} already deleted",
            extra={"block_id": block_id, "image_id": image_id},
        )
        return False

    counters.on_annotation_deleted(store, block_id, image_id, annotation_id)
    metrics.add_metric(name="AnnotationsDeleted", unit=MetricUnit.Count, value=1)
    return True
