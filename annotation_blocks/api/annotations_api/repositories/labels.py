"""Label rows: PK=BLOCK#<block_id>, SK=LABEL#<label_id>."""

import json
from typing import Any, Dict, List, Optional

from aws_lambda_powertools import Logger, Tracer

from annotation_blocks.api.annotations_api.models import (
    CreateLabelRequest,
    Label,
    UpdateLabelRequest,
    sparse_fields,
)
from annotation_blocks.api.annotations_api.ordering import sort_labels
from annotation_blocks.common_libraries.blocks_utils import (
    BLOCK_PREFIX,
    LABEL_PREFIX,
    block_key,
    block_partition,
    label_key,
    new_id,
    strip_prefix,
)
from annotation_blocks.common_libraries.errors import NotFoundError, SerializationError
from annotation_blocks.common_libraries.keyed_store import KeyedStore

logger = Logger(service="labels-repository", child=True)
tracer = Tracer(service="labels-repository")


def _dump_properties(properties: Any) -> Optional[str]:
    if properties is None:
        return None
    return json.dumps(properties)


def _load_properties(raw: Optional[str], label_id: str) -> Any:
    if raw is None or raw == "":
        return None
    try:
        return json.loads(raw)
    except ValueError as e:
        raise SerializationError(
            f"Label {label_id} has malformed properties: {e}", label_id
        )


def to_label(item: Dict[str, Any]) -> Label:
    label_id = strip_prefix(item.get("SK", ""), LABEL_PREFIX) or item.get("label_id")
    block_id = strip_prefix(item.get("PK", ""), BLOCK_PREFIX) or item.get("block_id")
    return Label(
        label_id=label_id,
        block_id=block_id,
        label_name=item.get("label_name", ""),
        label_color=item.get("label_color", ""),
        label_properties=_load_properties(item.get("label_properties"), label_id),
        label_count=int(item.get("label_count", 0)),
    )


@tracer.capture_method
def create_label(store: KeyedStore, block_id: str, request: CreateLabelRequest) -> Label:
    label_id = new_id()
    fields = {
        "label_name": request.label_name,
        "label_color": request.label_color,
        "label_properties": _dump_properties(request.label_properties),
        "label_count": 0,
    }
    store.put(*label_key(block_id, label_id), fields)
    logger.info(f"Created label {label_id}", extra={"block_id": block_id})

    return Label(
        label_id=label_id,
        block_id=block_id,
        label_name=request.label_name,
        label_color=request.label_color,
        label_properties=request.label_properties,
    )


@tracer.capture_method
def get_label(store: KeyedStore, block_id: str, label_id: str) -> Label:
    item = store.get(*label_key(block_id, label_id))
    if item is None:
        raise NotFoundError(f"Label {label_id} not found", label_id)
    return to_label(item)


@tracer.capture_method
def list_labels(
    store: KeyedStore, block_id: str, block_type: Optional[str] = None
) -> List[Label]:
    """
    Labels of a block in canonical order.

    When ``block_type`` is not supplied it is read from the block row; a
    missing block falls back to alphabetical order.
    """
    if block_type is None:
        block = store.get(*block_key(block_id))
        block_type = block.get("block_type") if block else None

    items = store.query(block_partition(block_id), LABEL_PREFIX)
    return sort_labels([to_label(item) for item in items], block_type)


@tracer.capture_method
def update_label(
    store: KeyedStore, block_id: str, label_id: str, request: UpdateLabelRequest
) -> Label:
    fields = sparse_fields(request)
    if "label_properties" in fields:
        fields["label_properties"] = _dump_properties(fields["label_properties"])

    try:
        item = store.update(*label_key(block_id, label_id), fields)
    except NotFoundError:
        raise NotFoundError(f"Label {label_id} not found", label_id)
    return to_label(item)


@tracer.capture_method
def delete_label(store: KeyedStore, block_id: str, label_id: str) -> None:
    store.delete(*label_key(block_id, label_id))
    logger.info(f"Deleted label {label_id}", extra={"block_id": block_id})
