"""Block rows: PK=BLOCK, SK=BLOCK#<block_id>."""

from typing import Any, Dict, List, Optional

from aws_lambda_powertools import Logger, Tracer

from annotation_blocks.api.annotations_api.block_deletion_service import (
    BlockDeletionResult,
    BlockDeletionService,
)
from annotation_blocks.api.annotations_api.config import ApiConfig
from annotation_blocks.api.annotations_api.models import (
    Block,
    CreateBlockRequest,
    UpdateBlockRequest,
    sparse_fields,
)
from annotation_blocks.api.annotations_api.repositories.labels import list_labels
from annotation_blocks.common_libraries.blocks_utils import (
    BLOCK_PK,
    BLOCK_PREFIX,
    BLOCK_STATE_DRAFT,
    block_key,
    new_id,
    now_iso,
    strip_prefix,
)
from annotation_blocks.common_libraries.errors import (
    NotFoundError,
    SerializationError,
    StoreFailureError,
)
from annotation_blocks.common_libraries.keyed_store import KeyedStore
from annotation_blocks.common_libraries.object_store import ObjectStore

logger = Logger(service="blocks-repository", child=True)
tracer = Tracer(service="blocks-repository")


def to_block(item: Dict[str, Any]) -> Block:
    return Block(
        block_id=strip_prefix(item.get("SK", ""), BLOCK_PREFIX) or item.get("block_id"),
        block_name=item.get("block_name", ""),
        block_type=item.get("block_type", ""),
        block_company=item.get("block_company"),
        block_state=item.get("block_state", BLOCK_STATE_DRAFT),
        block_locked=bool(item.get("block_locked", False)),
        image_count=int(item.get("image_count", 0)),
        approved_image_count=int(item.get("approved_image_count", 0)),
        annotation_count=int(item.get("annotation_count", 0)),
        block_created_at=item.get("block_created_at", ""),
    )


@tracer.capture_method
def create_block(store: KeyedStore, request: CreateBlockRequest) -> Block:
    block_id = new_id()
    fields = {
        "block_name": request.block_name,
        "block_type": request.block_type,
        "block_company": request.block_company,
        "block_state": BLOCK_STATE_DRAFT,
        "block_locked": False,
        "image_count": 0,
        "approved_image_count": 0,
        "annotation_count": 0,
        "block_created_at": now_iso(),
    }
    store.put(*block_key(block_id), fields)
    logger.info(f"Created block {block_id}", extra={"block_type": request.block_type})

    return Block(block_id=block_id, **fields)


@tracer.capture_method
def get_block(store: KeyedStore, block_id: str) -> Block:
    item = store.get(*block_key(block_id))
    if item is None:
        raise NotFoundError(f"Block {block_id} not found", block_id)

    block = to_block(item)
    block.labels = list_labels(store, block_id, block.block_type)
    return block


@tracer.capture_method
def list_blocks(store: KeyedStore) -> List[Block]:
    blocks = []
    for item in store.query(BLOCK_PK, BLOCK_PREFIX):
        block = to_block(item)
        try:
            block.labels = list_labels(store, block.block_id, block.block_type)
        except (StoreFailureError, SerializationError) as e:
            logger.warning(
                f"Failed to load labels for block {block.block_id}: {e}",
                extra={"block_id": block.block_id},
            )
            block.labels = []
        blocks.append(block)
    return blocks


@tracer.capture_method
def update_block(store: KeyedStore, block_id: str, request: UpdateBlockRequest) -> Block:
    fields = sparse_fields(request)
    try:
        item = store.update(*block_key(block_id), fields)
    except NotFoundError:
        raise NotFoundError(f"Block {block_id} not found", block_id)

    block = to_block(item)
    block.labels = list_labels(store, block_id, block.block_type)
    return block


@tracer.capture_method
def delete_block(
    store: KeyedStore,
    block_id: str,
    object_store: Optional[ObjectStore] = None,
    config: Optional[ApiConfig] = None,
) -> BlockDeletionResult:
    """Cascade-delete a block; see BlockDeletionService"""
    return BlockDeletionService(store, object_store, config).delete_block(block_id)
