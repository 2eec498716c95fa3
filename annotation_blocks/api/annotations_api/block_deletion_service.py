"""
Block Deletion Service
======================
Removes a block and everything beneath it.

Deletion walks the hierarchy collecting keys:

1. Tasks, with the image rows kept under each task partition
2. Labels
3. Images of the block, with their annotations
4. The block row itself

then deletes the keys in batches of 25, retrying unprocessed keys with
linear backoff, and finally purges the block's S3 prefix. No counters are
adjusted: every counter lives on a row that is being removed.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.metrics import MetricUnit

from annotation_blocks.api.annotations_api.config import ApiConfig
from annotation_blocks.common_libraries.blocks_utils import (
    ANNOTATION_PREFIX,
    IMAGE_PREFIX,
    LABEL_PREFIX,
    TASK_PREFIX,
    block_key,
    block_partition,
    image_partition,
    strip_prefix,
)
from annotation_blocks.common_libraries.errors import StoreFailureError
from annotation_blocks.common_libraries.keyed_store import (
    BATCH_WRITE_LIMIT,
    KeyedStore,
    StoreKey,
    make_key,
)
from annotation_blocks.common_libraries.object_store import ObjectStore

logger = Logger(service="block-deletion-service", child=True)
tracer = Tracer(service="block-deletion-service")
metrics = Metrics(namespace="annotations", service="block-deletion-service")


@dataclass
class BlockDeletionResult:
    """Result of a block deletion"""

    block_id: str
    keys_collected: int = 0
    keys_deleted: int = 0
    keys_dropped: List[StoreKey] = field(default_factory=list)
    objects_purged: int = 0
    purge_error: Optional[str] = None

    @property
    def complete(self) -> bool:
        return not self.keys_dropped and self.purge_error is None


class BlockDeletionService:
    """
    Cascade deletion for blocks.

    Usage:
        service = BlockDeletionService(store, object_store, config)
        result = service.delete_block("block-123")
    """

    def __init__(
        self,
        store: KeyedStore,
        object_store: Optional[ObjectStore] = None,
        config: Optional[ApiConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.object_store = object_store
        self.config = config or ApiConfig()
        self.sleep = sleep

    @tracer.capture_method
    def delete_block(self, block_id: str) -> BlockDeletionResult:
        """
        Delete a block with its tasks, labels, images and annotations.

        Deleting a block that no longer exists succeeds and removes whatever
        rows are left under it.

        Raises:
            StoreFailureError: If a query or batch call fails; keys already
                deleted stay deleted
        """
        result = BlockDeletionResult(block_id=block_id)
        logger.info(f"Starting deletion for block: {block_id}")

        # 1-4. Collect keys, children before parents
        keys = self.collect_keys(block_id)
        result.keys_collected = len(keys)

        # 5. Batch delete
        result.keys_dropped = self._batch_delete(keys)
        result.keys_deleted = len(keys) - len(result.keys_dropped)

        # 6. S3 prefix purge
        if self.object_store is not None:
            prefix = self.config.block_prefix(block_id)
            try:
                purge = self.object_store.delete_prefix(prefix)
                result.objects_purged = purge.deleted
                if purge.errors:
                    result.purge_error = "; ".join(purge.errors)
            except StoreFailureError as e:
                result.purge_error = str(e)

            if result.purge_error:
                logger.warning(
                    f"Failed to purge objects for block {block_id}: {result.purge_error}",
                    extra={"prefix": prefix},
                )

        logger.info(
            f"Deleted block {block_id}",
            extra={
                "keys_collected": result.keys_collected,
                "keys_deleted": result.keys_deleted,
                "keys_dropped": len(result.keys_dropped),
                "objects_purged": result.objects_purged,
            },
        )
        metrics.add_metric(name="BlockDeletionSuccess", unit=MetricUnit.Count, value=1)
        return result

    @tracer.capture_method
    def collect_keys(self, block_id: str) -> List[StoreKey]:
        """Every key under the block, in deletion order, without duplicates"""
        partition = block_partition(block_id)
        keys: List[StoreKey] = []

        for task in self.store.query(partition, TASK_PREFIX):
            task_id = strip_prefix(task["SK"], TASK_PREFIX)
            for image in self.store.query(f"{TASK_PREFIX}{task_id}", IMAGE_PREFIX):
                keys.append(make_key(image["PK"], image["SK"]))
            keys.append(make_key(task["PK"], task["SK"]))

        for label in self.store.query(partition, LABEL_PREFIX):
            keys.append(make_key(label["PK"], label["SK"]))

        for image in self.store.query(partition, IMAGE_PREFIX):
            image_id = strip_prefix(image["SK"], IMAGE_PREFIX)
            for annotation in self.store.query(
                image_partition(image_id), ANNOTATION_PREFIX
            ):
                keys.append(make_key(annotation["PK"], annotation["SK"]))
            keys.append(make_key(image["PK"], image["SK"]))

        keys.append(make_key(*block_key(block_id)))

        return _dedupe(keys)

    def _batch_delete(self, keys: List[StoreKey]) -> List[StoreKey]:
        dropped: List[StoreKey] = []
        for start in range(0, len(keys), BATCH_WRITE_LIMIT):
            chunk = keys[start : start + BATCH_WRITE_LIMIT]
            dropped.extend(self._delete_chunk(chunk))
        return dropped

    def _delete_chunk(self, chunk: List[StoreKey]) -> List[StoreKey]:
        """Delete one chunk, retrying unprocessed keys; returns keys given up on"""
        max_attempts = self.config.batch_delete_max_attempts
        backoff = self.config.batch_delete_backoff_ms / 1000.0

        pending = chunk
        for attempt in range(1, max_attempts + 1):
            pending = self.store.batch_delete(pending)
            if not pending:
                return []

            if attempt < max_attempts:
                metrics.add_metric(
                    name="BatchDeleteRetries", unit=MetricUnit.Count, value=1
                )
                logger.debug(
                    f"{len(pending)} unprocessed keys, retrying",
                    extra={"attempt": attempt},
                )
                self.sleep(backoff * attempt)

        logger.error(
            f"Dropping {len(pending)} keys after {max_attempts} attempts",
            extra={"keys": pending},
        )
        metrics.add_metric(
            name="BatchDeleteDroppedKeys", unit=MetricUnit.Count, value=len(pending)
        )
        return pending


def _dedupe(keys: List[StoreKey]) -> List[StoreKey]:
    seen = set()
    unique = []
    for key in keys:
        marker = (key["PK"], key["SK"])
        if marker not in seen:
            seen.add(marker)
            unique.append(key)
    return unique
