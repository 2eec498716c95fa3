"""
Object store access for uploaded block images.

Only prefix listing and bulk deletion are needed: uploads are orchestrated
elsewhere and this backend only purges what a deleted block left behind.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List

from aws_lambda_powertools import Logger, Tracer
from botocore.exceptions import BotoCoreError, ClientError

from annotation_blocks.common_libraries.errors import StoreFailureError

logger = Logger(service="object-store", child=True)
tracer = Tracer(service="object-store")

# S3 DeleteObjects per-request ceiling
DELETE_OBJECTS_LIMIT = 1000


@dataclass
class PurgeResult:
    """Outcome of a prefix purge"""

    deleted: int = 0
    errors: List[str] = field(default_factory=list)


class ObjectStore(ABC):
    @abstractmethod
    def list_by_prefix(self, prefix: str) -> Iterator[List[str]]:
        """Yield pages of object keys under ``prefix``"""

    @abstractmethod
    def delete_many(self, keys: Iterable[str]) -> int:
        """Delete the given keys and return how many were deleted"""

    def delete_prefix(self, prefix: str) -> PurgeResult:
        """
        Delete every object under ``prefix``, page by page.

        A page whose delete fails is logged and recorded, and the purge moves
        on to the next page. A listing failure still raises StoreFailureError.
        """
        result = PurgeResult()
        for page in self.list_by_prefix(prefix):
            if not page:
                continue
            try:
                result.deleted += self.delete_many(page)
            except StoreFailureError as e:
                logger.warning(
                    f"Skipping {len(page)} objects under {prefix}: {e}",
                    extra={"prefix": prefix},
                )
                result.errors.append(str(e))
        return result


class S3ObjectStore(ObjectStore):
    def __init__(self, client, bucket: str):
        self.client = client
        self.bucket = bucket

    @tracer.capture_method
    def list_by_prefix(self, prefix: str) -> Iterator[List[str]]:
        continuation_token = None

        while True:
            params = {"Bucket": self.bucket, "Prefix": prefix}
            if continuation_token:
                params["ContinuationToken"] = continuation_token

            try:
                response = self.client.list_objects_v2(**params)
            except (ClientError, BotoCoreError) as e:
                logger.error(
                    f"S3 list_objects_v2 failed for prefix {prefix}: {e}",
                    extra={"bucket": self.bucket},
                )
                raise StoreFailureError(f"S3 list failed: {e}") from e

            yield [obj["Key"] for obj in response.get("Contents", []) if obj.get("Key")]

            if not response.get("IsTruncated"):
                break
            continuation_token = response.get("NextContinuationToken")
            if not continuation_token:
                logger.warning(
                    f"Truncated listing for {prefix} has no continuation token",
                    extra={"bucket": self.bucket},
                )
                break

    @tracer.capture_method
    def delete_many(self, keys: Iterable[str]) -> int:
        keys = list(keys)
        deleted = 0

        for start in range(0, len(keys), DELETE_OBJECTS_LIMIT):
            chunk = keys[start : start + DELETE_OBJECTS_LIMIT]
            try:
                response = self.client.delete_objects(
                    Bucket=self.bucket,
                    Delete={"Objects": [{"Key": key} for key in chunk], "Quiet": True},
                )
            except (ClientError, BotoCoreError) as e:
                logger.error(
                    f"S3 delete_objects failed: {e}",
                    extra={"bucket": self.bucket, "key_count": len(chunk)},
                )
                raise StoreFailureError(f"S3 delete failed: {e}") from e

            errors = response.get("Errors", [])
            if errors:
                logger.warning(
                    "Some S3 objects could not be deleted",
                    extra={"bucket": self.bucket, "errors": errors[:10]},
                )
            deleted += len(chunk) - len(errors)

        return deleted
