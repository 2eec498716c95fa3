"""
Keyed store over the single DynamoDB table.

Every entity is addressed by a (PK, SK) pair. Aggregate counters are only
ever changed through ``increment``, which issues an atomic
``SET counter = if_not_exists(counter, 0) + :delta`` guarded by
``attribute_exists(PK)`` so that a counter update never resurrects a row
that has already been deleted.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, TypedDict

from aws_lambda_powertools import Logger, Tracer
from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError

from annotation_blocks.common_libraries.errors import NotFoundError, StoreFailureError

logger = Logger(service="keyed-store", child=True)
tracer = Tracer(service="keyed-store")

# DynamoDB BatchWriteItem per-request ceiling
BATCH_WRITE_LIMIT = 25


class StoreKey(TypedDict):
    PK: str
    SK: str


def make_key(pk: str, sk: str) -> StoreKey:
    return {"PK": pk, "SK": sk}


class KeyedStore(ABC):
    """Contract consumed by the repositories, counters and cascade deletion"""

    @abstractmethod
    def get(self, pk: str, sk: str) -> Optional[Dict[str, Any]]:
        """Return the item at (pk, sk) or None"""

    @abstractmethod
    def put(self, pk: str, sk: str, fields: Dict[str, Any]) -> None:
        """Write a full item, replacing any existing one"""

    @abstractmethod
    def update(
        self,
        pk: str,
        sk: str,
        fields: Dict[str, Any],
        require_existing: bool = True,
    ) -> Dict[str, Any]:
        """SET only the given fields and return the updated item"""

    @abstractmethod
    def increment(self, pk: str, sk: str, field: str, delta: int) -> Dict[str, Any]:
        """Atomically add ``delta`` to a numeric field and return the updated item"""

    @abstractmethod
    def delete(self, pk: str, sk: str) -> Optional[Dict[str, Any]]:
        """Delete the item and return it; a missing key is a no-op returning None"""

    @abstractmethod
    def query(self, pk: str, sk_prefix: str) -> List[Dict[str, Any]]:
        """Return every item in partition ``pk`` whose SK begins with ``sk_prefix``"""

    @abstractmethod
    def batch_delete(self, keys: List[StoreKey]) -> List[StoreKey]:
        """Issue one batch delete of at most 25 keys and return the unprocessed keys"""


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "Unknown")


class DynamoKeyedStore(KeyedStore):
    """
    KeyedStore backed by a boto3 DynamoDB Table resource.

    Usage:
        table = boto3.resource("dynamodb").Table("annotations")
        store = DynamoKeyedStore(table)
        store.increment("BLOCK", "BLOCK#123", "image_count", 1)
    """

    def __init__(self, table):
        self.table = table

    @property
    def table_name(self) -> str:
        return self.table.name

    @tracer.capture_method
    def get(self, pk: str, sk: str) -> Optional[Dict[str, Any]]:
        try:
            response = self.table.get_item(Key=make_key(pk, sk))
        except (ClientError, BotoCoreError) as e:
            logger.error(
                "DynamoDB get_item failed", extra={"pk": pk, "sk": sk, "error": str(e)}
            )
            raise StoreFailureError(f"DynamoDB get_item error: {e}") from e
        return response.get("Item")

    @tracer.capture_method
    def put(self, pk: str, sk: str, fields: Dict[str, Any]) -> None:
        item = {k: v for k, v in fields.items() if v is not None}
        item.update(make_key(pk, sk))
        try:
            self.table.put_item(Item=item)
        except (ClientError, BotoCoreError) as e:
            logger.error(
                "DynamoDB put_item failed", extra={"pk": pk, "sk": sk, "error": str(e)}
            )
            raise StoreFailureError(f"DynamoDB put_item error: {e}") from e

    @tracer.capture_method
    def update(
        self,
        pk: str,
        sk: str,
        fields: Dict[str, Any],
        require_existing: bool = True,
    ) -> Dict[str, Any]:
        if not fields:
            item = self.get(pk, sk)
            if item is None and require_existing:
                raise NotFoundError(f"Item {pk}/{sk} not found")
            return item or {}

        set_parts = []
        names = {}
        values = {}
        for index, (name, value) in enumerate(fields.items()):
            set_parts.append(f"#f{index} = :v{index}")
            names[f"#f{index}"] = name
            values[f":v{index}"] = value

        params = {
            "Key": make_key(pk, sk),
            "UpdateExpression": "SET " + ", ".join(set_parts),
            "ExpressionAttributeNames": names,
            "ExpressionAttributeValues": values,
            "ReturnValues": "ALL_NEW",
        }
        if require_existing:
            params["ConditionExpression"] = "attribute_exists(PK)"

        try:
            response = self.table.update_item(**params)
        except ClientError as e:
            if _error_code(e) == "ConditionalCheckFailedException":
                raise NotFoundError(f"Item {pk}/{sk} not found") from e
            logger.error(
                "DynamoDB update_item failed",
                extra={"pk": pk, "sk": sk, "fields": list(fields), "error": str(e)},
            )
            raise StoreFailureError(f"DynamoDB update_item error: {e}") from e
        except BotoCoreError as e:
            raise StoreFailureError(f"DynamoDB update_item error: {e}") from e

        return response.get("Attributes", {})

    @tracer.capture_method
    def increment(self, pk: str, sk: str, field: str, delta: int) -> Dict[str, Any]:
        try:
            response = self.table.update_item(
                Key=make_key(pk, sk),
                UpdateExpression="SET #c = if_not_exists(#c, :zero) + :delta",
                ConditionExpression="attribute_exists(PK)",
                ExpressionAttributeNames={"#c": field},
                ExpressionAttributeValues={":zero": 0, ":delta": delta},
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            if _error_code(e) == "ConditionalCheckFailedException":
                raise NotFoundError(f"Item {pk}/{sk} not found") from e
            logger.error(
                "DynamoDB counter update failed",
                extra={
                    "pk": pk,
                    "sk": sk,
                    "counter": field,
                    "delta": delta,
                    "error": str(e),
                },
            )
            raise StoreFailureError(f"DynamoDB update_item error: {e}") from e
        except BotoCoreError as e:
            raise StoreFailureError(f"DynamoDB update_item error: {e}") from e

        return response.get("Attributes", {})

    @tracer.capture_method
    def delete(self, pk: str, sk: str) -> Optional[Dict[str, Any]]:
        try:
            response = self.table.delete_item(
                Key=make_key(pk, sk), ReturnValues="ALL_OLD"
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(
                "DynamoDB delete_item failed",
                extra={"pk": pk, "sk": sk, "error": str(e)},
            )
            raise StoreFailureError(f"DynamoDB delete_item error: {e}") from e
        return response.get("Attributes")

    @tracer.capture_method
    def query(self, pk: str, sk_prefix: str) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        last_evaluated_key = None

        try:
            while True:
                query_params = {
                    "TableName": self.table_name,
                    "KeyConditionExpression": Key("PK").eq(pk)
                    & Key("SK").begins_with(sk_prefix),
                }
                if last_evaluated_key:
                    query_params["ExclusiveStartKey"] = last_evaluated_key

                # The resource-bound client is thread-safe, the Table is not
                response = self.table.meta.client.query(**query_params)
                items.extend(response.get("Items", []))

                last_evaluated_key = response.get("LastEvaluatedKey")
                if not last_evaluated_key:
                    break
        except (ClientError, BotoCoreError) as e:
            logger.error(
                "DynamoDB query failed",
                extra={"pk": pk, "sk_prefix": sk_prefix, "error": str(e)},
            )
            raise StoreFailureError(f"DynamoDB query error: {e}") from e

        return items

    @tracer.capture_method
    def batch_delete(self, keys: List[StoreKey]) -> List[StoreKey]:
        if not keys:
            return []
        if len(keys) > BATCH_WRITE_LIMIT:
            raise ValueError(
                f"batch_delete accepts at most {BATCH_WRITE_LIMIT} keys, got {len(keys)}"
            )

        request_items = {
            self.table_name: [{"DeleteRequest": {"Key": dict(key)}} for key in keys]
        }
        try:
            response = self.table.meta.client.batch_write_item(
                RequestItems=request_items
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(
                "DynamoDB batch_write_item failed",
                extra={"key_count": len(keys), "error": str(e)},
            )
            raise StoreFailureError(f"DynamoDB batch_write_item error: {e}") from e

        unprocessed = response.get("UnprocessedItems", {}).get(self.table_name, [])
        return [
            make_key(req["DeleteRequest"]["Key"]["PK"], req["DeleteRequest"]["Key"]["SK"])
            for req in unprocessed
        ]
