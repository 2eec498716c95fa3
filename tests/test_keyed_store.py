"""
Unit tests for the DynamoDB-backed keyed store.
"""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from annotation_blocks.common_libraries.errors import NotFoundError, StoreFailureError
from annotation_blocks.common_libraries.keyed_store import DynamoKeyedStore, make_key


def client_error(code, operation="UpdateItem"):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


@pytest.fixture
def table():
    table = MagicMock()
    table.name = "annotations"
    return table


@pytest.fixture
def dynamo_store(table):
    return DynamoKeyedStore(table)


class TestGetPut:
    """Tests for single item reads and writes."""

    def test_get_returns_item(self, dynamo_store, table):
        """Test that get returns the stored item."""
        table.get_item.return_value = {"Item": {"PK": "BLOCK", "SK": "BLOCK#1"}}

        assert dynamo_store.get("BLOCK", "BLOCK#1") == {"PK": "BLOCK", "SK": "BLOCK#1"}
        table.get_item.assert_called_once_with(Key={"PK": "BLOCK", "SK": "BLOCK#1"})

    def test_get_missing_returns_none(self, dynamo_store, table):
        """Test that a missing item yields None."""
        table.get_item.return_value = {}

        assert dynamo_store.get("BLOCK", "BLOCK#404") is None

    def test_get_wraps_client_errors(self, dynamo_store, table):
        """Test that DynamoDB errors surface as StoreFailureError."""
        table.get_item.side_effect = client_error("ProvisionedThroughputExceededException")

        with pytest.raises(StoreFailureError):
            dynamo_store.get("BLOCK", "BLOCK#1")

    def test_put_drops_none_fields(self, dynamo_store, table):
        """Test that None values are not written."""
        dynamo_store.put("BLOCK", "BLOCK#1", {"block_name": "A", "block_company": None})

        table.put_item.assert_called_once_with(
            Item={"block_name": "A", "PK": "BLOCK", "SK": "BLOCK#1"}
        )


class TestDelete:
    """Tests for single item deletes."""

    def test_delete_returns_removed_item(self, dynamo_store, table):
        """Test that the old item comes back so callers know a row went away."""
        table.delete_item.return_value = {"Attributes": {"PK": "IMAGE#1", "SK": "ANNOTATION#1"}}

        removed = dynamo_store.delete("IMAGE#1", "ANNOTATION#1")

        assert removed == {"PK": "IMAGE#1", "SK": "ANNOTATION#1"}
        table.delete_item.assert_called_once_with(
            Key={"PK": "IMAGE#1", "SK": "ANNOTATION#1"}, ReturnValues="ALL_OLD"
        )

    def test_delete_missing_item_returns_none(self, dynamo_store, table):
        """Test that deleting an absent key reports nothing removed."""
        table.delete_item.return_value = {}

        assert dynamo_store.delete("IMAGE#1", "ANNOTATION#1") is None


class TestUpdate:
    """Tests for sparse and conditional updates."""

    def test_update_sets_only_given_fields(self, dynamo_store, table):
        """Test the SET expression covers exactly the patch fields."""
        table.update_item.return_value = {"Attributes": {"block_name": "B"}}

        result = dynamo_store.update("BLOCK", "BLOCK#1", {"block_name": "B"})

        assert result == {"block_name": "B"}
        kwargs = table.update_item.call_args.kwargs
        assert kwargs["UpdateExpression"] == "SET #f0 = :v0"
        assert kwargs["ExpressionAttributeNames"] == {"#f0": "block_name"}
        assert kwargs["ExpressionAttributeValues"] == {":v0": "B"}
        assert kwargs["ConditionExpression"] == "attribute_exists(PK)"
        assert kwargs["ReturnValues"] == "ALL_NEW"

    def test_update_missing_row_raises_not_found(self, dynamo_store, table):
        """Test that a failed existence condition maps to NotFoundError."""
        table.update_item.side_effect = client_error("ConditionalCheckFailedException")

        with pytest.raises(NotFoundError):
            dynamo_store.update("BLOCK", "BLOCK#1", {"block_name": "B"})

    def test_update_without_condition(self, dynamo_store, table):
        """Test that require_existing=False omits the condition."""
        table.update_item.return_value = {"Attributes": {}}

        dynamo_store.update("USER#1", "USER#1", {"user_name": "x"}, require_existing=False)

        assert "ConditionExpression" not in table.update_item.call_args.kwargs

    def test_empty_update_reads_current_item(self, dynamo_store, table):
        """Test that an empty patch does not issue an update."""
        table.get_item.return_value = {"Item": {"PK": "BLOCK", "SK": "BLOCK#1"}}

        assert dynamo_store.update("BLOCK", "BLOCK#1", {}) == {
            "PK": "BLOCK",
            "SK": "BLOCK#1",
        }
        table.update_item.assert_not_called()


class TestIncrement:
    """Tests for atomic counter updates."""

    def test_increment_is_atomic_and_conditional(self, dynamo_store, table):
        """Test the increment expression and guard."""
        table.update_item.return_value = {"Attributes": {"image_count": 3}}

        result = dynamo_store.increment("BLOCK", "BLOCK#1", "image_count", 1)

        assert result == {"image_count": 3}
        kwargs = table.update_item.call_args.kwargs
        assert kwargs["UpdateExpression"] == "SET #c = if_not_exists(#c, :zero) + :delta"
        assert kwargs["ConditionExpression"] == "attribute_exists(PK)"
        assert kwargs["ExpressionAttributeNames"] == {"#c": "image_count"}
        assert kwargs["ExpressionAttributeValues"] == {":zero": 0, ":delta": 1}
        table.get_item.assert_not_called()

    def test_increment_missing_row_raises_not_found(self, dynamo_store, table):
        """Test that counters never resurrect deleted rows."""
        table.update_item.side_effect = client_error("ConditionalCheckFailedException")

        with pytest.raises(NotFoundError):
            dynamo_store.increment("BLOCK", "BLOCK#1", "image_count", -1)

    def test_increment_other_errors_are_store_failures(self, dynamo_store, table):
        """Test that other client errors become StoreFailureError."""
        table.update_item.side_effect = client_error("InternalServerError")

        with pytest.raises(StoreFailureError):
            dynamo_store.increment("BLOCK", "BLOCK#1", "image_count", 1)


class TestQuery:
    """Tests for paginated partition queries."""

    def test_query_follows_pages(self, dynamo_store, table):
        """Test that every page is read."""
        table.meta.client.query.side_effect = [
            {"Items": [{"SK": "TASK#1"}], "LastEvaluatedKey": {"PK": "p", "SK": "TASK#1"}},
            {"Items": [{"SK": "TASK#2"}]},
        ]

        items = dynamo_store.query("BLOCK#1", "TASK#")

        assert items == [{"SK": "TASK#1"}, {"SK": "TASK#2"}]
        assert table.meta.client.query.call_count == 2
        assert table.meta.client.query.call_args_list[0].kwargs["TableName"] == "annotations"
        table.query.assert_not_called()
        assert table.meta.client.query.call_args_list[1].kwargs["ExclusiveStartKey"] == {
            "PK": "p",
            "SK": "TASK#1",
        }

    def test_query_error(self, dynamo_store, table):
        """Test that query errors are wrapped."""
        table.meta.client.query.side_effect = client_error("ResourceNotFoundException", "Query")

        with pytest.raises(StoreFailureError):
            dynamo_store.query("BLOCK#1", "TASK#")


class TestBatchDelete:
    """Tests for batch deletion."""

    def test_returns_unprocessed_keys(self, dynamo_store, table):
        """Test that unprocessed delete requests are handed back."""
        table.meta.client.batch_write_item.return_value = {
            "UnprocessedItems": {
                "annotations": [
                    {"DeleteRequest": {"Key": {"PK": "BLOCK#1", "SK": "TASK#2"}}}
                ]
            }
        }
        keys = [make_key("BLOCK#1", "TASK#1"), make_key("BLOCK#1", "TASK#2")]

        unprocessed = dynamo_store.batch_delete(keys)

        assert unprocessed == [{"PK": "BLOCK#1", "SK": "TASK#2"}]
        request = table.meta.client.batch_write_item.call_args.kwargs["RequestItems"]
        assert len(request["annotations"]) == 2

    def test_rejects_oversized_batches(self, dynamo_store):
        """Test that more than 25 keys is a programming error."""
        keys = [make_key("BLOCK#1", f"LABEL#{i}") for i in range(26)]

        with pytest.raises(ValueError):
            dynamo_store.batch_delete(keys)

    def test_empty_batch_is_noop(self, dynamo_store, table):
        """Test that no request is sent for an empty batch."""
        assert dynamo_store.batch_delete([]) == []
        table.meta.client.batch_write_item.assert_not_called()
