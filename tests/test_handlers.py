"""
Tests for the annotations API routes, resolved through the Lambda app.
"""

import json

import pytest

from annotation_blocks.api.annotations_api.index import app
from annotation_blocks.common_libraries.blocks_utils import block_key

POLYGON = {"type": "polygon", "points": [{"x": 1, "y": 1}, {"x": 5, "y": 1}]}


@pytest.fixture
def call(api_stores, api_event, lambda_context):
    """Resolve one request and return (status, parsed body)"""

    def _call(method, path, **kwargs):
        response = app.resolve(api_event(method, path, **kwargs), lambda_context)
        return response["statusCode"], json.loads(response["body"])

    return _call


@pytest.fixture
def block_id(call):
    status, body = call("POST", "/blocks", body={"block_name": "L1", "block_type": "floor"})
    assert status == 201
    return body["data"]["block_id"]


class TestBlockRoutes:
    """Tests for /blocks routes."""

    def test_create_block(self, call, api_stores):
        """Test that POST /blocks returns 201 with a zeroed block."""
        store, _ = api_stores

        status, body = call(
            "POST", "/blocks", body={"block_name": "Level 1", "block_type": "floor"}
        )

        assert status == 201
        assert body["success"] is True
        assert body["meta"]["request_id"] == "req-123"
        data = body["data"]
        assert data["image_count"] == 0
        assert data["block_state"] == "draft"
        assert store.row(*block_key(data["block_id"])) is not None

    def test_create_block_validation(self, call):
        """Test that a missing block_name is a 400."""
        status, body = call("POST", "/blocks", body={"block_type": "floor"})

        assert status == 400
        assert body["success"] is False
        assert body["error"]["code"] == "ValidationFailure"

    def test_invalid_json_body(self, api_event, lambda_context, api_stores):
        """Test that a non-JSON body is a 400."""
        event = api_event("POST", "/blocks")
        event["body"] = "{not json"

        response = app.resolve(event, lambda_context)

        assert response["statusCode"] == 400

    def test_get_missing_block(self, call):
        """Test that an unknown block is a 404 envelope."""
        status, body = call("GET", "/blocks/nope")

        assert status == 404
        assert body["error"]["code"] == "NotFound"
        assert body["meta"]["version"] == "v1"

    def test_list_blocks(self, call, block_id):
        """Test that GET /blocks lists created blocks."""
        status, body = call("GET", "/blocks")

        assert status == 200
        assert [block["block_id"] for block in body["data"]] == [block_id]

    def test_patch_block(self, call, block_id):
        """Test that PATCH /blocks/<id> updates only the sent fields."""
        status, body = call("PATCH", f"/blocks/{block_id}", body={"block_locked": True})

        assert status == 200
        assert body["data"]["block_locked"] is True
        assert body["data"]["block_name"] == "L1"

    def test_delete_block(self, call, block_id, api_stores):
        """Test cascade delete through the API, twice."""
        store, object_store = api_stores
        object_store.objects.add(f"annotations/blocks/{block_id}/a.png")
        call(
            "POST",
            f"/blocks/{block_id}/labels",
            body={"label_name": "doors", "label_color": "#f00"},
        )

        status, body = call("DELETE", f"/blocks/{block_id}")

        assert status == 200
        assert body["data"]["deleted"] is True
        assert body["data"]["keys_deleted"] == 2
        assert body["data"]["objects_purged"] == 1
        assert store.items == {}

        status, _ = call("DELETE", f"/blocks/{block_id}")
        assert status == 200


class TestTaskRoutes:
    """Tests for task routes and the reviewer field."""

    def test_task_lifecycle(self, call, block_id):
        """Test create, image attach, completion and the joined listing."""
        status, body = call(
            "POST", f"/blocks/{block_id}/tasks", body={"task_name": "t1", "reviewer": "rev"}
        )
        assert status == 201
        task = body["data"]
        assert task["reviewer"] == "rev"
        assert "checked_by" not in task

        status, _ = call(
            "POST",
            f"/blocks/{block_id}/tasks/{task['task_id']}/images",
            body={"url": "s3://a"},
        )
        assert status == 201

        status, body = call(
            "PATCH", f"/blocks/{block_id}/tasks/{task['task_id']}", body={"task_state": "done"}
        )
        assert status == 200
        assert body["data"]["task_state"] == "done"

        _, body = call("GET", f"/blocks/{block_id}")
        assert body["data"]["image_count"] == 1
        assert body["data"]["approved_image_count"] == 1

        _, body = call("GET", f"/blocks/{block_id}/tasks")
        assert [len(t["images"]) for t in body["data"]] == [1]

    def test_bad_task_state(self, call, block_id):
        """Test that an unknown state is rejected."""
        _, body = call("POST", f"/blocks/{block_id}/tasks", body={"task_name": "t"})
        task_id = body["data"]["task_id"]

        status, body = call(
            "PATCH", f"/blocks/{block_id}/tasks/{task_id}", body={"task_state": "archived"}
        )

        assert status == 400

    def test_patch_missing_task(self, call, block_id):
        """Test 404 when the task does not exist."""
        status, _ = call("PATCH", f"/blocks/{block_id}/tasks/nope", body={"task_name": "x"})

        assert status == 404


class TestImageRoutes:
    """Tests for image routes."""

    def test_block_id_is_required(self, call):
        """Test that image routes need the block_id query parameter."""
        status, body = call("GET", "/images/I1")

        assert status == 400
        assert "block_id" in body["error"]["message"]

    def test_counter_failure_after_primary_write(self, call, api_stores):
        """Test that a missing block row surfaces as CounterUpdateFailed."""
        store, _ = api_stores

        status, body = call("POST", "/blocks/ghost/images", body={"url": "s3://x"})

        assert status == 500
        assert body["error"]["code"] == "CounterUpdateFailed"
        # The image row itself is kept
        assert len(store.query("BLOCK#ghost", "IMAGE#")) == 1

    def test_image_delete_with_annotations(self, call, block_id):
        """Test that deleting an image reports its removed annotations."""
        _, body = call("POST", f"/blocks/{block_id}/images", body={"url": "s3://x"})
        image_id = body["data"]["image_id"]
        call(
            "POST",
            f"/images/{image_id}/annotations/batch",
            body={"annotations": [{"label_id": "L", "geometry": POLYGON}] * 2},
            query={"block_id": block_id},
        )

        status, body = call("DELETE", f"/images/{image_id}", query={"block_id": block_id})

        assert status == 200
        assert body["data"]["annotations_deleted"] == 2
        _, body = call("GET", f"/images/{image_id}/annotations")
        assert body["data"] == []


class TestAnnotationRoutes:
    """Tests for annotation routes."""

    def test_create_requires_principal(self, call, block_id):
        """Test that annotation creation is rejected without a user."""
        status, body = call(
            "POST",
            "/images/I1/annotations",
            body={"label_id": "L", "geometry": POLYGON},
            query={"block_id": block_id},
            user_id=None,
        )

        assert status == 401
        assert body["error"]["code"] == "Unauthorized"

    def test_create_and_fetch(self, call, block_id):
        """Test that the creator and geometry come back on read."""
        _, body = call("POST", f"/blocks/{block_id}/images", body={"url": "s3://x"})
        image_id = body["data"]["image_id"]

        status, body = call(
            "POST",
            f"/images/{image_id}/annotations",
            body={"label_id": "L", "geometry": POLYGON},
            query={"block_id": block_id},
        )
        assert status == 201
        annotation_id = body["data"]["annotation_id"]

        status, body = call("GET", f"/images/{image_id}/annotations/{annotation_id}")

        assert status == 200
        assert body["data"]["created_by"] == "user-1"
        assert body["data"]["geometry"]["type"] == "polygon"

    def test_unknown_geometry_is_rejected(self, call, block_id):
        """Test that an unsupported geometry type is a 400."""
        status, _ = call(
            "POST",
            "/images/I1/annotations",
            body={"label_id": "L", "geometry": {"type": "circle"}},
            query={"block_id": block_id},
        )

        assert status == 400


    def test_repeated_delete_is_reported(self, call, block_id):
        """Test that a second delete succeeds without touching counters."""
        _, body = call("POST", f"/blocks/{block_id}/images", body={"url": "s3://x"})
        image_id = body["data"]["image_id"]
        _, body = call(
            "POST",
            f"/images/{image_id}/annotations",
            body={"label_id": "L", "geometry": POLYGON},
            query={"block_id": block_id},
        )
        path = f"/images/{image_id}/annotations/{body['data']['annotation_id']}"

        _, first = call("DELETE", path, query={"block_id": block_id})
        status, second = call("DELETE", path, query={"block_id": block_id})

        assert first["data"]["deleted"] is True
        assert status == 200
        assert second["data"]["deleted"] is False
        _, body = call("GET", f"/blocks/{block_id}")
        assert body["data"]["annotation_count"] == 0


class TestUserRoutes:
    """Tests for /users routes."""

    def test_header_principal(self, call):
        """Test that X-User-Id identifies the caller without claims."""
        headers = {"X-User-Id": "proxy-user"}
        status, _ = call(
            "POST",
            "/users",
            body={"user_email": "pat@example.com"},
            user_id=None,
            headers=headers,
        )
        assert status == 201

        status, body = call("GET", "/users/me", user_id=None, headers=headers)

        assert status == 200
        assert body["data"]["user_id"] == "proxy-user"
        assert body["data"]["user_name"] == "pat"
        assert body["data"]["user_last_login"]

    def test_unknown_user(self, call):
        """Test 404 for a caller without a profile."""
        status, _ = call("GET", "/users/me")

        assert status == 404
