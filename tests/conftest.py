import json
import os

import pytest

os.environ.setdefault("POWERTOOLS_TRACE_DISABLED", "1")
os.environ.setdefault("POWERTOOLS_METRICS_NAMESPACE", "annotations")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")

from annotation_blocks.api.annotations_api import stores  # noqa: E402
from annotation_blocks.api.annotations_api.config import ApiConfig  # noqa: E402
from tests.fakes import FakeObjectStore, InMemoryKeyedStore  # noqa: E402


@pytest.fixture
def store():
    return InMemoryKeyedStore()


@pytest.fixture
def object_store():
    return FakeObjectStore()


@pytest.fixture
def config():
    return ApiConfig(batch_delete_backoff_ms=0)


@pytest.fixture
def api_stores(store, object_store, config):
    """Point the API's cached clients at the in-memory fakes"""
    stores.set_stores(store, object_store, config)
    yield store, object_store
    stores.set_stores()


@pytest.fixture
def lambda_context():
    class Context:
        function_name = "annotations-api"
        memory_limit_in_mb = 128
        invoked_function_arn = (
            "arn:aws:lambda:us-east-1:123456789012:function:annotations-api"
        )
        aws_request_id = "lambda-request-id"

    return Context()


def make_api_event(
    method,
    path,
    body=None,
    query=None,
    user_id="user-1",
    headers=None,
):
    """Build an API Gateway REST proxy event"""
    request_headers = {"Content-Type": "application/json"}
    if headers:
        request_headers.update(headers)

    authorizer = {"claims": {"sub": user_id, "email": "ann@example.com"}} if user_id else {}

    return {
        "resource": path,
        "path": path,
        "httpMethod": method,
        "headers": request_headers,
        "multiValueHeaders": {k: [v] for k, v in request_headers.items()},
        "queryStringParameters": query,
        "multiValueQueryStringParameters": None,
        "pathParameters": None,
        "stageVariables": None,
        "requestContext": {
            "accountId": "123456789012",
            "apiId": "api",
            "httpMethod": method,
            "path": path,
            "resourcePath": path,
            "stage": "test",
            "requestId": "req-123",
            "authorizer": authorizer,
            "identity": {"sourceIp": "127.0.0.1"},
        },
        "body": json.dumps(body) if body is not None else None,
        "isBase64Encoded": False,
    }


@pytest.fixture
def api_event():
    return make_api_event
