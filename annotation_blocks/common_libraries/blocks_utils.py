"""
Block utilities for the annotation blocks Lambda functions.

This module provides the single-table key layout, timestamp and identifier
helpers, and the standardized response envelopes used by every handler.
"""

import json
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple, Type, TypeVar

from aws_lambda_powertools import Logger
from aws_lambda_powertools.event_handler.exceptions import BadRequestError
from aws_lambda_powertools.utilities.parser import ValidationError, parse
from pydantic import BaseModel

logger = Logger(service="blocks-utils", child=True)

M = TypeVar("M", bound=BaseModel)

# Partition / sort key layout
BLOCK_PK = "BLOCK"
BLOCK_PREFIX = "BLOCK#"
TASK_PREFIX = "TASK#"
IMAGE_PREFIX = "IMAGE#"
LABEL_PREFIX = "LABEL#"
ANNOTATION_PREFIX = "ANNOTATION#"
USER_PREFIX = "USER#"

# Task states
TASK_STATE_TODO = "todo"
TASK_STATE_IN_PROGRESS = "in_progress"
TASK_STATE_DONE = "done"

BLOCK_STATE_DRAFT = "draft"


def block_key(block_id: str) -> Tuple[str, str]:
    return BLOCK_PK, f"{BLOCK_PREFIX}{block_id}"


def block_partition(block_id: str) -> str:
    return f"{BLOCK_PREFIX}{block_id}"


def task_key(block_id: str, task_id: str) -> Tuple[str, str]:
    return block_partition(block_id), f"{TASK_PREFIX}{task_id}"


def image_key(block_id: str, image_id: str) -> Tuple[str, str]:
    return block_partition(block_id), f"{IMAGE_PREFIX}{image_id}"


def label_key(block_id: str, label_id: str) -> Tuple[str, str]:
    return block_partition(block_id), f"{LABEL_PREFIX}{label_id}"


def image_partition(image_id: str) -> str:
    return f"{IMAGE_PREFIX}{image_id}"


def annotation_key(image_id: str, annotation_id: str) -> Tuple[str, str]:
    return image_partition(image_id), f"{ANNOTATION_PREFIX}{annotation_id}"


def user_key(user_id: str) -> Tuple[str, str]:
    return f"{USER_PREFIX}{user_id}", f"{USER_PREFIX}{user_id}"


def strip_prefix(value: str, prefix: str) -> Optional[str]:
    """Return ``value`` without ``prefix``, or None when it does not start with it"""
    if value and value.startswith(prefix):
        return value[len(prefix) :]
    return None


def new_id() -> str:
    return str(uuid.uuid4())


def now_iso() -> str:
    """Current UTC time in RFC 3339 format"""
    return datetime.now(timezone.utc).isoformat()


class DecimalEncoder(json.JSONEncoder):
    """Render DynamoDB Decimals as ints or floats"""

    def default(self, o):
        if isinstance(o, Decimal):
            return int(o) if o % 1 == 0 else float(o)
        return super().default(o)


def json_dumps(value: Any) -> str:
    return json.dumps(value, cls=DecimalEncoder)


def parse_request_body(current_event, model: Type[M]) -> M:
    """
    Validate the JSON body of an API Gateway event against a Pydantic model.

    Raises:
        BadRequestError: If the body is not JSON or fails validation
    """
    body = current_event.body
    try:
        payload = json.loads(body) if body else {}
    except ValueError as e:
        raise BadRequestError(f"Request body is not valid JSON: {e}")

    try:
        return parse(event=payload, model=model)
    except ValidationError as e:
        logger.warning(f"Validation error parsing {model.__name__}: {e}")
        raise BadRequestError(f"Validation error: {str(e)}")


def require_query_param(current_event, name: str) -> str:
    value = current_event.get_query_string_value(name)
    if not value:
        raise BadRequestError(f"Missing {name} query parameter")
    return value


def create_error_response(
    error_code: str,
    error_message: str,
    status_code: int = 500,
    request_id: Optional[str] = None,
) -> Tuple[Dict[str, Any], int]:
    """
    Create standardized error response for the annotations API.

    Args:
        error_code: Error code identifier
        error_message: Human-readable error message
        status_code: HTTP status code
        request_id: Optional request ID for tracking

    Returns:
        Tuple of the error envelope and the HTTP status code
    """
    response = {
        "success": False,
        "error": {
            "code": error_code,
            "message": error_message,
        },
        "meta": {
            "timestamp": now_iso(),
            "version": "v1",
        },
    }

    if request_id:
        response["meta"]["request_id"] = request_id

    return response, status_code


def create_success_response(
    data: Any,
    request_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Create standardized success response for the annotations API.

    Args:
        data: Response data
        request_id: Optional request ID for tracking

    Returns:
        Standardized success response dictionary
    """
    response = {
        "success": True,
        "data": data,
        "meta": {
            "timestamp": now_iso(),
            "version": "v1",
        },
    }

    if request_id:
        response["meta"]["request_id"] = request_id

    return response
