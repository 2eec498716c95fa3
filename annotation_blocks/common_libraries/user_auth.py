"""Principal extraction from API Gateway REST events."""

from typing import Any, Dict, Optional

from aws_lambda_powertools import Logger

from annotation_blocks.common_libraries.errors import UnauthorizedError

logger = Logger(service="user-auth", child=True)

USER_ID_HEADER = "x-user-id"


def _header(event: Dict[str, Any], name: str) -> Optional[str]:
    headers = event.get("headers") or {}
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


def extract_user_context(event: Dict[str, Any]) -> Dict[str, Optional[str]]:
    """
    Extract the caller identity from an API Gateway REST event.

    The Cognito authorizer claims are preferred; the ``X-User-Id`` header is
    accepted for callers fronted by a trusted proxy.

    Returns:
        Dict with ``user_id``, ``username`` and ``email`` (values may be None)
    """
    claims = (
        event.get("requestContext", {}).get("authorizer", {}) or {}
    ).get("claims") or {}

    user_id = claims.get("sub")
    if not user_id:
        user_id = _header(event, USER_ID_HEADER)

    return {
        "user_id": user_id or None,
        "username": claims.get("cognito:username"),
        "email": claims.get("email"),
    }


def require_user_id(event: Dict[str, Any]) -> str:
    user_id = extract_user_context(event).get("user_id")
    if not user_id:
        logger.warning("Request has no authenticated principal")
        raise UnauthorizedError("No authenticated principal on request")
    return user_id
