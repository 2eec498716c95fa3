"""User rows: PK=SK=USER#<user_id>."""

from typing import Any, Dict

from aws_lambda_powertools import Logger, Tracer

from annotation_blocks.api.annotations_api.models import (
    CreateUserRequest,
    UpdateUserRequest,
    User,
    sparse_fields,
)
from annotation_blocks.common_libraries.blocks_utils import (
    USER_PREFIX,
    now_iso,
    strip_prefix,
    user_key,
)
from annotation_blocks.common_libraries.errors import NotFoundError, StoreFailureError
from annotation_blocks.common_libraries.keyed_store import KeyedStore

logger = Logger(service="users-repository", child=True)
tracer = Tracer(service="users-repository")


def to_user(item: Dict[str, Any]) -> User:
    email = item.get("user_email", "")
    name = item.get("user_name") or email.split("@")[0]
    return User(
        user_id=strip_prefix(item.get("PK", ""), USER_PREFIX) or item.get("user_id"),
        user_name=name,
        user_email=email,
        user_company=item.get("user_company"),
        user_role=item.get("user_role", ""),
        user_created_at=item.get("user_created_at", ""),
        user_last_login=item.get("user_last_login"),
    )


@tracer.capture_method
def create_user(store: KeyedStore, user_id: str, request: CreateUserRequest) -> User:
    fields = {
        "user_name": request.user_name,
        "user_email": request.user_email,
        "user_company": request.user_company,
        "user_role": request.user_role,
        "user_created_at": now_iso(),
    }
    store.put(*user_key(user_id), fields)
    logger.info(f"Created user {user_id}", extra={"user_role": request.user_role})

    return to_user({"user_id": user_id, **fields})


@tracer.capture_method
def get_user(store: KeyedStore, user_id: str) -> User:
    """Read a user and stamp ``user_last_login``; the stamp is best effort"""
    item = store.get(*user_key(user_id))
    if item is None:
        raise NotFoundError(f"User {user_id} not found", user_id)

    last_login = now_iso()
    try:
        store.update(*user_key(user_id), {"user_last_login": last_login})
        item = {**item, "user_last_login": last_login}
    except (NotFoundError, StoreFailureError) as e:
        logger.warning(
            f"Failed to record last login for user {user_id}: {e}",
            extra={"user_id": user_id},
        )

    return to_user(item)


@tracer.capture_method
def update_user(store: KeyedStore, user_id: str, request: UpdateUserRequest) -> User:
    try:
        item = store.update(*user_key(user_id), sparse_fields(request))
    except NotFoundError:
        raise NotFoundError(f"User {user_id} not found", user_id)
    return to_user(item)
