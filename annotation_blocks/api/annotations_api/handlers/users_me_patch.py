"""PATCH /users/me - Update the calling user's profile."""

import os

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.event_handler.exceptions import BadRequestError
from aws_lambda_powertools.metrics import MetricUnit

from annotation_blocks.api.annotations_api.models import UpdateUserRequest, to_response
from annotation_blocks.api.annotations_api.repositories.users import update_user
from annotation_blocks.api.annotations_api.stores import get_keyed_store
from annotation_blocks.common_libraries.blocks_utils import (
    create_error_response,
    create_success_response,
    parse_request_body,
)
from annotation_blocks.common_libraries.errors import AnnotationsError
from annotation_blocks.common_libraries.user_auth import require_user_id

logger = Logger(service="users-me-patch", level=os.environ.get("LOG_LEVEL", "INFO"))
tracer = Tracer(service="users-me-patch")
metrics = Metrics(namespace="annotations", service="users")


def register_route(app):
    """Register PATCH /users/me route"""

    @app.patch("/users/me")
    @tracer.capture_method
    def users_me_patch():
        try:
            user_id = require_user_id(app.current_event.raw_event)
            request_data = parse_request_body(app.current_event, UpdateUserRequest)

            user = update_user(get_keyed_store(), user_id, request_data)

            return create_success_response(
                data=to_response(user),
                request_id=app.current_event.request_context.request_id,
            )

        except (BadRequestError, AnnotationsError):
            raise
        except Exception as e:
            logger.exception("Unexpected error updating current user", exc_info=e)
            metrics.add_metric(name="UnexpectedErrors", unit=MetricUnit.Count, value=1)
            return create_error_response(
                error_code="InternalServerError",
                error_message="An unexpected error occurred",
                status_code=500,
                request_id=app.current_event.request_context.request_id,
            )
