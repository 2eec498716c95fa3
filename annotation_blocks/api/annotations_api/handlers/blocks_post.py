"""POST /blocks - Create a block."""

import os

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.event_handler.exceptions import BadRequestError
from aws_lambda_powertools.metrics import MetricUnit

from annotation_blocks.api.annotations_api.models import CreateBlockRequest, to_response
from annotation_blocks.api.annotations_api.repositories.blocks import create_block
from annotation_blocks.api.annotations_api.stores import get_keyed_store
from annotation_blocks.common_libraries.blocks_utils import (
    create_error_response,
    create_success_response,
    parse_request_body,
)
from annotation_blocks.common_libraries.errors import AnnotationsError
from annotation_blocks.common_libraries.user_auth import extract_user_context

logger = Logger(service="blocks-post", level=os.environ.get("LOG_LEVEL", "INFO"))
tracer = Tracer(service="blocks-post")
metrics = Metrics(namespace="annotations", service="blocks")


def register_route(app):
    """Register POST /blocks route"""

    @app.post("/blocks")
    @tracer.capture_method
    def blocks_post():
        """Create a new draft block with zeroed counters"""
        try:
            user_context = extract_user_context(app.current_event.raw_event)
            request_data = parse_request_body(app.current_event, CreateBlockRequest)

            block = create_block(get_keyed_store(), request_data)

            logger.info(
                f"Block {block.block_id} created",
                extra={"user_id": user_context.get("user_id")},
            )
            metrics.add_metric(
                name="SuccessfulBlockCreations", unit=MetricUnit.Count, value=1
            )

            return (
                create_success_response(
                    data=to_response(block),
                    request_id=app.current_event.request_context.request_id,
                ),
                201,
            )

        except (BadRequestError, AnnotationsError):
            raise
        except Exception as e:
            logger.exception("Unexpected error creating block", exc_info=e)
            metrics.add_metric(name="UnexpectedErrors", unit=MetricUnit.Count, value=1)
            return create_error_response(
                error_code="InternalServerError",
                error_message="An unexpected error occurred",
                status_code=500,
                request_id=app.current_event.request_context.request_id,
            )
