"""PATCH /blocks/<block_id> - Update block name, state or lock."""

import os

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.event_handler.exceptions import BadRequestError
from aws_lambda_powertools.metrics import MetricUnit

from annotation_blocks.api.annotations_api.models import UpdateBlockRequest, to_response
from annotation_blocks.api.annotations_api.repositories.blocks import update_block
from annotation_blocks.api.annotations_api.stores import get_keyed_store
from annotation_blocks.common_libraries.blocks_utils import (
    create_error_response,
    create_success_response,
    parse_request_body,
)
from annotation_blocks.common_libraries.errors import AnnotationsError

logger = Logger(service="blocks-ID-patch", level=os.environ.get("LOG_LEVEL", "INFO"))
tracer = Tracer(service="blocks-ID-patch")
metrics = Metrics(namespace="annotations", service="blocks")


def register_route(app):
    """Register PATCH /blocks/<block_id> route"""

    @app.patch("/blocks/<block_id>")
    @tracer.capture_method
    def blocks_ID_patch(block_id: str):
        """Apply a sparse update; only fields present in the body are written"""
        try:
            request_data = parse_request_body(app.current_event, UpdateBlockRequest)

            block = update_block(get_keyed_store(), block_id, request_data)

            metrics.add_metric(
                name="SuccessfulBlockUpdates", unit=MetricUnit.Count, value=1
            )
            return create_success_response(
                data=to_response(block),
                request_id=app.current_event.request_context.request_id,
            )

        except (BadRequestError, AnnotationsError):
            raise
        except Exception as e:
            logger.exception(f"Unexpected error updating block {block_id}", exc_info=e)
            metrics.add_metric(name="UnexpectedErrors", unit=MetricUnit.Count, value=1)
            return create_error_response(
                error_code="InternalServerError",
                error_message="An unexpected error occurred",
                status_code=500,
                request_id=app.current_event.request_context.request_id,
            )
