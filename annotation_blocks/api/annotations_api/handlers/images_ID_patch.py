"""PATCH /images/<image_id>?block_id= - Update image lock or order."""

import os

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.event_handler.exceptions import BadRequestError
from aws_lambda_powertools.metrics import MetricUnit

from annotation_blocks.api.annotations_api.models import UpdateImageRequest, to_response
from annotation_blocks.api.annotations_api.repositories.images import update_image
from annotation_blocks.api.annotations_api.stores import get_keyed_store
from annotation_blocks.common_libraries.blocks_utils import (
    create_error_response,
    create_success_response,
    parse_request_body,
    require_query_param,
)
from annotation_blocks.common_libraries.errors import AnnotationsError

logger = Logger(service="images-ID-patch", level=os.environ.get("LOG_LEVEL", "INFO"))
tracer = Tracer(service="images-ID-patch")
metrics = Metrics(namespace="annotations", service="images")


def register_route(app):
    """Register PATCH /images/<image_id> route"""

    @app.patch("/images/<image_id>")
    @tracer.capture_method
    def images_ID_patch(image_id: str):
        """Update ``locked`` or ``order``; ``updated_at`` is always stamped"""
        try:
            block_id = require_query_param(app.current_event, "block_id")
            request_data = parse_request_body(app.current_event, UpdateImageRequest)

            image = update_image(get_keyed_store(), block_id, image_id, request_data)

            return create_success_response(
                data=to_response(image),
                request_id=app.current_event.request_context.request_id,
            )

        except (BadRequestError, AnnotationsError):
            raise
        except Exception as e:
            logger.exception(f"Unexpected error updating image {image_id}", exc_info=e)
            metrics.add_metric(name="UnexpectedErrors", unit=MetricUnit.Count, value=1)
            return create_error_response(
                error_code="InternalServerError",
                error_message="An unexpected error occurred",
                status_code=500,
                request_id=app.current_event.request_context.request_id,
            )
