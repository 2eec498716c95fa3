"""POST /blocks/<block_id>/images - Create an image in a block."""

import os

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.event_handler.exceptions import BadRequestError
from aws_lambda_powertools.metrics import MetricUnit

from annotation_blocks.api.annotations_api.models import CreateImageRequest, to_response
from annotation_blocks.api.annotations_api.repositories.images import create_image
from annotation_blocks.api.annotations_api.stores import get_keyed_store
from annotation_blocks.common_libraries.blocks_utils import (
    create_error_response,
    create_success_response,
    parse_request_body,
)
from annotation_blocks.common_libraries.errors import AnnotationsError

logger = Logger(
    service="blocks-ID-images-post", level=os.environ.get("LOG_LEVEL", "INFO")
)
tracer = Tracer(service="blocks-ID-images-post")
metrics = Metrics(namespace="annotations", service="images")


def register_route(app):
    """Register POST /blocks/<block_id>/images route"""

    @app.post("/blocks/<block_id>/images")
    @tracer.capture_method
    def blocks_ID_images_post(block_id: str):
        """Create an image, optionally linked to a task via ``task_id``"""
        try:
            request_data = parse_request_body(app.current_event, CreateImageRequest)

            image = create_image(get_keyed_store(), block_id, request_data)

            return (
                create_success_response(
                    data=to_response(image),
                    request_id=app.current_event.request_context.request_id,
                ),
                201,
            )

        except (BadRequestError, AnnotationsError):
            raise
        except Exception as e:
            logger.exception("Unexpected error creating image", exc_info=e)
            metrics.add_metric(name="UnexpectedErrors", unit=MetricUnit.Count, value=1)
            return create_error_response(
                error_code="InternalServerError",
                error_message="An unexpected error occurred",
                status_code=500,
                request_id=app.current_event.request_context.request_id,
            )
