"""GET /blocks/<block_id>/images - List a block's images."""

import os

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.event_handler.exceptions import BadRequestError
from aws_lambda_powertools.metrics import MetricUnit

from annotation_blocks.api.annotations_api.models import to_response
from annotation_blocks.api.annotations_api.repositories.images import (
    list_images_for_block,
)
from annotation_blocks.api.annotations_api.stores import get_keyed_store
from annotation_blocks.common_libraries.blocks_utils import (
    create_error_response,
    create_success_response,
)
from annotation_blocks.common_libraries.errors import AnnotationsError

logger = Logger(
    service="blocks-ID-images-get", level=os.environ.get("LOG_LEVEL", "INFO")
)
tracer = Tracer(service="blocks-ID-images-get")
metrics = Metrics(namespace="annotations", service="images")


def register_route(app):
    """Register GET /blocks/<block_id>/images route"""

    @app.get("/blocks/<block_id>/images")
    @tracer.capture_method
    def blocks_ID_images_get(block_id: str):
        """Images of the block; ordered images first, unordered after"""
        try:
            images = list_images_for_block(get_keyed_store(), block_id)

            metrics.add_metric(
                name="ImagesReturned", unit=MetricUnit.Count, value=len(images)
            )
            return create_success_response(
                data=[to_response(image) for image in images],
                request_id=app.current_event.request_context.request_id,
            )

        except (BadRequestError, AnnotationsError):
            raise
        except Exception as e:
            logger.exception("Unexpected error listing block images", exc_info=e)
            metrics.add_metric(name="UnexpectedErrors", unit=MetricUnit.Count, value=1)
            return create_error_response(
                error_code="InternalServerError",
                error_message="An unexpected error occurred",
                status_code=500,
                request_id=app.current_event.request_context.request_id,
            )
