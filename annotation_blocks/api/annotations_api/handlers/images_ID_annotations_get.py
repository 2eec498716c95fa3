"""GET /images/<image_id>/annotations - List an image's annotations."""

import os

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.event_handler.exceptions import BadRequestError
from aws_lambda_powertools.metrics import MetricUnit

from annotation_blocks.api.annotations_api.models import to_response
from annotation_blocks.api.annotations_api.repositories.annotations import (
    list_annotations,
)
from annotation_blocks.api.annotations_api.stores import get_keyed_store
from annotation_blocks.common_libraries.blocks_utils import (
    create_error_response,
    create_success_response,
)
from annotation_blocks.common_libraries.errors import AnnotationsError

logger = Logger(
    service="images-ID-annotations-get", level=os.environ.get("LOG_LEVEL", "INFO")
)
tracer = Tracer(service="images-ID-annotations-get")
metrics = Metrics(namespace="annotations", service="annotations")


def register_route(app):
    """Register GET /images/<image_id>/annotations route"""

    @app.get("/images/<image_id>/annotations")
    @tracer.capture_method
    def images_ID_annotations_get(image_id: str):
        try:
            annotations = list_annotations(get_keyed_store(), image_id)
            return create_success_response(
                data=[to_response(annotation) for annotation in annotations],
                request_id=app.current_event.request_context.request_id,
            )

        except (BadRequestError, AnnotationsError):
            raise
        except Exception as e:
            logger.exception("Unexpected error listing annotations", exc_info=e)
            metrics.add_metric(name="UnexpectedErrors", unit=MetricUnit.Count, value=1)
            return create_error_response(
                error_code="InternalServerError",
                error_message="An unexpected error occurred",
                status_code=500,
                request_id=app.current_event.request_context.request_id,
            )
