"""PATCH /images/<image_id>/annotations/<annotation_id> - Update an annotation."""

import os

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.event_handler.exceptions import BadRequestError
from aws_lambda_powertools.metrics import MetricUnit

from annotation_blocks.api.annotations_api.models import (
    UpdateAnnotationRequest,
    to_response,
)
from annotation_blocks.api.annotations_api.repositories.annotations import (
    update_annotation,
)
from annotation_blocks.api.annotations_api.stores import get_keyed_store
from annotation_blocks.common_libraries.blocks_utils import (
    create_error_response,
    create_success_response,
    parse_request_body,
)
from annotation_blocks.common_libraries.errors import AnnotationsError

logger = Logger(
    service="images-ID-annotations-ID-patch", level=os.environ.get("LOG_LEVEL", "INFO")
)
tracer = Tracer(service="images-ID-annotations-ID-patch")
metrics = Metrics(namespace="annotations", service="annotations")


def register_route(app):
    """Register PATCH /images/<image_id>/annotations/<annotation_id> route"""

    @app.patch("/images/<image_id>/annotations/<annotation_id>")
    @tracer.capture_method
    def images_ID_annotations_ID_patch(image_id: str, annotation_id: str):
        """Change the label or geometry of an annotation"""
        try:
            request_data = parse_request_body(app.current_event, UpdateAnnotationRequest)

            annotation = update_annotation(
                get_keyed_store(), image_id, annotation_id, request_data
            )

            return create_success_response(
                data=to_response(annotation),
                request_id=app.current_event.request_context.request_id,
            )

        except (BadRequestError, AnnotationsError):
            raise
        except Exception as e:
            logger.exception(
                f"Unexpected error updating annotation {annotation_id}", exc_info=e
            )
            metrics.add_metric(name="UnexpectedErrors", unit=MetricUnit.Count, value=1)
            return create_error_response(
                error_code="InternalServerError",
                error_message="An unexpected error occurred",
                status_code=500,
                request_id=app.current_event.request_context.request_id,
            )
