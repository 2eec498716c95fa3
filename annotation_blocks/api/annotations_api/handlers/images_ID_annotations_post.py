"""POST /images/<image_id>/annotations?block_id= - Create an annotation."""

import os

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.event_handler.exceptions import BadRequestError
from aws_lambda_powertools.metrics import MetricUnit

from annotation_blocks.api.annotations_api.models import (
    CreateAnnotationRequest,
    to_response,
)
from annotation_blocks.api.annotations_api.repositories.annotations import (
    create_annotation,
)
from annotation_blocks.api.annotations_api.stores import get_keyed_store
from annotation_blocks.common_libraries.blocks_utils import (
    create_error_response,
    create_success_response,
    parse_request_body,
    require_query_param,
)
from annotation_blocks.common_libraries.errors import AnnotationsError
from annotation_blocks.common_libraries.user_auth import require_user_id

logger = Logger(
    service="images-ID-annotations-post", level=os.environ.get("LOG_LEVEL", "INFO")
)
tracer = Tracer(service="images-ID-annotations-post")
metrics = Metrics(namespace="annotations", service="annotations")


def register_route(app):
    """Register POST /images/<image_id>/annotations route"""

    @app.post("/images/<image_id>/annotations")
    @tracer.capture_method
    def images_ID_annotations_post(image_id: str):
        """
        Create an annotation drawn by the calling user. The block and image
        annotation counts are incremented after the row is written.
        """
        try:
            user_id = require_user_id(app.current_event.raw_event)
            block_id = require_query_param(app.current_event, "block_id")
            request_data = parse_request_body(app.current_event, CreateAnnotationRequest)

            annotation = create_annotation(
                get_keyed_store(), block_id, image_id, user_id, request_data
            )

            return (
                create_success_response(
                    data=to_response(annotation),
                    request_id=app.current_event.request_context.request_id,
                ),
                201,
            )

        except (BadRequestError, AnnotationsError):
            raise
        except Exception as e:
            logger.exception("Unexpected error creating annotation", exc_info=e)
            metrics.add_metric(name="UnexpectedErrors", unit=MetricUnit.Count, value=1)
            return create_error_response(
                error_code="InternalServerError",
                error_message="An unexpected error occurred",
                status_code=500,
                request_id=app.current_event.request_context.request_id,
            )
