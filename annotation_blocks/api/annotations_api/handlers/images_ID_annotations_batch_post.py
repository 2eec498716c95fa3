"""POST /images/<image_id>/annotations/batch?block_id= - Create many annotations."""

import os

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.event_handler.exceptions import BadRequestError
from aws_lambda_powertools.metrics import MetricUnit

from annotation_blocks.api.annotations_api.models import (
    CreateAnnotationsBatchRequest,
    to_response,
)
from annotation_blocks.api.annotations_api.repositories.annotations import (
    create_annotations,
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
    service="images-ID-annotations-batch-post",
    level=os.environ.get("LOG_LEVEL", "INFO"),
)
tracer = Tracer(service="images-ID-annotations-batch-post")
metrics = Metrics(namespace="annotations", service="annotations")


def register_route(app):
    """Register POST /images/<image_id>/annotations/batch route"""

    @app.post("/images/<image_id>/annotations/batch")
    @tracer.capture_method
    def images_ID_annotations_batch_post(image_id: str):
        """Annotations are created in order; the first failure aborts the rest"""
        try:
            user_id = require_user_id(app.current_event.raw_event)
            block_id = require_query_param(app.current_event, "block_id")
            request_data = parse_request_body(
                app.current_event, CreateAnnotationsBatchRequest
            )

            annotations = create_annotations(
                get_keyed_store(),
                block_id,
                image_id,
                user_id,
                request_data.annotations,
            )

            return (
                create_success_response(
                    data=[to_response(annotation) for annotation in annotations],
                    request_id=app.current_event.request_context.request_id,
                ),
                201,
            )

        except (BadRequestError, AnnotationsError):
            raise
        except Exception as e:
            logger.exception("Unexpected error creating annotation batch", exc_info=e)
            metrics.add_metric(name="UnexpectedErrors", unit=MetricUnit.Count, value=1)
            return create_error_response(
                error_code="InternalServerError",
                error_message="An unexpected error occurred",
                status_code=500,
                request_id=app.current_event.request_context.request_id,
            )
