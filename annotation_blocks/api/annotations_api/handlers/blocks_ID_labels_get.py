"""GET /blocks/<block_id>/labels - List a block's labels."""

import os

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.event_handler.exceptions import BadRequestError
from aws_lambda_powertools.metrics import MetricUnit

from annotation_blocks.api.annotations_api.models import to_response
from annotation_blocks.api.annotations_api.repositories.labels import list_labels
from annotation_blocks.api.annotations_api.stores import get_keyed_store
from annotation_blocks.common_libraries.blocks_utils import (
    create_error_response,
    create_success_response,
)
from annotation_blocks.common_libraries.errors import AnnotationsError

logger = Logger(
    service="blocks-ID-labels-get", level=os.environ.get("LOG_LEVEL", "INFO")
)
tracer = Tracer(service="blocks-ID-labels-get")
metrics = Metrics(namespace="annotations", service="labels")


def register_route(app):
    """Register GET /blocks/<block_id>/labels route"""

    @app.get("/blocks/<block_id>/labels")
    @tracer.capture_method
    def blocks_ID_labels_get(block_id: str):
        """Labels ordered by the block type's drawing order"""
        try:
            labels = list_labels(get_keyed_store(), block_id)
            return create_success_response(
                data=[to_response(label) for label in labels],
                request_id=app.current_event.request_context.request_id,
            )

        except (BadRequestError, AnnotationsError):
            raise
        except Exception as e:
            logger.exception("Unexpected error listing labels", exc_info=e)
            metrics.add_metric(name="UnexpectedErrors", unit=MetricUnit.Count, value=1)
            return create_error_response(
                error_code="InternalServerError",
                error_message="An unexpected error occurred",
                status_code=500,
                request_id=app.current_event.request_context.request_id,
            )
