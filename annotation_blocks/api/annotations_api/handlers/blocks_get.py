"""GET /blocks - List blocks with their labels."""

import os

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.event_handler.exceptions import BadRequestError
from aws_lambda_powertools.metrics import MetricUnit

from annotation_blocks.api.annotations_api.models import to_response
from annotation_blocks.api.annotations_api.repositories.blocks import list_blocks
from annotation_blocks.api.annotations_api.stores import get_keyed_store
from annotation_blocks.common_libraries.blocks_utils import (
    create_error_response,
    create_success_response,
)
from annotation_blocks.common_libraries.errors import AnnotationsError

logger = Logger(service="blocks-get", level=os.environ.get("LOG_LEVEL", "INFO"))
tracer = Tracer(service="blocks-get")
metrics = Metrics(namespace="annotations", service="blocks")


def register_route(app):
    """Register GET /blocks route"""

    @app.get("/blocks")
    @tracer.capture_method
    def blocks_get():
        """List every block, each with its labels in canonical order"""
        try:
            blocks = list_blocks(get_keyed_store())

            metrics.add_metric(
                name="BlocksReturned", unit=MetricUnit.Count, value=len(blocks)
            )

            return create_success_response(
                data=[to_response(block) for block in blocks],
                request_id=app.current_event.request_context.request_id,
            )

        except (BadRequestError, AnnotationsError):
            raise
        except Exception as e:
            logger.exception("Unexpected error listing blocks", exc_info=e)
            metrics.add_metric(name="UnexpectedErrors", unit=MetricUnit.Count, value=1)
            return create_error_response(
                error_code="InternalServerError",
                error_message="An unexpected error occurred",
                status_code=500,
                request_id=app.current_event.request_context.request_id,
            )
