"""GET /blocks/<block_id>/tasks - List tasks with their images."""

import os

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.event_handler.exceptions import BadRequestError
from aws_lambda_powertools.metrics import MetricUnit

from annotation_blocks.api.annotations_api.joins import list_tasks_with_images
from annotation_blocks.api.annotations_api.models import to_response
from annotation_blocks.api.annotations_api.stores import get_keyed_store
from annotation_blocks.common_libraries.blocks_utils import (
    create_error_response,
    create_success_response,
)
from annotation_blocks.common_libraries.errors import AnnotationsError

logger = Logger(
    service="blocks-ID-tasks-get", level=os.environ.get("LOG_LEVEL", "INFO")
)
tracer = Tracer(service="blocks-ID-tasks-get")
metrics = Metrics(namespace="annotations", service="tasks")


def register_route(app):
    """Register GET /blocks/<block_id>/tasks route"""

    @app.get("/blocks/<block_id>/tasks")
    @tracer.capture_method
    def blocks_ID_tasks_get(block_id: str):
        """Tasks newest first, each with its images sorted by order"""
        try:
            tasks = list_tasks_with_images(get_keyed_store(), block_id)

            metrics.add_metric(
                name="TasksReturned", unit=MetricUnit.Count, value=len(tasks)
            )
            return create_success_response(
                data=[to_response(task) for task in tasks],
                request_id=app.current_event.request_context.request_id,
            )

        except (BadRequestError, AnnotationsError):
            raise
        except Exception as e:
            logger.exception("Unexpected error listing tasks", exc_info=e)
            metrics.add_metric(name="UnexpectedErrors", unit=MetricUnit.Count, value=1)
            return create_error_response(
                error_code="InternalServerError",
                error_message="An unexpected error occurred",
                status_code=500,
                request_id=app.current_event.request_context.request_id,
            )
