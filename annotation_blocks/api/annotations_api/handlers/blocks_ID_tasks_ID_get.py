"""GET /blocks/<block_id>/tasks/<task_id> - Get a task."""

import os

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.event_handler.exceptions import BadRequestError
from aws_lambda_powertools.metrics import MetricUnit

from annotation_blocks.api.annotations_api.models import to_response
from annotation_blocks.api.annotations_api.repositories.tasks import get_task
from annotation_blocks.api.annotations_api.stores import get_keyed_store
from annotation_blocks.common_libraries.blocks_utils import (
    create_error_response,
    create_success_response,
)
from annotation_blocks.common_libraries.errors import AnnotationsError

logger = Logger(
    service="blocks-ID-tasks-ID-get", level=os.environ.get("LOG_LEVEL", "INFO")
)
tracer = Tracer(service="blocks-ID-tasks-ID-get")
metrics = Metrics(namespace="annotations", service="tasks")


def register_route(app):
    """Register GET /blocks/<block_id>/tasks/<task_id> route"""

    @app.get("/blocks/<block_id>/tasks/<task_id>")
    @tracer.capture_method
    def blocks_ID_tasks_ID_get(block_id: str, task_id: str):
        try:
            task = get_task(get_keyed_store(), block_id, task_id)
            return create_success_response(
                data=to_response(task),
                request_id=app.current_event.request_context.request_id,
            )

        except (BadRequestError, AnnotationsError):
            raise
        except Exception as e:
            logger.exception(f"Unexpected error getting task {task_id}", exc_info=e)
            metrics.add_metric(name="UnexpectedErrors", unit=MetricUnit.Count, value=1)
            return create_error_response(
                error_code="InternalServerError",
                error_message="An unexpected error occurred",
                status_code=500,
                request_id=app.current_event.request_context.request_id,
            )
