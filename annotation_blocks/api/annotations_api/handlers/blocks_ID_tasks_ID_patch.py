"""PATCH /blocks/<block_id>/tasks/<task_id> - Update a task."""

import os

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.event_handler.exceptions import BadRequestError
from aws_lambda_powertools.metrics import MetricUnit

from annotation_blocks.api.annotations_api.models import UpdateTaskRequest, to_response
from annotation_blocks.api.annotations_api.repositories.tasks import update_task
from annotation_blocks.api.annotations_api.stores import get_keyed_store
from annotation_blocks.common_libraries.blocks_utils import (
    create_error_response,
    create_success_response,
    parse_request_body,
)
from annotation_blocks.common_libraries.errors import AnnotationsError

logger = Logger(
    service="blocks-ID-tasks-ID-patch", level=os.environ.get("LOG_LEVEL", "INFO")
)
tracer = Tracer(service="blocks-ID-tasks-ID-patch")
metrics = Metrics(namespace="annotations", service="tasks")


def register_route(app):
    """Register PATCH /blocks/<block_id>/tasks/<task_id> route"""

    @app.patch("/blocks/<block_id>/tasks/<task_id>")
    @tracer.capture_method
    def blocks_ID_tasks_ID_patch(block_id: str, task_id: str):
        """
        Update a task. Moving a task into or out of ``done`` adjusts the
        block's approved image count by the task's image count.
        """
        try:
            request_data = parse_request_body(app.current_event, UpdateTaskRequest)

            task = update_task(get_keyed_store(), block_id, task_id, request_data)

            metrics.add_metric(
                name="SuccessfulTaskUpdates", unit=MetricUnit.Count, value=1
            )
            return create_success_response(
                data=to_response(task),
                request_id=app.current_event.request_context.request_id,
            )

        except (BadRequestError, AnnotationsError):
            raise
        except Exception as e:
            logger.exception(f"Unexpected error updating task {task_id}", exc_info=e)
            metrics.add_metric(name="UnexpectedErrors", unit=MetricUnit.Count, value=1)
            return create_error_response(
                error_code="InternalServerError",
                error_message="An unexpected error occurred",
                status_code=500,
                request_id=app.current_event.request_context.request_id,
            )
