"""DELETE /blocks/<block_id>/tasks/<task_id> - Delete a task and its images."""

import os

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.event_handler.exceptions import BadRequestError
from aws_lambda_powertools.metrics import MetricUnit

from annotation_blocks.api.annotations_api.repositories.tasks import delete_task
from annotation_blocks.api.annotations_api.stores import get_keyed_store
from annotation_blocks.common_libraries.blocks_utils import (
    create_error_response,
    create_success_response,
)
from annotation_blocks.common_libraries.errors import AnnotationsError

logger = Logger(
    service="blocks-ID-tasks-ID-delete", level=os.environ.get("LOG_LEVEL", "INFO")
)
tracer = Tracer(service="blocks-ID-tasks-ID-delete")
metrics = Metrics(namespace="annotations", service="tasks")


def register_route(app):
    """Register DELETE /blocks/<block_id>/tasks/<task_id> route"""

    @app.delete("/blocks/<block_id>/tasks/<task_id>")
    @tracer.capture_method
    def blocks_ID_tasks_ID_delete(block_id: str, task_id: str):
        try:
            images_deleted = delete_task(get_keyed_store(), block_id, task_id)

            return create_success_response(
                data={
                    "task_id": task_id,
                    "deleted": True,
                    "images_deleted": images_deleted,
                },
                request_id=app.current_event.request_context.request_id,
            )

        except (BadRequestError, AnnotationsError):
            raise
        except Exception as e:
            logger.exception(f"Unexpected error deleting task {task_id}", exc_info=e)
            metrics.add_metric(name="UnexpectedErrors", unit=MetricUnit.Count, value=1)
            return create_error_response(
                error_code="InternalServerError",
                error_message="An unexpected error occurred",
                status_code=500,
                request_id=app.current_event.request_context.request_id,
            )
