"""DELETE /blocks/<block_id>/labels/<label_id> - Delete a label."""

import os

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.event_handler.exceptions import BadRequestError
from aws_lambda_powertools.metrics import MetricUnit

from annotation_blocks.api.annotations_api.repositories.labels import delete_label
from annotation_blocks.api.annotations_api.stores import get_keyed_store
from annotation_blocks.common_libraries.blocks_utils import (
    create_error_response,
    create_success_response,
)
from annotation_blocks.common_libraries.errors import AnnotationsError

logger = Logger(
    service="blocks-ID-labels-ID-delete", level=os.environ.get("LOG_LEVEL", "INFO")
)
tracer = Tracer(service="blocks-ID-labels-ID-delete")
metrics = Metrics(namespace="annotations", service="labels")


def register_route(app):
    """Register DELETE /blocks/<block_id>/labels/<label_id> route"""

    @app.delete("/blocks/<block_id>/labels/<label_id>")
    @tracer.capture_method
    def blocks_ID_labels_ID_delete(block_id: str, label_id: str):
        try:
            delete_label(get_keyed_store(), block_id, label_id)

            metrics.add_metric(
                name="SuccessfulLabelDeletions", unit=MetricUnit.Count, value=1
            )
            return create_success_response(
                data={"label_id": label_id, "deleted": True},
                request_id=app.current_event.request_context.request_id,
            )

        except (BadRequestError, AnnotationsError):
            raise
        except Exception as e:
            logger.exception(f"Unexpected error deleting label {label_id}", exc_info=e)
            metrics.add_metric(name="UnexpectedErrors", unit=MetricUnit.Count, value=1)
            return create_error_response(
                error_code="InternalServerError",
                error_message="An unexpected error occurred",
                status_code=500,
                request_id=app.current_event.request_context.request_id,
            )
