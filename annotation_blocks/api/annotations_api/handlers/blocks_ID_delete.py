"""DELETE /blocks/<block_id> - Cascade-delete a block."""

import os

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.event_handler.exceptions import BadRequestError
from aws_lambda_powertools.metrics import MetricUnit

from annotation_blocks.api.annotations_api.repositories.blocks import delete_block
from annotation_blocks.api.annotations_api.stores import (
    get_config,
    get_keyed_store,
    get_object_store,
)
from annotation_blocks.common_libraries.blocks_utils import (
    create_error_response,
    create_success_response,
)
from annotation_blocks.common_libraries.errors import AnnotationsError

logger = Logger(service="blocks-ID-delete", level=os.environ.get("LOG_LEVEL", "INFO"))
tracer = Tracer(service="blocks-ID-delete")
metrics = Metrics(namespace="annotations", service="blocks")


def register_route(app):
    """Register DELETE /blocks/<block_id> route"""

    @app.delete("/blocks/<block_id>")
    @tracer.capture_method
    def blocks_ID_delete(block_id: str):
        """
        Delete a block with every task, label, image and annotation under it,
        then purge its uploaded objects. Repeating the call is safe.
        """
        try:
            result = delete_block(
                get_keyed_store(),
                block_id,
                object_store=get_object_store(),
                config=get_config(),
            )

            if not result.complete:
                logger.warning(
                    f"Block {block_id} deleted with leftovers",
                    extra={
                        "keys_dropped": len(result.keys_dropped),
                        "purge_error": result.purge_error,
                    },
                )

            metrics.add_metric(
                name="SuccessfulBlockDeletions", unit=MetricUnit.Count, value=1
            )

            return create_success_response(
                data={
                    "block_id": block_id,
                    "deleted": True,
                    "keys_deleted": result.keys_deleted,
                    "keys_dropped": len(result.keys_dropped),
                    "objects_purged": result.objects_purged,
                },
                request_id=app.current_event.request_context.request_id,
            )

        except (BadRequestError, AnnotationsError):
            raise
        except Exception as e:
            logger.exception(f"Unexpected error deleting block {block_id}", exc_info=e)
            metrics.add_metric(name="UnexpectedErrors", unit=MetricUnit.Count, value=1)
            return create_error_response(
                error_code="InternalServerError",
                error_message="An unexpected error occurred",
                status_code=500,
                request_id=app.current_event.request_context.request_id,
            )
