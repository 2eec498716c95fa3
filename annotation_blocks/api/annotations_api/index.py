"""
Annotations API Lambda entry point.

Resolves every /blocks, /images and /users route with a single
APIGatewayRestResolver. Domain errors raised by the repositories are turned
into the standard error envelope here.
"""

import json
import os

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.event_handler import (
    APIGatewayRestResolver,
    Response,
    content_types,
)
from aws_lambda_powertools.event_handler.api_gateway import CORSConfig
from aws_lambda_powertools.event_handler.exceptions import BadRequestError
from aws_lambda_powertools.logging import correlation_paths
from aws_lambda_powertools.metrics import MetricUnit
from aws_lambda_powertools.utilities.typing import LambdaContext

from annotation_blocks.api.annotations_api.handlers import register_all_routes
from annotation_blocks.common_libraries.blocks_utils import (
    create_error_response,
    json_dumps,
)
from annotation_blocks.common_libraries.errors import (
    AnnotationsError,
    CounterPropagationError,
)

logger = Logger(service="annotations-api", level=os.environ.get("LOG_LEVEL", "INFO"))
tracer = Tracer(service="annotations-api")
metrics = Metrics(namespace="annotations", service="annotations-api")

# Configure CORS
cors_config = CORSConfig(
    allow_origin="*",
    allow_headers=[
        "Content-Type",
        "X-Amz-Date",
        "Authorization",
        "X-Api-Key",
        "X-Amz-Security-Token",
        "X-User-Id",
    ],
)

# Initialize API Gateway resolver
app = APIGatewayRestResolver(
    serializer=json_dumps,
    strip_prefixes=["/api"],
    cors=cors_config,
)

register_all_routes(app)


def _request_id():
    try:
        return app.current_event.request_context.request_id
    except (AttributeError, KeyError):
        return None


def _error_response(error_code: str, message: str, status_code: int) -> Response:
    body, status = create_error_response(
        error_code=error_code,
        error_message=message,
        status_code=status_code,
        request_id=_request_id(),
    )
    return Response(
        status_code=status,
        content_type=content_types.APPLICATION_JSON,
        body=json.dumps(body),
    )


@app.exception_handler(AnnotationsError)
def handle_annotations_error(ex: AnnotationsError):
    if isinstance(ex, CounterPropagationError):
        logger.error(
            f"Counter propagation failed at step {ex.step}",
            extra={"entity_id": ex.entity_id},
        )
    elif ex.status_code >= 500:
        logger.error(f"{ex.error_code}: {ex.message}", extra={"entity_id": ex.entity_id})
    else:
        logger.info(f"{ex.error_code}: {ex.message}", extra={"entity_id": ex.entity_id})

    metrics.add_metric(name=f"{ex.error_code}Errors", unit=MetricUnit.Count, value=1)
    return _error_response(ex.error_code, ex.message, ex.status_code)


@app.exception_handler(BadRequestError)
def handle_bad_request(ex: BadRequestError):
    logger.warning(f"Bad request: {ex.msg}")
    return _error_response("ValidationFailure", ex.msg, 400)


@metrics.log_metrics
@logger.inject_lambda_context(correlation_id_path=correlation_paths.API_GATEWAY_REST)
@tracer.capture_lambda_handler
def lambda_handler(event: dict, context: LambdaContext) -> dict:
    """Lambda handler function"""
    return app.resolve(event, context)
