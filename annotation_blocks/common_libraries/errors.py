"""
Error taxonomy shared by the annotation blocks repositories and handlers.

Repositories raise these; the API resolver maps them to HTTP responses.
"""

from typing import Optional


class AnnotationsError(Exception):
    """Base class for every domain error raised by the annotations backend"""

    error_code = "InternalServerError"
    status_code = 500

    def __init__(self, message: str, entity_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.entity_id = entity_id


class NotFoundError(AnnotationsError):
    """Entity absent at a get, update or dependent read"""

    error_code = "NotFound"
    status_code = 404


class StoreFailureError(AnnotationsError):
    """An underlying DynamoDB or S3 call failed"""

    error_code = "StoreFailure"
    status_code = 500


class CounterPropagationError(StoreFailureError):
    """
    A counter adjustment failed after the primary write succeeded.

    The primary write is kept; ``step`` names the counter that could not be
    adjusted and every later step was skipped.
    """

    error_code = "CounterUpdateFailed"

    def __init__(self, message: str, step: str, entity_id: Optional[str] = None):
        super().__init__(message, entity_id)
        self.step = step


class SerializationError(AnnotationsError):
    """Malformed geometry, properties blob or payload"""

    error_code = "SerializationFailure"
    status_code = 500


class ValidationFailure(AnnotationsError):
    """Request payload failed validation"""

    error_code = "ValidationFailure"
    status_code = 400


class UnauthorizedError(AnnotationsError):
    """No authenticated principal could be extracted from the request"""

    error_code = "Unauthorized"
    status_code = 401
