import logging

from fastapi import Request
from fastapi.responses import JSONResponse, Response

from chatseq.errors import (
    AllocationExhaustedError,
    AmbiguousCommitError,
    CounterStoreError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def create_json_error_response(
    status_code: int, message: str, error_type: str | None = None, retryable: bool = False
) -> JSONResponse:
    """Create JSON error response with optional type for machine parsing."""
    content: dict[str, str | bool] = {"message": message}
    if error_type:
        content["type"] = error_type
    if retryable:
        content["retryable"] = True
    return JSONResponse(status_code=status_code, content=content)


async def user_error_handler(_: Request, exc: Exception) -> Response:
    """Handle all UserError subclasses with appropriate status codes."""
    if isinstance(exc, NotFoundError):
        status_code = 404
        error_type = "not_found"
    elif isinstance(exc, ValidationError):
        status_code = 400
        error_type = "validation_error"
    else:
        status_code = 400
        error_type = "bad_request"

    return create_json_error_response(status_code=status_code, message=str(exc), error_type=error_type)


async def sequence_error_handler(_: Request, exc: Exception) -> Response:
    """Handle failures to assign a number: 503, and safe for the client to retry the create."""
    if isinstance(exc, AllocationExhaustedError):
        error_type = "allocation_exhausted"
    elif isinstance(exc, AmbiguousCommitError):
        error_type = "ambiguous_commit"
    elif isinstance(exc, CounterStoreError):
        error_type = "counter_store_unavailable"
    elif isinstance(exc, PersistenceError):
        error_type = "persistence_failure"
    else:
        error_type = "sequence_error"

    logger.warning("Sequence allocation failed (%s): %s", error_type, exc)
    return create_json_error_response(status_code=503, message=str(exc), error_type=error_type, retryable=True)


async def general_exception_handler(_: Request, exc: Exception) -> Response:
    """Handle unexpected errors (500)."""
    logger.exception("Unexpected error: %s", exc)
    return create_json_error_response(
        status_code=500, message="An unexpected error occurred.", error_type="internal_server_error"
    )
