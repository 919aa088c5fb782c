from typing import Any

from fastapi.responses import JSONResponse

from app.api.payloads.error import ErrorResponse
from app.exceptions import BaseError, ErrorType


def create_error_response(
    error_type: ErrorType,
    message: str,
    status_code: int,
    requires_auth: bool = False,
    details: list[dict[str, Any]] | None = None,
) -> JSONResponse:
    """
    Create the error envelope returned by every failing endpoint.

    Args:
        error_type: Stable machine-readable error code
        message: Short human-readable summary
        status_code: HTTP status code
        requires_auth: Whether the client must restart the login flow
        details: Optional field-level validation failures

    Returns:
        JSONResponse with camelCase keys
    """
    error_response = ErrorResponse(
        message=message, error=error_type.value, requires_auth=requires_auth, details=details
    )
    return JSONResponse(
        status_code=status_code, content=error_response.model_dump(mode="json", by_alias=True, exclude_none=True)
    )


def error_response_from(exc: BaseError) -> JSONResponse:
    return create_error_response(exc.error_type, exc.message, int(exc.status_code), requires_auth=exc.requires_auth)
