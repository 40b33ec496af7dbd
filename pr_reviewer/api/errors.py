"""
API Error Mapping

Translates service errors and request validation failures into the JSON
error envelope ``{"error": {"code": ..., "message": ...}}``.

Design Decisions:
- Status codes and wire codes are fixed per ErrorCode
- Internal failures never leak their cause to the client
"""

from typing import Dict, Tuple

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from pr_reviewer.errors import ErrorCode, ErrorKind, ServiceError
from pr_reviewer.logging_config import get_logger
from pr_reviewer.models import ErrorDetail, ErrorResponse

logger = get_logger(__name__)

# ErrorCode -> (HTTP status, wire code, message)
HTTP_ERRORS: Dict[ErrorCode, Tuple[int, str, str]] = {
    ErrorCode.AUTHOR_INVALID: (status.HTTP_404_NOT_FOUND, "NOT_FOUND", "resource not found"),
    ErrorCode.PR_EXISTS: (status.HTTP_409_CONFLICT, "PR_EXISTS", "PR id already exists"),
    ErrorCode.PR_NOT_FOUND: (status.HTTP_404_NOT_FOUND, "NOT_FOUND", "resource not found"),
    ErrorCode.PR_MERGED: (status.HTTP_409_CONFLICT, "PR_MERGED", "cannot reassign on merged PR"),
    ErrorCode.REVIEWER_NOT_ASSIGNED: (
        status.HTTP_404_NOT_FOUND,
        "NOT_ASSIGNED",
        "reviewer is not assigned to this PR",
    ),
    ErrorCode.TEAM_EXISTS: (status.HTTP_400_BAD_REQUEST, "TEAM_EXISTS", "team_name already exists"),
    ErrorCode.TEAM_NOT_FOUND: (status.HTTP_404_NOT_FOUND, "NOT_FOUND", "resource not found"),
    ErrorCode.USER_NOT_FOUND: (status.HTTP_404_NOT_FOUND, "USER_NOT_FOUND", "resource not found"),
    ErrorCode.INTERNAL: (
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_ERROR",
        "internal server error",
    ),
}


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(code=code, message=message))
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Render a ServiceError with its fixed status and code."""
    status_code, code, message = HTTP_ERRORS[exc.code]

    if exc.kind is ErrorKind.INTERNAL:
        # detail was logged where the failure happened
        logger.warning(
            "Request failed with internal error",
            path=request.url.path,
            method=request.method
        )

    return error_response(status_code, code, message)


async def validation_error_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """Render malformed requests as INVALID_REQUEST."""
    fields = sorted({
        ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        for error in exc.errors()
    })
    logger.debug("Invalid request", path=request.url.path, fields=fields)
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        "INVALID_REQUEST",
        f"invalid request: {', '.join(f for f in fields if f) or 'malformed body'}"
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
