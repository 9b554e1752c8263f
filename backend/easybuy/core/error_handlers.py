"""
Exception handlers for the dispatcher endpoints.

The SPA reads every dispatcher answer as JSON and only checks for an "error"
key, so failures are rendered with HTTP 200 and a body of the form
{"error": message, "code": ..., "request_id": ..., "details": ...}.
"""

import uuid
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from easybuy.core.config import settings
from easybuy.core.exceptions import DatabaseException, EasyBuyException, ErrorCode
from easybuy.core.logging import get_logger, request_id_var

logger = get_logger(__name__)


# =============================================================================
# Error Response Builder
# =============================================================================


def build_error_response(
    request_id: str,
    code: ErrorCode,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> ORJSONResponse:
    """
    Build a dispatcher error response.

    Args:
        request_id: Unique request identifier
        code: Error code enum
        message: Error message, placed under "error"
        details: Additional error details

    Returns:
        ORJSONResponse with HTTP 200 and the error body
    """
    content: dict[str, Any] = {
        "error": message,
        "code": code.value,
        "request_id": request_id,
    }
    if details:
        content["details"] = details

    return ORJSONResponse(status_code=status.HTTP_200_OK, content=content)


def get_request_id(request: Request) -> str:
    """Request ID of the request being served."""
    return request_id_var.get() or request.headers.get("X-Request-ID") or str(uuid.uuid4())


def describe_validation_errors(errors: list[dict[str, Any]]) -> tuple[str, list[dict[str, Any]]]:
    """
    Turn pydantic error entries into the dispatcher message.

    The first error decides the message: a missing field reads
    "Missing parameter: <name>", anything else "Invalid parameter: <name>".
    """
    described = []
    for error in errors:
        names = [str(loc) for loc in error.get("loc", ()) if loc not in ("body", "query")]
        described.append({
            "field": ".".join(names),
            "message": error.get("msg"),
            "type": error.get("type"),
        })

    if not described:
        return "Invalid request", described

    first = described[0]
    field = first["field"].split(".")[0] if first["field"] else "body"
    if first["type"] == "missing":
        return f"Missing parameter: {field}", described
    return f"Invalid parameter: {field}", described


# =============================================================================
# Exception Handlers
# =============================================================================


async def easybuy_exception_handler(
    request: Request,
    exc: EasyBuyException,
) -> ORJSONResponse:
    """Render an EasyBuy exception as its dispatcher error body."""
    logger.warning(
        f"EasyBuy exception: {exc.message}",
        extra={
            "error_code": exc.code.value,
            "details": exc.details,
            "path": request.url.path,
        },
    )

    body = exc.to_dict()
    if isinstance(exc, DatabaseException) and settings.DEBUG and exc.original_error:
        body["error"] = f"{exc.message}: {exc.original_error}"
    body["request_id"] = get_request_id(request)
    return ORJSONResponse(status_code=status.HTTP_200_OK, content=body)


def _invalid_input_response(request: Request, raw_errors: list[dict[str, Any]]) -> ORJSONResponse:
    message, errors = describe_validation_errors(raw_errors)
    logger.info(
        message,
        extra={"event": "invalid_input", "errors": errors, "path": request.url.path},
    )

    if message.startswith("Missing"):
        code = ErrorCode.MISSING_PARAMETER
    else:
        code = ErrorCode.VALIDATION_ERROR
    return build_error_response(
        request_id=get_request_id(request),
        code=code,
        message=message,
        details={"validation_errors": errors},
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> ORJSONResponse:
    """Query or body parameters FastAPI could not bind."""
    return _invalid_input_response(request, list(exc.errors()))


async def pydantic_validation_exception_handler(
    request: Request,
    exc: ValidationError,
) -> ORJSONResponse:
    """Dispatcher commands that failed to parse from the submitted form."""
    return _invalid_input_response(
        request,
        [dict(e) for e in exc.errors(include_url=False, include_context=False)],
    )


async def sqlalchemy_exception_handler(
    request: Request,
    exc: SQLAlchemyError,
) -> ORJSONResponse:
    """Handle SQLAlchemy database errors."""
    request_id = get_request_id(request)

    if isinstance(exc, OperationalError):
        code = ErrorCode.DATABASE_CONNECTION
    elif isinstance(exc, IntegrityError):
        code = ErrorCode.DATABASE_INTEGRITY
    else:
        code = ErrorCode.DATABASE_ERROR

    logger.error(
        f"Database error: {type(exc).__name__}",
        extra={
            "error_type": type(exc).__name__,
            "error_message": str(exc),
            "path": request.url.path,
        },
    )

    # Driver messages leak schema details, only show them while debugging
    message = "Database error"
    if settings.DEBUG:
        message = f"Database error: {str(exc)[:200]}"

    return build_error_response(request_id=request_id, code=code, message=message)


async def generic_exception_handler(
    request: Request,
    exc: Exception,
) -> ORJSONResponse:
    """Handle all unhandled exceptions."""
    request_id = get_request_id(request)

    logger.error(
        f"Unhandled exception: {type(exc).__name__}: {exc}",
        extra={
            "error_type": type(exc).__name__,
            "path": request.url.path,
            "method": request.method,
        },
        exc_info=True,
    )

    details = {}
    if settings.DEBUG:
        details["error_type"] = type(exc).__name__
        details["error_message"] = str(exc)[:200]

    return build_error_response(
        request_id=request_id,
        code=ErrorCode.INTERNAL_ERROR,
        message="Internal server error",
        details=details,
    )


# =============================================================================
# Setup Function
# =============================================================================


def setup_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with the FastAPI application.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(EasyBuyException, easybuy_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ValidationError, pydantic_validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)

    # Generic handler for unhandled exceptions (must be last)
    app.add_exception_handler(Exception, generic_exception_handler)

    logger.info("Exception handlers registered")
