"""
Exception handlers rendering every failure in the AppException body shape.

Four sources of errors reach the caller:
- AppException raised by services and dependencies (status from the class)
- RequestValidationError from FastAPI body/query parsing (400)
- Starlette HTTPException for unmatched routes and methods (404)
- Anything else, logged with its traceback and rendered as a bare 500
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from auth_service.core.exceptions import AppException, ResourceNotFoundError, ValidationError


logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "An unexpected error occurred"


def error_response(
    status_code: int,
    error: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": message,
            "status_code": status_code,
            "details": details,
        },
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Render an AppException; 5xx ones are logged with their context."""
    if exc.status_code >= 500:
        logger.error(
            f"{type(exc).__name__}: {exc.message}",
            extra={"path": request.url.path, "context": exc.context},
        )

    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Missing or malformed fields become a 400 ValidationError.

    Each problem is listed as {"field": "body.password", "message", "type"}.
    Input values are not echoed back since they may include a password.
    """
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]

    return error_response(
        400,
        ValidationError.__name__,
        "Request validation failed",
        {"errors": errors},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """
    Unknown paths (404) and known paths with the wrong method (405) are both
    rendered as ResourceNotFoundError.
    """
    if exc.status_code in (404, 405):
        not_found = ResourceNotFoundError()
        return JSONResponse(status_code=not_found.status_code, content=not_found.to_dict())

    return error_response(exc.status_code, "HTTPException", str(exc.detail))


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Last resort for store outages, provider timeouts and bugs.

    The traceback goes to the log; the caller gets no detail (OWASP A04).
    """
    logger.error(
        "Unhandled error",
        exc_info=exc,
        extra={"path": request.url.path, "method": request.method},
    )
    return error_response(500, "InternalServerError", INTERNAL_ERROR_MESSAGE)


def register_exception_handlers(app: FastAPI) -> None:
    """Install all handlers on an application."""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
