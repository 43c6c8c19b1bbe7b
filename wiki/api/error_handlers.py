"""Error Handlers — turn failures reaching the HTTP edge into JSON responses.

Invariants:
    - WikiError answers with its own http_status (database failures are 503,
      backup failures 502, bus timeouts 504)
    - Form/path validation failures answer 400 with one entry per bad field
    - Anything else answers 500 with the InternalError body, no exception text

Design Decisions:
    - Handlers are plain module functions so tests can call them directly
    - 4xx logged as warnings, 5xx as errors: client mistakes are not incidents
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from wiki.core.errors import ErrorSeverity, InternalError, WikiError

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Attach the wiki, validation and catch-all handlers to the app."""
    app.add_exception_handler(WikiError, handle_wiki_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)


async def handle_wiki_error(request: Request, exc: WikiError) -> JSONResponse:
    level = logging.ERROR if exc.http_status >= 500 else logging.WARNING
    logger.log(
        level,
        f"{exc.code.value} on {request.method} {request.url.path}: {exc.message}",
        extra={
            "error_code": exc.code.value,
            "path": request.url.path,
            "status_code": exc.http_status,
        },
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


async def handle_validation_error(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(part) for part in err["loc"]),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]
    logger.warning(
        f"Rejected {request.method} {request.url.path}: {len(details)} invalid field(s)",
        extra={"path": request.url.path, "status_code": 400},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Invalid request data",
                "category": "validation",
                "severity": ErrorSeverity.WARNING.value,
                "details": details,
            },
        },
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled {type(exc).__name__} on {request.method} {request.url.path}",
        exc_info=exc,
        extra={"path": request.url.path, "status_code": 500},
    )
    error = InternalError()
    return JSONResponse(status_code=error.http_status, content=error.to_response())
