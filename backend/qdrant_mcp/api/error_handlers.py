"""Error Handlers - HTTP mapping for failures on the transport surface.

Only framing failures reach these handlers (missing/unknown session,
unreadable body, shutdown). Tool failures never do: they travel back to the
client as CallToolResult frames on the session stream.

Invariants:
    - QdrantMcpError -> its own http_status and to_response() envelope
    - 503 responses carry Retry-After so clients reconnect after a restart
    - Query/body validation failures -> 400 in the same envelope shape
    - Anything else -> 500 without internal details
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from qdrant_mcp.core.errors import ErrorCategory, ErrorSeverity, QdrantMcpError

logger = logging.getLogger(__name__)

RETRY_AFTER_SECONDS = 5

_LOG_LEVEL = {
    ErrorSeverity.INFO: logging.INFO,
    ErrorSeverity.WARNING: logging.WARNING,
    ErrorSeverity.ERROR: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(QdrantMcpError, _handle_server_error)
    app.add_exception_handler(RequestValidationError, _handle_request_validation)
    app.add_exception_handler(Exception, _handle_unexpected)


async def _handle_server_error(request: Request, exc: QdrantMcpError):
    logger.log(
        _LOG_LEVEL[exc.severity],
        f"{request.method} {request.url.path} rejected: {exc.code} ({exc.message})",
        extra={
            "error_code": exc.code,
            "session_id": exc.context.session_id,
            "status_code": exc.http_status,
            "method": request.method,
        },
    )
    headers = None
    if exc.http_status == status.HTTP_503_SERVICE_UNAVAILABLE:
        headers = {"Retry-After": str(RETRY_AFTER_SECONDS)}
    return JSONResponse(
        status_code=exc.http_status, content=exc.to_response(), headers=headers,
    )


async def _handle_request_validation(request: Request, exc: RequestValidationError):
    problems = [
        {
            "field": ".".join(str(part) for part in err["loc"]),
            "message": err["msg"],
        }
        for err in exc.errors()
    ]
    logger.warning(
        f"Rejected malformed request to {request.url.path}: {problems}",
        extra={"error_code": "VALIDATION_ERROR", "method": request.method},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_envelope(
            "VALIDATION_ERROR", "Invalid request data",
            ErrorCategory.VALIDATION, ErrorSeverity.WARNING, details=problems,
        ),
    )


async def _handle_unexpected(request: Request, exc: Exception):
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}: {exc}",
        extra={"error_code": "INTERNAL_ERROR", "method": request.method},
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_envelope(
            "INTERNAL_ERROR", "An unexpected error occurred",
            ErrorCategory.INTERNAL, ErrorSeverity.CRITICAL,
        ),
    )


def _envelope(
    code: str,
    message: str,
    category: ErrorCategory,
    severity: ErrorSeverity,
    details: list[dict] | None = None,
) -> dict:
    error = {
        "code": code,
        "message": message,
        "category": category.value,
        "severity": severity.value,
    }
    if details is not None:
        error["details"] = details
    return {"error": error}
