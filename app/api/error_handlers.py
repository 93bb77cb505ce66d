"""
Scotch — Global exception handlers

Every failure reaches the client as ``{"error": "<message>"}``:

* ``RelationshipError`` — the error's own HTTP status
* ``RequestValidationError`` — 422 with a flattened message
* anything else — 500, without internal details
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.errors import RelationshipError

logger = structlog.get_logger("scotch.api.errors")


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""

    @app.exception_handler(RelationshipError)
    async def relationship_error_handler(request: Request, exc: RelationshipError):
        log = logger.bind(
            method=request.method,
            path=request.url.path,
            code=exc.code,
            status=exc.http_status,
        )
        if exc.http_status >= 500:
            log.error("request_failed", error=exc.message)
        else:
            log.info("request_rejected", error=exc.message)
        return JSONResponse(status_code=exc.http_status, content=exc.to_response())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.info(
            "request_invalid",
            method=request.method,
            path=request.url.path,
            errors=len(exc.errors()),
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"error": _format_validation_errors(exc)},
        )

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        logger.exception(
            "unhandled_exception",
            method=request.method,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "internal server error"},
        )


def _format_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        field = ".".join(str(loc) for loc in err["loc"] if loc != "body")
        parts.append(f"{field}: {err['msg']}" if field else err["msg"])
    return "; ".join(parts)
