"""
Scotch — FastAPI Application Entry Point

Production-ready application with:
- Async lifespan management (DB pool warm-up and disposal)
- CORS, timeout, and structured-logging middleware
- Uniform ``{"error": ...}`` responses for every failure
- Health-check endpoints (liveness + deep readiness)
- Active-request tracking for graceful shutdown
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager, contextmanager
from typing import AsyncIterator, Iterator

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from app.api.error_handlers import register_error_handlers
from app.config import get_settings
from app.database import async_session_factory, engine

settings = get_settings()

# ---------------------------------------------------------------------------
# Structured logging configuration
# ---------------------------------------------------------------------------

structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        logging.getLevelName(settings.LOG_LEVEL)
    ),
    context_class=dict,
    logger_factory=structlog.PrintLoggerFactory(),
    cache_logger_on_first_use=True,
)

logger: structlog.stdlib.BoundLogger = structlog.get_logger("scotch")

# ---------------------------------------------------------------------------
# In-flight request tracking for graceful shutdown
# ---------------------------------------------------------------------------

DRAIN_TIMEOUT_SECONDS = 15


class InFlightRequests:
    """Counts requests between middleware entry and exit.

    All updates happen on the event loop thread, so a plain counter is
    enough.
    """

    def __init__(self, poll_interval: float = 0.25) -> None:
        self.count = 0
        self.poll_interval = poll_interval

    @contextmanager
    def track(self) -> Iterator[None]:
        self.count += 1
        try:
            yield
        finally:
            self.count -= 1

    async def drain(self, timeout: float) -> bool:
        """Wait for the count to reach zero.  Returns False on timeout."""
        deadline = time.monotonic() + timeout
        while self.count > 0:
            if time.monotonic() >= deadline:
                return False
            await asyncio.sleep(self.poll_interval)
        return True


in_flight = InFlightRequests()


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

async def _warm_database_pool() -> None:
    """Open a first connection, retrying while the database comes up.

    Uses exponential backoff: 1s initial wait, 2x multiplier, 10s max
    wait, up to 5 attempts.
    """
    async for attempt in AsyncRetrying(
        retry=retry_if_exception_type((DBAPIError, OSError)),
        stop=stop_after_attempt(5),
        wait=wait_exponential(multiplier=1, min=1, max=10, exp_base=2),
        reraise=True,
    ):
        with attempt:
            logger.debug(
                "database_warmup_attempt",
                attempt_number=attempt.retry_state.attempt_number,
            )
            async with engine.begin() as conn:
                await conn.execute(text("SELECT 1"))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage startup and shutdown of long-lived resources."""
    logger.info(
        "startup_begin",
        environment=settings.ENVIRONMENT,
        log_level=settings.LOG_LEVEL,
    )

    # The engine is created at module level in app.database; issuing a
    # simple query warms the pool.
    await _warm_database_pool()
    logger.info("database_pool_initialised")

    logger.info("startup_complete")

    yield

    logger.info("shutdown_begin")

    if not await in_flight.drain(DRAIN_TIMEOUT_SECONDS):
        logger.warning("drain_timeout_exceeded", remaining_requests=in_flight.count)

    await engine.dispose()
    logger.info("database_pool_closed")

    logger.info("shutdown_complete")


# ---------------------------------------------------------------------------
# Middleware classes
# ---------------------------------------------------------------------------

class TimeoutMiddleware(BaseHTTPMiddleware):
    """Abort requests that exceed a configurable wall-clock timeout."""

    def __init__(self, app, timeout_seconds: float = 30.0) -> None:
        super().__init__(app)
        self.timeout_seconds = timeout_seconds

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await asyncio.wait_for(
                call_next(request),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "request_timeout",
                method=request.method,
                path=request.url.path,
                timeout=self.timeout_seconds,
            )
            return JSONResponse(
                status_code=504,
                content={"error": "request timed out"},
            )


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with method, path, status code, and duration."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.perf_counter()
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        structlog.contextvars.bind_contextvars(request_id=request_id)

        with in_flight.track():
            try:
                response = await call_next(request)
            except Exception:
                duration_ms = (time.perf_counter() - start) * 1000
                logger.exception(
                    "request_error",
                    method=request.method,
                    path=request.url.path,
                    duration_ms=round(duration_ms, 2),
                )
                raise
            finally:
                structlog.contextvars.unbind_contextvars("request_id")

        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "request_handled",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=round(duration_ms, 2),
            request_id=request_id,
        )
        response.headers["X-Request-ID"] = request_id
        return response


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Scotch",
    description="Mutual-interest matching backend",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)

# -- Middleware (applied in reverse order — last added runs first) ---------- #

app.add_middleware(StructuredLoggingMiddleware)
app.add_middleware(TimeoutMiddleware, timeout_seconds=settings.REQUEST_TIMEOUT_SECONDS)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# -- Health-check endpoints ------------------------------------------------ #


@app.get("/health", tags=["health"])
async def health_liveness() -> dict:
    """Lightweight liveness check: always returns healthy if the process is
    running."""
    return {"status": "healthy"}


@app.get("/health/deep", tags=["health"])
async def health_deep() -> dict:
    """Deep readiness check: verifies database connectivity."""
    result: dict = {"status": "healthy", "database": "connected"}

    try:
        async with async_session_factory() as session:
            await session.execute(text("SELECT 1"))
    except Exception as exc:
        logger.error("health_db_failure", error=str(exc))
        result["database"] = f"error: {exc}"
        result["status"] = "degraded"

    return result


# -- API router ------------------------------------------------------------ #

from app.api.router import router as api_router  # noqa: E402

app.include_router(api_router, prefix="/api/v1")
