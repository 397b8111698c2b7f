"""
FastAPI Application Factory.
Creates and configures the FastAPI application with all routers, middleware, and DI.

Endpoints:
- /api/threads, /api/threads/resolve, /api/threads/{id}
- /api/messages
- /health
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from dishka import AsyncContainer
from dishka.integrations.fastapi import setup_dishka
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from dm_threads.config.logging_config import correlation_id_var, setup_logging
from dm_threads.config.settings import Config
from dm_threads.domain.exceptions import (
    AccessDeniedError,
    DomainValidationError,
    EntityNotFoundError,
    TransientNetworkError,
)
from dm_threads.presentation.api import messages_router, threads_router

logger = logging.getLogger(__name__)


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Middleware to extract and set correlation ID from request headers."""

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get("X-Correlation-ID", "NO Correlation ID")

        # Set in contextvars (propagates to async tasks and logging)
        token = correlation_id_var.set(correlation_id)
        try:
            response = await call_next(request)
        finally:
            correlation_id_var.reset(token)

        response.headers["X-Correlation-ID"] = correlation_id
        return response


def _make_lifespan(container: AsyncContainer, enable_relay: bool):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Startup: start the Redis relay for thread events (when enabled).
        Shutdown: close DI container (stops the relay, disconnects Prisma/Redis).
        """
        if enable_relay:
            # Imported here: the relay's provider lives with the Prisma one
            from dm_threads.infrastructure.events import RedisThreadEventRelay

            relay = await container.get(RedisThreadEventRelay)
            relay.start()
        logger.info("[FastAPI] Application started. DI container initialized.")
        yield
        await container.close()
        logger.info("[FastAPI] Application shutdown. DI container closed.")

    return lifespan


def create_fastapi_app(
    container: Optional[AsyncContainer] = None,
    enable_relay: Optional[bool] = None,
) -> FastAPI:
    """
    Application factory for creating FastAPI app.

    Args:
        container: DI container; the Prisma-backed one is created when omitted
        enable_relay: start the Redis thread event relay on startup
            (defaults to Config.THREAD_EVENTS_RELAY_ENABLED for the default container)
    """
    setup_logging(Config.LOG_LEVEL, Config.LOG_PATH)

    if container is None:
        from dm_threads.setup.ioc import create_container

        container = create_container()
        if enable_relay is None:
            enable_relay = Config.THREAD_EVENTS_RELAY_ENABLED

    app = FastAPI(
        title="DM Threads API",
        description="Direct-message thread resolution and messaging API",
        version="1.0.0",
        lifespan=_make_lifespan(container, bool(enable_relay)),
    )

    # Setup Dishka BEFORE app starts (must add middleware before startup)
    setup_dishka(container, app)

    # Correlation ID middleware (must be added before CORS)
    app.add_middleware(CorrelationIdMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        logger.warning(f"[VALIDATION ERROR] {errors}")
        return JSONResponse(
            status_code=400,
            content={"error": "Validation error", "details": jsonable_errors(errors)},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code >= 500:
            logger.error(f"[HTTP ERROR {exc.status_code}] {exc.detail}")
        else:
            logger.info(f"[HTTP ERROR {exc.status_code}] {exc.detail}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
        )

    # Domain errors that escaped a router
    @app.exception_handler(EntityNotFoundError)
    async def not_found_handler(request: Request, exc: EntityNotFoundError):
        return JSONResponse(status_code=404, content={"error": str(exc)})

    @app.exception_handler(AccessDeniedError)
    async def access_denied_handler(request: Request, exc: AccessDeniedError):
        return JSONResponse(status_code=403, content={"error": str(exc)})

    @app.exception_handler(DomainValidationError)
    async def domain_validation_handler(request: Request, exc: DomainValidationError):
        return JSONResponse(status_code=422, content={"error": str(exc)})

    @app.exception_handler(TransientNetworkError)
    async def transient_handler(request: Request, exc: TransientNetworkError):
        logger.error(f"[TRANSIENT ERROR] {exc}")
        return JSONResponse(status_code=503, content={"error": str(exc)})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception(f"[GLOBAL ERROR] {type(exc).__name__}: {exc}")
        return JSONResponse(
            status_code=500,
            content={"error": f"Internal server error: {str(exc)}"},
        )

    @app.get("/health", tags=["health"])
    async def health():
        return {"status": "healthy"}

    app.include_router(threads_router)
    app.include_router(messages_router)

    return app


def jsonable_errors(errors) -> list:
    """Pydantic error dicts may carry exception objects in ctx."""
    cleaned = []
    for error in errors:
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {k: str(v) for k, v in error["ctx"].items()}
        cleaned.append(error)
    return cleaned
