from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from chat_client.api.middleware.correlation_id import CorrelationIdFilter, CorrelationIdMiddleware
from chat_client.api.v1.routers import health, push
from chat_client.application.exceptions import (
    AuthenticationError,
    CollaboratorUnavailableError,
    ConflictError,
    ForbiddenError,
    MalformedRecordError,
    NotFoundError,
    ValidationError,
)
from chat_client.config import settings
from chat_client.infrastructure.notify.log_surface import LoggingNotificationSurface

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(correlation_id)s] %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(CorrelationIdFilter())
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level or settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    if not hasattr(app.state, "surface"):
        app.state.surface = LoggingNotificationSurface()
    logger.info("Push receiver ready")

    yield

    logger.info("Push receiver stopped")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Chat Client Push Receiver",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(push.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": exc.detail})

    @app.exception_handler(ForbiddenError)
    async def _forbidden(_req: Request, exc: ForbiddenError) -> JSONResponse:
        return JSONResponse(status_code=403, content={"detail": exc.detail})

    @app.exception_handler(ConflictError)
    async def _conflict(_req: Request, exc: ConflictError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": exc.detail})

    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": exc.detail})

    @app.exception_handler(MalformedRecordError)
    async def _malformed(_req: Request, exc: MalformedRecordError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": exc.detail})

    @app.exception_handler(AuthenticationError)
    async def _auth(_req: Request, exc: AuthenticationError) -> JSONResponse:
        return JSONResponse(status_code=401, content={"detail": exc.detail, "code": exc.code})

    @app.exception_handler(CollaboratorUnavailableError)
    async def _unavailable(_req: Request, exc: CollaboratorUnavailableError) -> JSONResponse:
        logger.warning("Upstream failure: %s", exc.detail)
        return JSONResponse(status_code=502, content={"detail": exc.detail})
