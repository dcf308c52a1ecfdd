from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from chat_hub.api.deps import get_verifier
from chat_hub.api.middleware.correlation_id import CorrelationIdMiddleware
from chat_hub.api.v1.routers import health, rooms, ws
from chat_hub.application.exceptions import (
    AuthError,
    ForbiddenError,
    NotFoundError,
    PersistenceError,
    ProtocolError,
    ValidationError,
)
from chat_hub.config import settings
from chat_hub.infrastructure.bus.redis_pubsub import RedisPubSubPublisher
from chat_hub.infrastructure.db.uow import open_uow
from chat_hub.infrastructure.ws.hub import ChatHub

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    hub: ChatHub = app.state.hub
    app.state.redis = None
    if settings.REDIS_URL:
        app.state.redis = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
        )
        hub.use_publisher(RedisPubSubPublisher(app.state.redis))
        logger.info("Redis connection pool created")

    await hub.probe.start()

    yield

    await hub.probe.stop()
    await hub.manager.close_all()
    if app.state.redis is not None:
        await app.state.redis.aclose()
        logger.info("Redis connection pool closed")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Chat Hub",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.hub = ChatHub(
        open_uow,
        get_verifier(),
        persistence_timeout=settings.PERSISTENCE_TIMEOUT_SECONDS,
        heartbeat_interval=settings.WS_HEARTBEAT_SECONDS,
        liveness_window=settings.liveness_window,
        notify_channel=settings.NOTIFY_CHANNEL,
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
    app.include_router(rooms.router)
    app.include_router(ws.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AuthError)
    async def _unauthorized(_req: Request, exc: AuthError) -> JSONResponse:
        return JSONResponse(status_code=401, content={"detail": exc.detail})

    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": exc.detail})

    @app.exception_handler(ForbiddenError)
    async def _forbidden(_req: Request, exc: ForbiddenError) -> JSONResponse:
        return JSONResponse(status_code=403, content={"detail": exc.detail})

    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": exc.detail})

    @app.exception_handler(ProtocolError)
    async def _protocol(_req: Request, exc: ProtocolError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": exc.detail})

    @app.exception_handler(PersistenceError)
    async def _unavailable(_req: Request, exc: PersistenceError) -> JSONResponse:
        logger.warning("Persistence failure on %s: %s", _req.url.path, exc.detail)
        return JSONResponse(status_code=503, content={"detail": exc.detail})
