from __future__ import annotations

import functools
import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mail_service.api.middleware.correlation_id import CorrelationIdMiddleware
from mail_service.api.middleware.metrics import RequestTimingMiddleware
from mail_service.api.v1.routers import admin_email_queue, health
from mail_service.application.exceptions import (
    QueueClosedError,
    ValidationError,
)
from mail_service.config import settings
from mail_service.infrastructure.bus.redis_pubsub import RedisPubSubPublisher
from mail_service.infrastructure.bus.redis_streams import RedisStreamConsumer
from mail_service.services.failure_notifier import FailureNotifier
from mail_service.services.store_events import handle_store_event
from mail_service.wiring import build_deliverer, build_email_queue, build_http_client

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    app.state.redis = aioredis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
    )
    app.state.http_client = build_http_client()

    queue = build_email_queue(
        build_deliverer(app.state.http_client),
        observers=[
            FailureNotifier(RedisPubSubPublisher(app.state.redis), settings.EMAIL_EVENTS_CHANNEL),
        ],
    )
    app.state.email_queue = queue
    logger.info("Email queue ready (concurrency=%d)", queue.concurrency)

    consumer = RedisStreamConsumer(
        app.state.redis,
        settings.STORE_EVENTS_STREAM,
        settings.STORE_EVENTS_GROUP,
        f"mailer-{uuid.uuid4().hex[:8]}",
        functools.partial(handle_store_event, queue=queue),
    )
    await consumer.start()
    app.state.store_events_consumer = consumer

    yield

    await consumer.stop()
    await queue.close()
    await app.state.http_client.aclose()
    await app.state.redis.aclose()
    logger.info("Email queue drained, connections closed")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Storefront Mail Service",
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
    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(admin_email_queue.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": exc.detail})

    @app.exception_handler(QueueClosedError)
    async def _queue_closed(_req: Request, exc: QueueClosedError) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": exc.detail})
