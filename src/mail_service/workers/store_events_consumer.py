"""Standalone worker: storefront events from Redis Streams -> email queue."""
from __future__ import annotations

import asyncio
import functools
import logging
import uuid

import redis.asyncio as aioredis

from mail_service.config import settings
from mail_service.infrastructure.bus.redis_pubsub import RedisPubSubPublisher
from mail_service.infrastructure.bus.redis_streams import RedisStreamConsumer
from mail_service.services.failure_notifier import FailureNotifier
from mail_service.services.store_events import handle_store_event
from mail_service.wiring import build_deliverer, build_email_queue, build_http_client

logger = logging.getLogger(__name__)


async def run_worker() -> None:
    redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    http_client = build_http_client()
    queue = build_email_queue(
        build_deliverer(http_client),
        observers=[FailureNotifier(RedisPubSubPublisher(redis), settings.EMAIL_EVENTS_CHANNEL)],
    )
    consumer_name = f"mailer-{uuid.uuid4().hex[:8]}"

    consumer = RedisStreamConsumer(
        redis=redis,
        stream=settings.STORE_EVENTS_STREAM,
        group=settings.STORE_EVENTS_GROUP,
        consumer=consumer_name,
        callback=functools.partial(handle_store_event, queue=queue),
    )
    await consumer.start()
    logger.info(
        "Store events consumer started (%s, concurrency=%d)",
        consumer_name, queue.concurrency,
    )

    try:
        while True:
            await asyncio.sleep(3600)
    except asyncio.CancelledError:
        pass
    finally:
        await consumer.stop()
        await queue.close()
        await http_client.aclose()
        await redis.aclose()


def main() -> None:
    logging.basicConfig(level=settings.LOG_LEVEL.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    asyncio.run(run_worker())


if __name__ == "__main__":
    main()
