from __future__ import annotations

import logging

import redis.asyncio as aioredis

from chat_client.application.ports.clock import Clock
from chat_client.application.ports.store import LiveStore
from chat_client.config import settings
from chat_client.infrastructure.store.memory import InMemoryLiveStore
from chat_client.infrastructure.store.redis_store import RedisLiveStore

logger = logging.getLogger(__name__)


def build_store(redis: aioredis.Redis | None = None, *, clock: Clock | None = None) -> LiveStore:
    """Pick the store backend named by STORE_BACKEND."""
    if settings.STORE_BACKEND == "redis":
        client = redis or aioredis.from_url(settings.REDIS_URL, decode_responses=True)
        logger.info("Using Redis live store (prefix=%s)", settings.STORE_KEY_PREFIX)
        return RedisLiveStore(
            client,
            prefix=settings.STORE_KEY_PREFIX,
            channel=settings.STORE_CHANGES_CHANNEL,
            clock=clock,
        )
    logger.info("Using in-memory live store")
    return InMemoryLiveStore(clock)
