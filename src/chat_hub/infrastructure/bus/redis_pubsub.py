"""Redis Pub/Sub publisher for events consumed outside the hub."""
from __future__ import annotations

import logging
from typing import Any

import redis.asyncio as aioredis

from chat_hub.infrastructure.bus.serializer import serialize_event

logger = logging.getLogger(__name__)


class RedisPubSubPublisher:
    """Implements application.ports.bus.EventPublisher."""

    def __init__(self, redis: aioredis.Redis) -> None:
        self._redis = redis

    async def publish(self, channel: str, event_type: str, payload: dict[str, Any]) -> None:
        raw = serialize_event(event_type, payload)
        receivers = await self._redis.publish(channel, raw)
        logger.debug("Published %s on %s (%d receivers)", event_type, channel, receivers)
