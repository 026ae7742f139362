import asyncio
import logging
from typing import Awaitable, Callable, Optional

import redis.asyncio as redis


logger = logging.getLogger(__name__)


def user_channel(user_id: str) -> str:
    return f"user:{user_id}"


def presence_key(user_id: str) -> str:
    return f"presence:{user_id}"


class NoopSubscription:

    async def run(self) -> None:
        await asyncio.Future()

    async def cancel(self) -> None:
        return


class NoopBus:
    """Single-process mode: the relay delivers through the local registry."""

    enabled = False

    async def publish(self, channel: str, message: str) -> None:
        return

    async def subscribe(self, channel: str, on_message: Callable[[str], Awaitable[None]]):
        return NoopSubscription()

    async def set_presence(self, user_id: str, ttl_seconds: int = 60) -> None:
        return

    async def clear_presence(self, user_id: str) -> None:
        return

    async def is_present(self, user_id: str) -> bool:
        return False

    async def close(self) -> None:
        return


class RedisSubscription:

    def __init__(self, pubsub, channel: str, on_message: Callable[[str], Awaitable[None]]) -> None:
        self._pubsub = pubsub
        self._channel = channel
        self._on_message = on_message
        self._running = True

    async def run(self) -> None:
        while self._running:
            try:
                msg = await self._pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
            except redis.RedisError:
                logger.warning("Redis subscription on %s failed, retrying", self._channel, exc_info=True)
                await asyncio.sleep(0.5)
                continue
            if msg and msg.get("type") == "message":
                data = msg.get("data")
                if isinstance(data, bytes):
                    data = data.decode("utf-8")
                await self._on_message(data)

    async def cancel(self) -> None:
        self._running = False
        try:
            await self._pubsub.unsubscribe(self._channel)
            await self._pubsub.aclose()
        except redis.RedisError:
            logger.debug("Unsubscribe from %s failed", self._channel, exc_info=True)


class RedisBus:
    """Pub/sub backplane so every API process can reach every session."""

    enabled = True

    def __init__(self, url: str) -> None:
        self._redis = redis.from_url(url)

    async def publish(self, channel: str, message: str) -> None:
        await self._redis.publish(channel, message)

    async def subscribe(self, channel: str, on_message: Callable[[str], Awaitable[None]]) -> RedisSubscription:
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(channel)
        return RedisSubscription(pubsub, channel, on_message)

    async def set_presence(self, user_id: str, ttl_seconds: int = 60) -> None:
        await self._redis.set(presence_key(user_id), "online", ex=ttl_seconds)

    async def clear_presence(self, user_id: str) -> None:
        await self._redis.delete(presence_key(user_id))

    async def is_present(self, user_id: str) -> bool:
        ttl = await self._redis.ttl(presence_key(user_id))
        return bool(ttl and ttl > 0)

    async def close(self) -> None:
        await self._redis.aclose()


def build_bus(url: Optional[str]):
    if not url:
        return NoopBus()
    logger.info("Realtime relay using Redis backplane")
    return RedisBus(url)
