"""
Best-effort realtime fan-out of chat events.

Events are never persisted. A recipient without a live session simply misses
the event and resynchronises over REST on its next fetch.
"""
import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Tuple

from redis.exceptions import RedisError

from wyzar_messaging.utils.realtime_bus import NoopBus, user_channel
from wyzar_messaging.utils.websocket_manager import ConnectionRegistry


logger = logging.getLogger(__name__)

# server -> client
NEW_MESSAGE = "new_message"
USER_TYPING = "user_typing"
USER_STOP_TYPING = "user_stop_typing"
# client -> server
TYPING = "typing"
STOP_TYPING = "stop_typing"


def encode_event(event: str, data: Dict[str, Any]) -> str:
    return json.dumps({"event": event, "data": data}, default=str)


class TypingTracker:
    """
    Per (conversation, typist) indicator: idle -> typing -> idle.

    Leaving ``typing`` (explicit stop, timeout, message sent, disconnect)
    emits exactly one ``user_stop_typing`` to the peer.
    """

    def __init__(self, emit: Callable[[str, str, Dict[str, Any]], Awaitable[Any]], timeout: float) -> None:
        self._emit = emit
        self._timeout = timeout
        # (conversation_id, typist_id) -> (peer_id, expiry timer)
        self._active: Dict[Tuple[str, str], Tuple[str, asyncio.Task]] = {}

    def is_typing(self, conversation_id: str, user_id: str) -> bool:
        return (conversation_id, user_id) in self._active

    async def start(self, conversation_id: str, user_id: str, peer_id: str) -> None:
        key = (conversation_id, user_id)
        previous = self._active.get(key)
        if previous is not None:
            previous[1].cancel()
        self._active[key] = (peer_id, asyncio.create_task(self._expire(key)))
        if previous is None:
            await self._emit(peer_id, USER_TYPING, {"conversation_id": conversation_id, "user_id": user_id})

    async def stop(self, conversation_id: str, user_id: str) -> bool:
        entry = self._active.pop((conversation_id, user_id), None)
        if entry is None:
            return False
        peer_id, timer = entry
        if timer is not asyncio.current_task():
            timer.cancel()
        await self._emit(peer_id, USER_STOP_TYPING, {"conversation_id": conversation_id, "user_id": user_id})
        return True

    async def stop_all_for_user(self, user_id: str) -> None:
        for conversation_id, typist in list(self._active):
            if typist == user_id:
                await self.stop(conversation_id, typist)

    async def _expire(self, key: Tuple[str, str]) -> None:
        await asyncio.sleep(self._timeout)
        try:
            await self.stop(*key)
        except Exception:
            logger.exception("Typing timeout for %s failed", key)

    def clear(self) -> None:
        for _, timer in self._active.values():
            timer.cancel()
        self._active.clear()


class Relay:

    def __init__(self, registry: ConnectionRegistry, bus=None, typing_timeout: float = 5.0) -> None:
        self.registry = registry
        self.bus = bus or NoopBus()
        self.typing = TypingTracker(self.emit, typing_timeout)

    async def emit(self, user_id: str, event: str, data: Dict[str, Any]) -> bool:
        payload = encode_event(event, data)
        if self.bus.enabled:
            try:
                await self.bus.publish(user_channel(user_id), payload)
            except RedisError:
                logger.warning("Publishing %s to %s failed", event, user_id, exc_info=True)
                return False
            return True
        delivered = await self.registry.send(user_id, payload)
        if not delivered:
            logger.debug("No live session for %s, dropped %s", user_id, event)
        return bool(delivered)

    async def message_created(self, conversation_id: str, message: Dict[str, Any]) -> bool:
        await self.typing.stop(conversation_id, message["sender_id"])
        return await self.emit(message["receiver_id"], NEW_MESSAGE, {"conversation_id": conversation_id, "message": message})

    async def session_closed(self, user_id: str, websocket) -> None:
        if not self.registry.disconnect(user_id, websocket):
            return
        await self.typing.stop_all_for_user(user_id)
        if self.bus.enabled:
            try:
                await self.bus.clear_presence(user_id)
            except RedisError:
                logger.warning("Clearing presence for %s failed", user_id, exc_info=True)

    async def is_online(self, user_id: str) -> bool:
        if self.registry.is_connected(user_id):
            return True
        if self.bus.enabled:
            return await self.bus.is_present(user_id)
        return False

    async def close(self) -> None:
        self.typing.clear()
        await self.bus.close()
