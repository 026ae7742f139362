import logging
from typing import Dict, List

from fastapi import WebSocket


logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Live WebSocket sessions of this process, keyed by user id."""

    def __init__(self) -> None:
        self.active_connections: Dict[str, List[WebSocket]] = {}

    async def connect(self, user_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        self.add(user_id, websocket)

    def add(self, user_id: str, websocket) -> None:
        self.active_connections.setdefault(user_id, []).append(websocket)
        logger.debug("Session added for user %s (%d open)", user_id, len(self.active_connections[user_id]))

    def disconnect(self, user_id: str, websocket) -> bool:
        """Forget ``websocket``; True when it was the user's last session."""
        if user_id not in self.active_connections:
            return False
        try:
            self.active_connections[user_id].remove(websocket)
        except ValueError:
            pass
        if not self.active_connections[user_id]:
            del self.active_connections[user_id]
            return True
        return False

    def is_connected(self, user_id: str) -> bool:
        return bool(self.active_connections.get(user_id))

    async def send(self, user_id: str, message: str) -> int:
        delivered = 0
        for conn in list(self.active_connections.get(user_id, [])):
            try:
                await conn.send_text(message)
                delivered += 1
            except Exception:
                logger.warning("Dropping dead session for user %s", user_id, exc_info=True)
                self.disconnect(user_id, conn)
        return delivered
