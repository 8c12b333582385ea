"""
WebSocket connections grouped by screening.

Each connection gets a client id; that id is the owner recorded on the
seat holds it places.
"""

import uuid
from typing import Any, Optional

from fastapi import WebSocket

from cineclic.core.logging import get_logger
from cineclic.core.metrics import realtime_connections

logger = get_logger(__name__)


def screening_topic(screening_id: int) -> str:
    return f"screening:{screening_id}"


class ConnectionManager:
    def __init__(self) -> None:
        self.group_connections: dict[str, set[str]] = {}
        self.sockets: dict[str, WebSocket] = {}
        self.connection_topic: dict[str, str] = {}

    async def connect(self, websocket: WebSocket, screening_id: int, client_id: Optional[str] = None) -> str:
        await websocket.accept()
        client_id = client_id or uuid.uuid4().hex
        topic = screening_topic(screening_id)

        self.group_connections.setdefault(topic, set()).add(client_id)
        self.sockets[client_id] = websocket
        self.connection_topic[client_id] = topic
        realtime_connections.set(len(self.sockets))
        logger.info("realtime_connected", client_id=client_id, screening_id=screening_id)
        return client_id

    def disconnect(self, client_id: str) -> None:
        topic = self.connection_topic.pop(client_id, None)
        self.sockets.pop(client_id, None)
        if topic is not None:
            group = self.group_connections.get(topic, set())
            group.discard(client_id)
            if not group:
                self.group_connections.pop(topic, None)
        realtime_connections.set(len(self.sockets))

    async def send(self, client_id: str, payload: dict[str, Any]) -> None:
        websocket = self.sockets.get(client_id)
        if websocket is None:
            return
        try:
            await websocket.send_json(payload)
        except Exception as e:
            logger.warning("realtime_send_failed", client_id=client_id, error=str(e))
            self.disconnect(client_id)

    async def broadcast(
        self,
        screening_id: int,
        payload: dict[str, Any],
        exclude: Optional[str] = None,
    ) -> None:
        topic = screening_topic(screening_id)
        for client_id in list(self.group_connections.get(topic, ())):
            if client_id != exclude:
                await self.send(client_id, payload)

    def group_size(self, screening_id: int) -> int:
        return len(self.group_connections.get(screening_topic(screening_id), ()))
