"""Connection registry and fan-out broadcaster for the chat relay."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from fastapi.websockets import WebSocketDisconnect, WebSocketState

from app.monitoring.metrics import realtime_connections, realtime_events_total
from app.schemas import MessageRead, ReactionUpdate

logger = logging.getLogger(__name__)


class Connection(Protocol):
    """Anything that looks like a websocket to the broadcaster."""

    application_state: WebSocketState

    async def send_json(self, data: Any) -> None:
        ...


async def safe_send_json(websocket: Connection, data: dict[str, Any]) -> bool:
    """Safely send JSON data through websocket, handling disconnections gracefully.

    Returns True if message was sent successfully, False otherwise.
    """
    if websocket.application_state != WebSocketState.CONNECTED:
        return False
    try:
        await websocket.send_json(data)
        return True
    except (WebSocketDisconnect, RuntimeError) as e:
        logger.debug("Failed to send websocket message: %s", e)
        return False


# ---------------------------------------------------------------------------
# Connection registry
# ---------------------------------------------------------------------------


class ConnectionRegistry:
    """Track the sessions currently eligible for broadcasts."""

    def __init__(self) -> None:
        self._connections: set[Connection] = set()
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection: object) -> bool:
        return connection in self._connections

    async def connect(self, connection: Connection) -> None:
        async with self._lock:
            if connection not in self._connections:
                self._connections.add(connection)
                realtime_connections.labels().inc()

    async def disconnect(self, connection: Connection) -> None:
        async with self._lock:
            if connection in self._connections:
                self._connections.remove(connection)
                realtime_connections.labels().dec()

    async def snapshot(self) -> list[Connection]:
        async with self._lock:
            return list(self._connections)


# ---------------------------------------------------------------------------
# Broadcaster
# ---------------------------------------------------------------------------


class Broadcaster:
    """Deliver relay events to every registered connection.

    Delivery is fire-and-forget: closed or failing connections are skipped and
    nothing is retried.
    """

    def __init__(self, registry: ConnectionRegistry | None = None) -> None:
        self.registry = registry if registry is not None else ConnectionRegistry()

    async def broadcast(self, payload: dict[str, Any]) -> int:
        delivered = 0
        for connection in await self.registry.snapshot():
            if await safe_send_json(connection, payload):
                delivered += 1
        realtime_events_total.labels(payload.get("type", "unknown"), "out").inc()
        return delivered

    async def new_message(self, message: MessageRead) -> int:
        return await self.broadcast({"type": "msg", "message": message.to_payload()})

    async def reaction_updated(self, update: ReactionUpdate) -> int:
        return await self.broadcast({"type": "reaction", **update.model_dump(by_alias=True)})

    async def message_deleted(self, message_id: str) -> int:
        return await self.broadcast({"type": "messageDeleted", "messageId": message_id})


# ---------------------------------------------------------------------------
# Module level accessors
# ---------------------------------------------------------------------------


broadcaster = Broadcaster()


def get_broadcaster() -> Broadcaster:
    return broadcaster


__all__ = [
    "Broadcaster",
    "Connection",
    "ConnectionRegistry",
    "get_broadcaster",
    "safe_send_json",
]
