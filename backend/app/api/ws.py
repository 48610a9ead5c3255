"""WebSocket endpoint for the live chat relay."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any, Dict, TypeVar

from fastapi import APIRouter, Depends, WebSocket, status
from fastapi.websockets import WebSocketDisconnect, WebSocketState

from app.api.deps import get_blocklist_store, get_message_store, get_reaction_aggregator
from app.config import Settings, get_settings
from app.services import BlocklistStore, MessageStore, ReactionAggregator
from relay.realtime.managers import Broadcaster, get_broadcaster, safe_send_json
from relay.realtime.session import MessageClock, SessionGateway

router = APIRouter(prefix="/ws", tags=["ws"])

logger = logging.getLogger(__name__)

message_clock = MessageClock()

T = TypeVar("T")


def get_message_clock() -> MessageClock:
    return message_clock


async def iter_keepalive_messages(
    websocket: WebSocket,
    receiver: Callable[[], Awaitable[T]],
    *,
    timeout_seconds: float | int | None,
    ping_interval_seconds: float | int | None,
    ping_payload: Dict[str, Any] | None = None,
) -> AsyncIterator[T]:
    """Yield messages from *receiver* while sending keepalive pings when idle."""

    ping_payload = ping_payload or {"type": "ping"}
    timeout = float(timeout_seconds) if timeout_seconds else 0.0
    interval = float(ping_interval_seconds) if ping_interval_seconds else 0.0
    last_activity = time.monotonic()
    last_ping_sent: float | None = None

    while True:
        try:
            if timeout > 0:
                message = await asyncio.wait_for(receiver(), timeout=timeout)
            else:
                message = await receiver()
        except asyncio.TimeoutError:
            if websocket.application_state != WebSocketState.CONNECTED:
                break

            now = time.monotonic()
            should_ping = interval <= 0 or (
                now - last_activity >= interval
                and (last_ping_sent is None or now - last_ping_sent >= interval)
            )
            if should_ping:
                if not await safe_send_json(websocket, ping_payload):
                    break
                last_ping_sent = now
            continue
        except (RuntimeError, WebSocketDisconnect):
            break
        else:
            last_activity = time.monotonic()
            last_ping_sent = None
            yield message


async def receive_text_frame(websocket: WebSocket) -> str | None:
    """Return the next text frame, or ``None`` for a binary frame."""

    message = await websocket.receive()
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(message.get("code", status.WS_1000_NORMAL_CLOSURE), message.get("reason"))
    return message.get("text")


def client_ip(websocket: WebSocket) -> str:
    """Resolve the caller address, honouring the first ``X-Forwarded-For`` hop."""

    forwarded = websocket.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if websocket.client is not None and websocket.client.host:
        return websocket.client.host
    return "unknown"


@router.websocket("/chat")
async def websocket_chat(
    websocket: WebSocket,
    store: MessageStore = Depends(get_message_store),
    blocklist: BlocklistStore = Depends(get_blocklist_store),
    reactions: ReactionAggregator = Depends(get_reaction_aggregator),
    broadcaster: Broadcaster = Depends(get_broadcaster),
    clock: MessageClock = Depends(get_message_clock),
    settings: Settings = Depends(get_settings),
) -> None:
    """Replay recent history, then relay messages and reactions to everyone."""

    await websocket.accept()
    session = SessionGateway(
        websocket,
        client_ip=client_ip(websocket),
        store=store,
        blocklist=blocklist,
        reactions=reactions,
        broadcaster=broadcaster,
        settings=settings,
        clock=clock,
    )
    try:
        if not await session.open():
            return
        async for raw_message in iter_keepalive_messages(
            websocket,
            lambda: receive_text_frame(websocket),
            timeout_seconds=settings.websocket_keepalive_timeout_seconds,
            ping_interval_seconds=settings.websocket_keepalive_ping_interval_seconds,
        ):
            if raw_message is None:
                logger.debug("Dropping binary frame from %s", session.client_ip)
                continue
            try:
                payload = json.loads(raw_message)
            except json.JSONDecodeError:
                logger.debug("Dropping non-JSON frame from %s", session.client_ip)
                continue
            await session.handle(payload)
    finally:
        await session.close()
