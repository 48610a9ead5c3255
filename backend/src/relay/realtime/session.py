"""Per-connection state machine for chat websocket sessions."""

from __future__ import annotations

import enum
import logging
import time
import uuid
from typing import Any, Callable, Protocol, Sequence

from fastapi import status
from fastapi.websockets import WebSocketState
from pydantic import ValidationError

from app.config import Settings
from app.monitoring.metrics import realtime_events_total
from app.schemas import (
    MessageRead,
    PingEvent,
    ReactionUpdate,
    SubmitMessageEvent,
    SubmitReactionEvent,
    inbound_event_adapter,
)
from app.services.message_store import StoreUnavailable

from .managers import Broadcaster, safe_send_json

logger = logging.getLogger(__name__)

BLOCKED_NOTICE = "Your IP is blocked"


class ValidationFailure(ValueError):
    """Inbound event that is dropped without telling the sender."""


class SessionState(str, enum.Enum):
    CONNECTING = "connecting"
    ACTIVE = "active"
    CLOSED = "closed"


class SessionSocket(Protocol):
    application_state: WebSocketState

    async def send_json(self, data: Any) -> None:
        ...

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        ...


class HistoryStore(Protocol):
    async def insert(self, message: MessageRead) -> None:
        ...

    async def recent(self, limit: int) -> Sequence[MessageRead]:
        ...


class Blocklist(Protocol):
    async def is_blocked(self, ip: str) -> bool:
        ...


class Reactor(Protocol):
    async def react(self, message_id: str, emoji: str) -> ReactionUpdate | None:
        ...


class MessageClock:
    """Millisecond timestamps that never go backwards within a process."""

    def __init__(self, source: Callable[[], float] = time.time) -> None:
        self._source = source
        self._last = 0

    def now_ms(self) -> int:
        current = max(int(self._source() * 1000), self._last)
        self._last = current
        return current


def build_message(
    event: SubmitMessageEvent,
    *,
    settings: Settings,
    clock: MessageClock,
) -> MessageRead:
    """Normalize a submission and stamp it with a fresh id and timestamp."""

    text = (event.text or "")[: settings.message_max_length].strip()
    if not text:
        raise ValidationFailure("Message text is empty")
    nick = (event.nick or settings.default_nick)[: settings.nick_max_length]
    user_color = event.user_color[: settings.user_color_max_length] if event.user_color else None
    user_status = event.user_status[: settings.user_status_max_length] if event.user_status else None
    return MessageRead(
        id=str(uuid.uuid4()),
        text=text,
        nick=nick,
        ts=clock.now_ms(),
        reactions={},
        user_color=user_color,
        user_status=user_status,
    )


class SessionGateway:
    """Drive one client connection from connect to close.

    The gateway registers itself with the broadcaster, so it behaves like a
    websocket towards the registry. Broadcasts that arrive before the history
    replay has been sent are queued and flushed right after it.
    """

    def __init__(
        self,
        websocket: SessionSocket,
        *,
        client_ip: str,
        store: HistoryStore,
        blocklist: Blocklist,
        reactions: Reactor,
        broadcaster: Broadcaster,
        settings: Settings,
        clock: MessageClock,
    ) -> None:
        self._websocket = websocket
        self.client_ip = client_ip
        self._store = store
        self._blocklist = blocklist
        self._reactions = reactions
        self._broadcaster = broadcaster
        self._settings = settings
        self._clock = clock
        self._backlog: list[dict[str, Any]] | None = None
        self.state = SessionState.CONNECTING

    # -- connection-like surface used by the registry ----------------------

    @property
    def application_state(self) -> WebSocketState:
        if self.state is SessionState.CLOSED:
            return WebSocketState.DISCONNECTED
        return self._websocket.application_state

    async def send_json(self, data: dict[str, Any]) -> None:
        if self._backlog is not None:
            self._backlog.append(data)
            return
        await self._websocket.send_json(data)

    # -- lifecycle ----------------------------------------------------------

    async def open(self) -> bool:
        """Run the connect handshake; return ``False`` when the client was refused."""

        if self.state is not SessionState.CONNECTING:
            return self.state is SessionState.ACTIVE

        if await self._is_blocked():
            logger.info("Blocked IP attempted to connect: %s", self.client_ip)
            await safe_send_json(self._websocket, {"type": "blocked", "message": BLOCKED_NOTICE})
            await self._force_close()
            return False

        self._backlog = []
        await self._broadcaster.registry.connect(self)
        try:
            history = list(await self._store.recent(self._settings.history_limit))
        except StoreUnavailable:
            logger.warning("Could not load recent messages for %s", self.client_ip, exc_info=True)
            history = []

        await safe_send_json(
            self._websocket,
            {"type": "recent", "messages": [message.to_payload() for message in history]},
        )
        await self._flush_backlog({message.id for message in history})
        self.state = SessionState.ACTIVE
        logger.info("Client connected from: %s", self.client_ip)
        return True

    async def close(self) -> None:
        if self.state is SessionState.CLOSED:
            return
        self.state = SessionState.CLOSED
        self._backlog = None
        await self._broadcaster.registry.disconnect(self)
        logger.info("Client disconnected: %s", self.client_ip)

    async def _is_blocked(self) -> bool:
        try:
            return await self._blocklist.is_blocked(self.client_ip)
        except StoreUnavailable:
            logger.error("Error checking blocked IPs; admitting %s", self.client_ip, exc_info=True)
            return False

    async def _force_close(self) -> None:
        self.state = SessionState.CLOSED
        if self._websocket.application_state == WebSocketState.CONNECTED:
            try:
                await self._websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Blocked")
            except RuntimeError:
                logger.debug("Socket for %s already closed", self.client_ip)

    async def _flush_backlog(self, replayed_ids: set[str]) -> None:
        # Sends can suspend; new broadcasts keep queueing until the backlog is empty.
        while self._backlog:
            payload = self._backlog.pop(0)
            if payload.get("type") == "msg" and payload["message"]["id"] in replayed_ids:
                continue
            await safe_send_json(self._websocket, payload)
        self._backlog = None

    # -- inbound events -----------------------------------------------------

    async def handle(self, raw: Any) -> None:
        """Process one decoded inbound event; invalid input is dropped silently."""

        if self.state is not SessionState.ACTIVE:
            return
        try:
            event = inbound_event_adapter.validate_python(raw)
        except ValidationError as exc:
            logger.debug("Dropping invalid event from %s: %s", self.client_ip, exc)
            return

        if isinstance(event, PingEvent):
            await safe_send_json(self._websocket, {"type": "pong"})
        elif isinstance(event, SubmitMessageEvent):
            await self.submit_message(event)
        elif isinstance(event, SubmitReactionEvent):
            await self.submit_reaction(event)

    async def submit_message(self, event: SubmitMessageEvent) -> MessageRead | None:
        """Store and broadcast one submission; a failed insert is still broadcast."""

        try:
            message = build_message(event, settings=self._settings, clock=self._clock)
        except ValidationFailure as exc:
            logger.debug("Dropping message from %s: %s", self.client_ip, exc)
            return None
        realtime_events_total.labels("msg", "in").inc()

        try:
            await self._store.insert(message)
        except StoreUnavailable:
            logger.exception("Error saving message %s; broadcasting anyway", message.id)

        await self._broadcaster.new_message(message)
        return message

    async def submit_reaction(self, event: SubmitReactionEvent) -> ReactionUpdate | None:
        realtime_events_total.labels("reaction", "in").inc()
        try:
            update = await self._reactions.react(event.message_id, event.emoji)
        except StoreUnavailable:
            logger.exception("Error updating reaction on %s", event.message_id)
            return None
        if update is None:
            return None
        await self._broadcaster.reaction_updated(update)
        return update
