"""Durable storage for chat messages and blocked addresses."""

from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Mapping, TypeVar

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.models import BlockedIP, Message
from app.monitoring.metrics import store_failures_total
from app.schemas import BlockedIPRead, MessageRead

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BLOCK_REASON = "Blocked by admin"


class StoreUnavailable(RuntimeError):
    """Raised when the database backing a store cannot serve a request."""

    def __init__(self, operation: str) -> None:
        super().__init__(f"Message store unavailable during {operation}")
        self.operation = operation


class _SessionScopedStore:
    """Runs each operation on a worker thread with its own pooled session."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        try:
            with self._session_factory() as db:
                yield db
        except SQLAlchemyError as exc:
            store_failures_total.labels(operation).inc()
            raise StoreUnavailable(operation) from exc

    async def _run(self, func: Callable[..., T], *args: object) -> T:
        return await asyncio.to_thread(func, *args)


class MessageStore(_SessionScopedStore):
    """Append-only message log with a replaceable reaction map per message.

    Writes are last-write-wins; callers that read-modify-write the reaction map
    are responsible for their own consistency.
    """

    async def insert(self, message: MessageRead) -> None:
        await self._run(self._insert, message)

    async def recent(self, limit: int) -> list[MessageRead]:
        """Return up to *limit* newest messages in chronological order."""

        if limit <= 0:
            return []
        return await self._run(self._recent, limit)

    async def update_reactions(self, message_id: str, reactions: Mapping[str, int]) -> None:
        await self._run(self._update_reactions, message_id, dict(reactions))

    async def delete(self, message_id: str) -> bool:
        return await self._run(self._delete, message_id)

    async def purge_older_than(self, cutoff_ts: int) -> int:
        return await self._run(self._purge_older_than, cutoff_ts)

    def _insert(self, message: MessageRead) -> None:
        with self._session("insert") as db:
            db.add(
                Message(
                    id=message.id,
                    text=message.text,
                    nick=message.nick,
                    ts=message.ts,
                    reactions=dict(message.reactions),
                    user_color=message.user_color,
                    user_status=message.user_status,
                )
            )
            db.commit()

    def _recent(self, limit: int) -> list[MessageRead]:
        with self._session("recent") as db:
            stmt = select(Message).order_by(Message.ts.desc()).limit(limit)
            rows = db.execute(stmt).scalars().all()
            messages = [MessageRead.model_validate(row) for row in rows]
        messages.reverse()
        return messages

    def _update_reactions(self, message_id: str, reactions: dict[str, int]) -> None:
        with self._session("update_reactions") as db:
            db.execute(update(Message).where(Message.id == message_id).values(reactions=reactions))
            db.commit()

    def _delete(self, message_id: str) -> bool:
        with self._session("delete") as db:
            result = db.execute(delete(Message).where(Message.id == message_id))
            db.commit()
            removed = bool(result.rowcount)
        if removed:
            logger.info("Message deleted: %s", message_id)
        return removed

    def _purge_older_than(self, cutoff_ts: int) -> int:
        with self._session("purge") as db:
            result = db.execute(delete(Message).where(Message.ts < cutoff_ts))
            db.commit()
            return int(result.rowcount or 0)


class BlocklistStore(_SessionScopedStore):
    """Addresses that may not open a websocket session."""

    async def is_blocked(self, ip: str) -> bool:
        return await self._run(self._is_blocked, ip)

    async def add(self, ip: str, reason: str | None = None) -> None:
        await self._run(self._add, ip, reason or DEFAULT_BLOCK_REASON)

    async def remove(self, ip: str) -> bool:
        return await self._run(self._remove, ip)

    async def list_blocked(self) -> list[BlockedIPRead]:
        return await self._run(self._list_blocked)

    def _is_blocked(self, ip: str) -> bool:
        with self._session("is_blocked") as db:
            stmt = select(BlockedIP.id).where(BlockedIP.ip == ip)
            return db.execute(stmt).first() is not None

    def _add(self, ip: str, reason: str) -> None:
        with self._session("block_ip") as db:
            if db.execute(select(BlockedIP.id).where(BlockedIP.ip == ip)).first() is not None:
                return
            db.add(BlockedIP(ip=ip, reason=reason))
            try:
                db.commit()
            except IntegrityError:
                # Another request blocked the same address first.
                db.rollback()
                return
        logger.info("IP blocked: %s", ip)

    def _remove(self, ip: str) -> bool:
        with self._session("unblock_ip") as db:
            result = db.execute(delete(BlockedIP).where(BlockedIP.ip == ip))
            db.commit()
            removed = bool(result.rowcount)
        if removed:
            logger.info("IP unblocked: %s", ip)
        return removed

    def _list_blocked(self) -> list[BlockedIPRead]:
        with self._session("list_blocked") as db:
            stmt = select(BlockedIP).order_by(BlockedIP.blocked_at.desc(), BlockedIP.id.desc())
            return [BlockedIPRead.model_validate(row) for row in db.execute(stmt).scalars()]
