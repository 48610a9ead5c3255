from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, BigInteger, DateTime, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class Message(Base):
    """Chat message with its aggregated reaction counters."""

    __tablename__ = "messages"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    nick: Mapped[str] = mapped_column(String(24), nullable=False)
    ts: Mapped[int] = mapped_column(BigInteger, nullable=False)
    reactions: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    user_color: Mapped[str | None] = mapped_column(String(7))
    user_status: Mapped[str | None] = mapped_column(String(50))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


Index("ix_messages_ts_desc", Message.ts.desc())


class BlockedIP(Base):
    """Address refused at websocket connect time."""

    __tablename__ = "blocked_ips"

    id: Mapped[int] = mapped_column(primary_key=True)
    ip: Mapped[str] = mapped_column(String(45), unique=True, nullable=False)
    reason: Mapped[str | None] = mapped_column(Text)
    blocked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
