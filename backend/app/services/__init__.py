"""Application service helpers."""

from functools import lru_cache

from app.config import get_settings
from app.database import SessionLocal

from .message_store import BlocklistStore, MessageStore, StoreUnavailable
from .reactions import ReactionAggregator
from .retention import RetentionSweeper


@lru_cache(maxsize=1)
def get_message_store() -> MessageStore:
    return MessageStore(SessionLocal)


@lru_cache(maxsize=1)
def get_blocklist_store() -> BlocklistStore:
    return BlocklistStore(SessionLocal)


@lru_cache(maxsize=1)
def get_retention_sweeper() -> RetentionSweeper:
    settings = get_settings()
    return RetentionSweeper(
        get_message_store(),
        retention_ms=settings.retention_window_ms,
        interval_seconds=settings.retention_sweep_interval_seconds,
    )


__all__ = [
    "BlocklistStore",
    "MessageStore",
    "ReactionAggregator",
    "RetentionSweeper",
    "StoreUnavailable",
    "get_blocklist_store",
    "get_message_store",
    "get_retention_sweeper",
]
