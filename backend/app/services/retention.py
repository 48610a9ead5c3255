"""Periodic removal of messages older than the retention window."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from typing import Protocol

from app.monitoring.metrics import retention_purged_total
from app.services.message_store import StoreUnavailable

logger = logging.getLogger(__name__)


class PurgeableStore(Protocol):
    async def purge_older_than(self, cutoff_ts: int) -> int:
        ...


class RetentionSweeper:
    """Background task deleting expired messages on a fixed interval."""

    def __init__(self, store: PurgeableStore, *, retention_ms: int, interval_seconds: float) -> None:
        self._store = store
        self._retention_ms = retention_ms
        self._interval = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self, now_ms: int | None = None) -> int:
        """Purge one cycle and return the number of deleted messages."""

        if now_ms is None:
            now_ms = int(time.time() * 1000)
        cutoff = now_ms - self._retention_ms
        purged = await self._store.purge_older_than(cutoff)
        if purged:
            retention_purged_total.labels().inc(purged)
        logger.info("Old messages cleaned up: %s removed (cutoff=%s)", purged, cutoff)
        return purged

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.run_once()
            except StoreUnavailable:
                logger.warning("Retention sweep skipped; message store unavailable", exc_info=True)
            except Exception:
                logger.exception("Unexpected error during retention sweep")

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="retention-sweeper")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
