"""Reaction counting on top of the message store."""

from __future__ import annotations

import logging
from typing import Protocol, Sequence

from app.schemas import MessageRead, ReactionUpdate

logger = logging.getLogger(__name__)


class ReactionStore(Protocol):
    async def recent(self, limit: int) -> Sequence[MessageRead]:
        ...

    async def update_reactions(self, message_id: str, reactions: dict[str, int]) -> None:
        ...


class ReactionAggregator:
    """Turn a single reaction into a new persisted count for (message, emoji).

    The store only supports whole-map replacement, so each reaction is a
    read-modify-write without a lock. Reactions to the same message that
    interleave between the read and the write can lose increments, and a stale
    write can even move a count backwards. Counts never exceed the number of
    reactions received and never go below one once a reaction has landed.
    """

    def __init__(self, store: ReactionStore, *, lookup_window: int, max_count: int) -> None:
        self._store = store
        self._lookup_window = lookup_window
        self._max_count = max_count

    async def react(self, message_id: str, emoji: str) -> ReactionUpdate | None:
        """Apply one reaction; return ``None`` when the message is not reactable.

        :class:`~app.services.message_store.StoreUnavailable` propagates so the
        caller never broadcasts a count that was not persisted.
        """

        window = await self._store.recent(self._lookup_window)
        target = next((message for message in window if message.id == message_id), None)
        if target is None:
            logger.debug("Reaction target %s not found; dropping reaction", message_id)
            return None

        reactions = dict(target.reactions)
        reactions[emoji] = min(reactions.get(emoji, 0) + 1, self._max_count)
        await self._store.update_reactions(message_id, reactions)
        return ReactionUpdate(message_id=message_id, emoji=emoji, new_count=reactions[emoji])
