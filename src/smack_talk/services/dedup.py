"""Deduplication ledger for inbound chat events."""

from __future__ import annotations

import logging

from cachetools import LRUCache  # type: ignore[import-untyped]

from smack_talk.core.settings import settings

logger = logging.getLogger(__name__)


class DeduplicationLedger:
    """Track which event ids have already been folded into session state.

    Backed by a bounded LRU so a long session cannot grow the ledger without
    limit. Ids evicted from the ledger are old enough that the broadcast
    channel will not redeliver them.
    """

    def __init__(self, maxsize: int | None = None) -> None:
        self._seen: LRUCache = LRUCache(maxsize=maxsize or settings.dedup_ledger_size)

    def __len__(self) -> int:
        return len(self._seen)

    def has_processed(self, event_id: int) -> bool:
        return event_id in self._seen

    def mark_processed(self, event_id: int) -> None:
        self._seen[event_id] = True

    def check_and_mark(self, event_id: int) -> bool:
        """Mark ``event_id`` and return True, or return False for a duplicate."""
        if event_id in self._seen:
            logger.debug("Discarding duplicate event %s", event_id)
            # Refresh recency so a redelivered id stays in the ledger.
            self._seen[event_id] = True
            return False
        self._seen[event_id] = True
        return True
