"""Rolling reaction window.

Reactions are kept as ``(emoji, timestamp)`` entries. A periodic tick drops
entries older than the horizon and rebuilds the observed count map over the
tracked emoji set.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Final

from smack_talk.core.settings import settings

logger = logging.getLogger(__name__)

TRACKED_EMOJI: Final[tuple[str, ...]] = ("🔥", "👍", "😮", "💪", "😂")


@dataclass(frozen=True)
class ReactionEntry:
    emoji: str
    timestamp: float


def empty_counts() -> dict[str, int]:
    return {emoji: 0 for emoji in TRACKED_EMOJI}


class ReactionWindow:
    """Sliding count of recent reactions per tracked emoji."""

    def __init__(self, horizon_seconds: float | None = None) -> None:
        self.horizon_seconds = (
            settings.reaction_horizon_seconds if horizon_seconds is None else horizon_seconds
        )
        self._entries: deque[ReactionEntry] = deque()
        self._counts = empty_counts()

    @property
    def counts(self) -> dict[str, int]:
        """Return a copy of the currently observed count map."""
        return dict(self._counts)

    def record_reaction(self, emoji: str, now: float) -> bool:
        """Append a reaction; return False when the emoji is not tallied."""
        if emoji not in self._counts:
            logger.debug("Reaction %r is not a tracked emoji", emoji)
            return False
        self._entries.append(ReactionEntry(emoji, now))
        self._counts[emoji] += 1
        return True

    def tick(self, now: float) -> dict[str, int]:
        """Expire entries past the horizon and replace the count map."""
        cutoff = now - self.horizon_seconds
        recent = deque(entry for entry in self._entries if entry.timestamp > cutoff)

        counts = empty_counts()
        for entry in recent:
            counts[entry.emoji] += 1

        self._entries = recent
        self._counts = counts
        return self.counts
