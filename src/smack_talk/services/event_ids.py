"""Monotonic event id generator helpers."""

from __future__ import annotations

import time
from collections.abc import Callable


def epoch_ms(clock: Callable[[], float] = time.time) -> int:
    """Return the clock reading in epoch milliseconds."""
    return int(clock() * 1000)


class EventIdSource:
    """Hand out strictly increasing ids derived from creation time.

    Ids are epoch milliseconds; two events created within the same millisecond
    get consecutive values instead of colliding.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._last = 0

    def next_id(self) -> int:
        candidate = epoch_ms(self._clock)
        if candidate <= self._last:
            candidate = self._last + 1
        self._last = candidate
        return candidate

    def observe(self, event_id: int) -> None:
        """Keep future ids ahead of an id seen from another source."""
        if event_id > self._last:
            self._last = event_id
