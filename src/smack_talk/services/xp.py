"""Streak and XP calculation."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Final

from smack_talk.schemas.chat_event import ChatEvent, EventKind

MESSAGE_XP: Final[int] = 5
POLL_CREATE_XP: Final[int] = 10
POLL_VOTE_XP: Final[int] = 5

# Exact streak length -> one-time bonus.
STREAK_MILESTONES: Final[dict[int, int]] = {3: 15, 5: 30, 10: 50}


@dataclass(frozen=True)
class XpAward:
    """XP earned by a single action."""

    delta: int
    streak: int = 0
    milestone_bonus: int = 0

    @property
    def is_milestone(self) -> bool:
        return self.milestone_bonus > 0


def compute_streak(history: Sequence[ChatEvent], author_name: str) -> int:
    """Count the trailing run of messages by ``author_name``.

    Reactions and system notices are skipped; a message from anyone else ends
    the run.
    """
    streak = 0
    for event in reversed(history):
        if event.kind is not EventKind.MESSAGE:
            continue
        if event.author_name != author_name:
            break
        streak += 1
    return streak


def award_for_message(streak: int) -> XpAward:
    bonus = STREAK_MILESTONES.get(streak, 0)
    return XpAward(delta=MESSAGE_XP + bonus, streak=streak, milestone_bonus=bonus)


def award_for_poll_create() -> XpAward:
    return XpAward(delta=POLL_CREATE_XP)


def award_for_poll_vote() -> XpAward:
    return XpAward(delta=POLL_VOTE_XP)
