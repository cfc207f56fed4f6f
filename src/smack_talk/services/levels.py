"""Level resolution from cumulative XP."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final


@dataclass(frozen=True)
class LevelTier:
    """Named level reached once ``xp_threshold`` XP has been earned."""

    rank: int
    name: str
    xp_threshold: int


LEVEL_TIERS: Final[tuple[LevelTier, ...]] = (
    LevelTier(rank=1, name="Rookie Ranter", xp_threshold=0),
    LevelTier(rank=2, name="Sideline Sniper", xp_threshold=100),
    LevelTier(rank=3, name="Halftime Heckler", xp_threshold=300),
    LevelTier(rank=4, name="Fourth-Quarter Fiend", xp_threshold=600),
    LevelTier(rank=5, name="Hall-of-Flame", xp_threshold=1000),
)


def level_for(xp: int) -> LevelTier:
    """Return the highest tier whose threshold is at or below ``xp``."""
    for tier in reversed(LEVEL_TIERS):
        if xp >= tier.xp_threshold:
            return tier
    return LEVEL_TIERS[0]


def detect_level_up(old_xp: int, new_xp: int) -> LevelTier | None:
    """Return the new tier if moving from ``old_xp`` to ``new_xp`` crossed a rank."""
    new_tier = level_for(new_xp)
    if new_tier.rank > level_for(old_xp).rank:
        return new_tier
    return None


def xp_to_next_level(xp: int) -> int | None:
    """Return the XP still needed for the next tier, or None at the top tier."""
    current = level_for(xp)
    if current.rank >= LEVEL_TIERS[-1].rank:
        return None
    following = LEVEL_TIERS[current.rank]
    return following.xp_threshold - max(xp, 0)
