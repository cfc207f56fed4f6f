"""Gamification schemas: user stats, identity and leaderboard rows."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Identity(BaseModel):
    """Signed-in state supplied by the identity provider."""

    is_signed_in: bool = False
    user_id: str | None = None
    display_name: str | None = None

    model_config = ConfigDict(frozen=True)


class UserStats(BaseModel):
    """Session copy of the local user's gamification state.

    ``level`` is not stored here; it is always derived from ``xp`` through
    the level table.
    """

    xp: int = Field(0, ge=0)
    current_streak: int = Field(0, ge=0)


class DurableStats(BaseModel):
    """XP as reported by the stats store."""

    xp: int = Field(0, ge=0)

    model_config = ConfigDict(extra="ignore")


class LeaderboardEntry(BaseModel):
    """Row of the XP leaderboard."""

    user_id: str = Field(..., alias="clerkUserId")
    display_name: str = Field("Unknown", alias="username")
    xp: int = Field(0, ge=0)

    model_config = ConfigDict(populate_by_name=True, extra="ignore")
