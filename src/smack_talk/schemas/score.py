"""Live game score schemas."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Sport(str, Enum):
    FOOTBALL = "football"
    BASEBALL = "baseball"
    BASKETBALL = "basketball"


class Team(BaseModel):
    """Team name, logo and running score."""

    name: str
    logo: str = ""
    score: int = Field(0, ge=0)

    model_config = ConfigDict(frozen=True)


class Game(BaseModel):
    """Game entry in the selector catalog."""

    id: int
    name: str
    sport: Sport
    home_team: Team
    away_team: Team

    model_config = ConfigDict(frozen=True)


class GameScore(BaseModel):
    """Current score, period and possession for the selected game."""

    game_id: int
    sport: Sport
    home_team: Team
    away_team: Team
    period: str
    possession: str | None = None

    model_config = ConfigDict(frozen=True)
