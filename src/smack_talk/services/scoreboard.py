"""Live score tracking for the selected game."""

from __future__ import annotations

from typing import Final, Literal

from smack_talk.schemas.score import Game, GameScore, Sport, Team

TeamSide = Literal["home", "away"]

GAMES: Final[tuple[Game, ...]] = (
    Game(
        id=1,
        name="Bears vs Packers",
        sport=Sport.FOOTBALL,
        home_team=Team(name="Bears", logo="🐻"),
        away_team=Team(name="Packers", logo="🧀"),
    ),
    Game(
        id=2,
        name="White Sox vs Cubs",
        sport=Sport.BASEBALL,
        home_team=Team(name="White Sox", logo="🧦"),
        away_team=Team(name="Cubs", logo="🐻"),
    ),
    Game(
        id=3,
        name="Bulls vs Lakers",
        sport=Sport.BASKETBALL,
        home_team=Team(name="Bulls", logo="🐂"),
        away_team=Team(name="Lakers", logo="💜"),
    ),
)

_QUARTERS = ("Q1", "Q2", "Q3", "Q4", "OT")
_INNINGS = tuple(
    f"{half} {inning}" for inning in range(1, 10) for half in ("Top", "Bot")
) + ("Extra",)

PERIODS: Final[dict[Sport, tuple[str, ...]]] = {
    Sport.FOOTBALL: _QUARTERS,
    Sport.BASKETBALL: _QUARTERS,
    Sport.BASEBALL: _INNINGS,
}

SCORE_INCREMENTS: Final[dict[Sport, tuple[int, ...]]] = {
    Sport.FOOTBALL: (3, 6, 7, 1, 2),
    Sport.BASKETBALL: (1, 2, 3),
    Sport.BASEBALL: (1,),
}


def default_period(sport: Sport) -> str:
    return PERIODS[sport][0]


def score_for_game(game: Game) -> GameScore:
    """Return a fresh 0-0 score for ``game``."""
    return GameScore(
        game_id=game.id,
        sport=game.sport,
        home_team=game.home_team.model_copy(update={"score": 0}),
        away_team=game.away_team.model_copy(update={"score": 0}),
        period=default_period(game.sport),
        possession=game.home_team.name if game.sport is Sport.FOOTBALL else None,
    )


def score_line(score: GameScore) -> str:
    return (
        f"{score.home_team.name} {score.home_team.score} - "
        f"{score.away_team.score} {score.away_team.name}"
    )


def update_score(score: GameScore, team: TeamSide, points: int) -> tuple[GameScore, str]:
    """Add ``points`` (may be negative) to one side, never dropping below 0.

    Returns the new score and the announcement for the chat.
    """
    field = "home_team" if team == "home" else "away_team"
    current: Team = getattr(score, field)
    updated_team = current.model_copy(update={"score": max(0, current.score + points)})
    updated = score.model_copy(update={field: updated_team})
    return updated, f"⚡ Score Update: {score_line(updated)}"


def set_period(score: GameScore, period: str) -> GameScore:
    if period not in PERIODS[score.sport]:
        raise ValueError(f"Unknown period {period!r} for {score.sport.value}")
    return score.model_copy(update={"period": period})


def toggle_possession(score: GameScore) -> GameScore:
    home, away = score.home_team.name, score.away_team.name
    return score.model_copy(update={"possession": away if score.possession == home else home})


def reset_score(score: GameScore) -> tuple[GameScore, str]:
    reset = score.model_copy(
        update={
            "home_team": score.home_team.model_copy(update={"score": 0}),
            "away_team": score.away_team.model_copy(update={"score": 0}),
            "period": default_period(score.sport),
        }
    )
    return reset, "⚡ Score has been reset to 0-0"
