"""Poll-related Pydantic schemas."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


class PollStatus(str, Enum):
    """Lifecycle of a poll; ``active`` to ``closed`` is one-way."""

    ACTIVE = "active"
    CLOSED = "closed"


class PollOption(BaseModel):
    """Single answer option and its running vote count."""

    id: int
    text: str
    vote_count: int = Field(0, ge=0, alias="votes")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class Poll(BaseModel):
    """Votable question with 2-4 options.

    ``total_votes`` is derived from the options so it can never drift from
    the per-option counts.
    """

    id: str
    question: str
    options: tuple[PollOption, ...] = Field(..., min_length=2, max_length=4)
    created_by: str
    created_at: int = Field(..., description="Epoch milliseconds")
    status: PollStatus = PollStatus.ACTIVE

    model_config = ConfigDict(frozen=True)

    @field_validator("options")
    @classmethod
    def _unique_option_ids(cls, options: tuple[PollOption, ...]) -> tuple[PollOption, ...]:
        ids = [option.id for option in options]
        if len(set(ids)) != len(ids):
            raise ValueError("option ids must be unique within a poll")
        return options

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_votes(self) -> int:
        return sum(option.vote_count for option in self.options)

    @property
    def is_active(self) -> bool:
        return self.status is PollStatus.ACTIVE

    def option(self, option_id: int) -> PollOption | None:
        """Return the option with the given id, if present."""
        for option in self.options:
            if option.id == option_id:
                return option
        return None


class OptionPercentage(BaseModel):
    """Share of the total vote held by one option."""

    option_id: int
    percent: int
