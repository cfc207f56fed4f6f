"""Poll tally engine.

Polls are immutable models; every operation returns an updated copy. Policy
violations raise a ``PollError`` subclass which the session converts into a
no-op.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Final

from smack_talk.schemas.poll import OptionPercentage, Poll, PollOption, PollStatus
from smack_talk.services.sanitize import normalize_message_input, sanitize_text

logger = logging.getLogger(__name__)

MIN_OPTIONS: Final[int] = 2
MAX_OPTIONS: Final[int] = 4


class PollError(ValueError):
    """Base exception for rejected poll operations."""


class AlreadyVotedError(PollError):
    """Raised when the local user already voted on the poll."""


class PollNotActiveError(PollError):
    """Raised when voting on or closing a poll that is already closed."""


class NotCreatorError(PollError):
    """Raised when someone other than the creator tries to close a poll."""


class UnknownOptionError(PollError):
    """Raised when a vote targets an option the poll does not have."""


class InvalidPollError(PollError):
    """Raised when a poll cannot be created from the submitted form."""


class UserVoteRecord:
    """Per-session map of poll id to the option the local user picked.

    Entries are write-once: no vote changes and no retractions.
    """

    def __init__(self) -> None:
        self._votes: dict[str, int] = {}

    def __contains__(self, poll_id: object) -> bool:
        return poll_id in self._votes

    def __len__(self) -> int:
        return len(self._votes)

    def get(self, poll_id: str) -> int | None:
        return self._votes.get(poll_id)

    def record(self, poll_id: str, option_id: int) -> None:
        if poll_id in self._votes:
            raise AlreadyVotedError(f"Already voted on poll {poll_id}")
        self._votes[poll_id] = option_id

    def as_dict(self) -> dict[str, int]:
        return dict(self._votes)


def create_poll(
    question: str,
    option_texts: Iterable[str],
    *,
    created_by: str,
    created_at: int,
) -> Poll:
    """Build an active poll from raw form input.

    Args:
        question: Poll question; must not be blank.
        option_texts: Answer texts; blank entries are dropped.
        created_by: Display name of the creator.
        created_at: Creation time in epoch milliseconds, also used for the id.

    Raises:
        InvalidPollError: If the question is blank or fewer than two or more
            than four options remain.
    """
    clean_question = normalize_message_input(question)
    if not clean_question:
        raise InvalidPollError("Please enter a question")

    texts = [normalize_message_input(text) for text in option_texts]
    texts = [text for text in texts if text]
    if len(texts) < MIN_OPTIONS:
        raise InvalidPollError("Please enter at least 2 answer options")
    if len(texts) > MAX_OPTIONS:
        raise InvalidPollError("Polls support at most 4 answer options")

    return Poll(
        id=f"poll-{created_at}",
        question=sanitize_text(clean_question),
        options=tuple(
            PollOption(id=index, text=sanitize_text(text), vote_count=0)
            for index, text in enumerate(texts, start=1)
        ),
        created_by=created_by,
        created_at=created_at,
    )


def apply_vote(poll: Poll, option_id: int, votes: UserVoteRecord) -> Poll:
    """Count the local user's vote and return the updated poll.

    The vote record is only written once the vote has been accepted.
    """
    if poll.id in votes:
        raise AlreadyVotedError(f"Already voted on poll {poll.id}")
    if not poll.is_active:
        raise PollNotActiveError(f"Poll {poll.id} is closed")
    if poll.option(option_id) is None:
        raise UnknownOptionError(f"Poll {poll.id} has no option {option_id}")

    updated = poll.model_copy(
        update={
            "options": tuple(
                option.model_copy(update={"vote_count": option.vote_count + 1})
                if option.id == option_id
                else option
                for option in poll.options
            )
        }
    )
    votes.record(poll.id, option_id)
    return updated


def percentages_for(poll: Poll) -> list[OptionPercentage]:
    """Return each option's rounded share of the vote (all 0 with no votes)."""
    total = poll.total_votes
    if total == 0:
        return [OptionPercentage(option_id=option.id, percent=0) for option in poll.options]
    # Integer half-up rounding of vote_count / total * 100.
    return [
        OptionPercentage(
            option_id=option.id,
            percent=(200 * option.vote_count + total) // (2 * total),
        )
        for option in poll.options
    ]


def resolve_winner(poll: Poll) -> int | None:
    """Return the id of the first option with the most votes, or None."""
    if poll.total_votes == 0:
        return None
    winner: PollOption | None = None
    for option in poll.options:
        if winner is None or option.vote_count > winner.vote_count:
            winner = option
    return winner.id if winner else None


def close_poll(poll: Poll, requested_by: str) -> tuple[Poll, int | None]:
    """Close ``poll`` on behalf of its creator and resolve the winner."""
    if requested_by != poll.created_by:
        raise NotCreatorError(f"Only {poll.created_by} can close poll {poll.id}")
    if not poll.is_active:
        raise PollNotActiveError(f"Poll {poll.id} is already closed")

    closed = poll.model_copy(update={"status": PollStatus.CLOSED})
    return closed, resolve_winner(closed)


def closing_announcement(poll: Poll, winner_id: int | None) -> str:
    winner = poll.option(winner_id) if winner_id is not None else None
    if winner is None:
        return f'📊 Poll closed! "{poll.question}" - No votes were cast'
    return (
        f'📊 Poll closed! "{poll.question}" - Winner: {winner.text} '
        f"({winner.vote_count} votes)"
    )
