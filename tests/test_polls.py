"""Tests for the poll tally engine."""

import pytest

from smack_talk.schemas.poll import Poll, PollOption, PollStatus
from smack_talk.services.polls import (
    AlreadyVotedError,
    InvalidPollError,
    NotCreatorError,
    PollNotActiveError,
    UnknownOptionError,
    UserVoteRecord,
    apply_vote,
    close_poll,
    closing_announcement,
    create_poll,
    percentages_for,
    resolve_winner,
)


def _poll(*counts: int, status: PollStatus = PollStatus.ACTIVE) -> Poll:
    return Poll(
        id="poll-1",
        question="Who wins?",
        options=tuple(
            PollOption(id=index, text=f"Team {index}", vote_count=count)
            for index, count in enumerate(counts, start=1)
        ),
        created_by="Ann",
        created_at=1,
        status=status,
    )


def test_create_poll_numbers_options_and_drops_blanks() -> None:
    poll = create_poll("Who wins?", ["Bears", "  ", "Packers"], created_by="Ann", created_at=123)
    assert poll.id == "poll-123"
    assert [option.id for option in poll.options] == [1, 2]
    assert [option.text for option in poll.options] == ["Bears", "Packers"]
    assert poll.total_votes == 0
    assert poll.is_active


def test_create_poll_sanitizes_text() -> None:
    poll = create_poll("<b>MVP?</b>", ["A&B", "C"], created_by="Ann", created_at=1)
    assert poll.question == "&lt;b&gt;MVP?&lt;&#x2F;b&gt;"
    assert poll.options[0].text == "A&amp;B"


@pytest.mark.parametrize(
    ("question", "options"),
    [
        ("", ["a", "b"]),
        ("Q?", ["only one"]),
        ("Q?", ["a", "", " "]),
        ("Q?", ["a", "b", "c", "d", "e"]),
    ],
)
def test_create_poll_rejects_invalid_input(question: str, options: list[str]) -> None:
    with pytest.raises(InvalidPollError):
        create_poll(question, options, created_by="Ann", created_at=1)


def test_vote_increments_option_and_total() -> None:
    votes = UserVoteRecord()
    updated = apply_vote(_poll(0, 0), 2, votes)
    assert updated.option(2).vote_count == 1
    assert updated.total_votes == 1
    assert votes.get("poll-1") == 2


def test_second_vote_is_rejected_without_changes() -> None:
    votes = UserVoteRecord()
    poll = apply_vote(_poll(0, 0), 1, votes)
    with pytest.raises(AlreadyVotedError):
        apply_vote(poll, 2, votes)
    assert poll.total_votes == 1
    assert len(votes) == 1


def test_vote_on_closed_poll_is_rejected() -> None:
    votes = UserVoteRecord()
    with pytest.raises(PollNotActiveError):
        apply_vote(_poll(1, 1, status=PollStatus.CLOSED), 1, votes)
    assert "poll-1" not in votes


def test_vote_on_unknown_option_is_rejected() -> None:
    votes = UserVoteRecord()
    with pytest.raises(UnknownOptionError):
        apply_vote(_poll(0, 0), 9, votes)
    assert len(votes) == 0


def test_vote_record_is_single_entry_per_poll() -> None:
    votes = UserVoteRecord()
    votes.record("p", 1)
    with pytest.raises(AlreadyVotedError):
        votes.record("p", 2)
    assert votes.as_dict() == {"p": 1}


def test_percentages_three_to_one() -> None:
    assert [p.percent for p in percentages_for(_poll(3, 1))] == [75, 25]


def test_percentages_round_half_up() -> None:
    # 1/8 = 12.5% and 7/8 = 87.5%.
    assert [p.percent for p in percentages_for(_poll(1, 7))] == [13, 88]
    assert [p.percent for p in percentages_for(_poll(1, 1, 1))] == [33, 33, 33]


def test_percentages_without_votes_are_zero() -> None:
    assert [p.percent for p in percentages_for(_poll(0, 0, 0))] == [0, 0, 0]


def test_winner_first_max_wins() -> None:
    assert resolve_winner(_poll(2, 5, 5)) == 2
    assert resolve_winner(_poll(4, 4)) == 1
    assert resolve_winner(_poll(0, 0)) is None


def test_close_by_creator() -> None:
    closed, winner = close_poll(_poll(3, 1), "Ann")
    assert closed.status is PollStatus.CLOSED
    assert winner == 1
    assert closing_announcement(closed, winner) == (
        '📊 Poll closed! "Who wins?" - Winner: Team 1 (3 votes)'
    )


def test_close_without_votes() -> None:
    closed, winner = close_poll(_poll(0, 0), "Ann")
    assert winner is None
    assert closing_announcement(closed, winner).endswith("No votes were cast")


def test_close_by_other_user_is_rejected() -> None:
    with pytest.raises(NotCreatorError):
        close_poll(_poll(1, 0), "Bob")


def test_close_twice_is_rejected() -> None:
    closed, _ = close_poll(_poll(1, 0), "Ann")
    with pytest.raises(PollNotActiveError):
        close_poll(closed, "Ann")


def test_poll_requires_unique_option_ids() -> None:
    with pytest.raises(ValueError):
        Poll(
            id="p",
            question="q",
            options=(PollOption(id=1, text="a"), PollOption(id=1, text="b")),
            created_by="Ann",
            created_at=1,
        )
