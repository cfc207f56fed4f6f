"""Tests for the rolling reaction window."""

from smack_talk.services.reactions import (
    TRACKED_EMOJI,
    ReactionWindow,
    empty_counts,
)


def test_counts_start_at_zero_for_every_tracked_emoji() -> None:
    window = ReactionWindow(horizon_seconds=30)
    assert window.counts == {emoji: 0 for emoji in TRACKED_EMOJI}
    assert set(empty_counts()) == {"🔥", "👍", "😮", "💪", "😂"}


def test_recorded_reaction_counts_immediately() -> None:
    window = ReactionWindow(horizon_seconds=30)
    assert window.record_reaction("🔥", now=100.0) is True
    assert window.counts["🔥"] == 1


def test_reaction_expires_after_horizon() -> None:
    window = ReactionWindow(horizon_seconds=30)
    window.record_reaction("🔥", now=100.0)
    assert window.tick(now=129.0)["🔥"] == 1
    assert window.tick(now=131.0)["🔥"] == 0


def test_entry_exactly_at_horizon_is_dropped() -> None:
    window = ReactionWindow(horizon_seconds=30)
    window.record_reaction("👍", now=100.0)
    assert window.tick(now=130.0)["👍"] == 0


def test_tick_rebuilds_counts_from_surviving_entries() -> None:
    window = ReactionWindow(horizon_seconds=30)
    window.record_reaction("😂", now=100.0)
    window.record_reaction("😂", now=110.0)
    window.record_reaction("💪", now=120.0)
    counts = window.tick(now=135.0)
    assert counts["😂"] == 1
    assert counts["💪"] == 1
    assert counts["🔥"] == 0


def test_untracked_emoji_is_ignored() -> None:
    window = ReactionWindow(horizon_seconds=30)
    assert window.record_reaction("🎉", now=100.0) is False
    assert "🎉" not in window.counts
    assert sum(window.counts.values()) == 0


def test_counts_property_returns_copy() -> None:
    window = ReactionWindow(horizon_seconds=30)
    snapshot = window.counts
    snapshot["🔥"] = 99
    assert window.counts["🔥"] == 0
