"""Tests for the deduplication ledger and event id source."""

from smack_talk.services.dedup import DeduplicationLedger
from smack_talk.services.event_ids import EventIdSource, epoch_ms


def test_check_and_mark_accepts_each_id_once() -> None:
    ledger = DeduplicationLedger(maxsize=10)
    assert ledger.check_and_mark(1) is True
    assert ledger.check_and_mark(1) is False
    assert ledger.check_and_mark(2) is True
    assert len(ledger) == 2


def test_mark_processed_blocks_later_delivery() -> None:
    ledger = DeduplicationLedger(maxsize=10)
    ledger.mark_processed(42)
    assert ledger.has_processed(42)
    assert ledger.check_and_mark(42) is False


def test_ledger_is_bounded() -> None:
    ledger = DeduplicationLedger(maxsize=3)
    for event_id in range(5):
        ledger.mark_processed(event_id)
    assert len(ledger) == 3
    assert not ledger.has_processed(0)
    assert ledger.has_processed(4)


def test_duplicate_refreshes_recency() -> None:
    ledger = DeduplicationLedger(maxsize=2)
    ledger.mark_processed(1)
    ledger.mark_processed(2)
    assert ledger.check_and_mark(1) is False
    ledger.mark_processed(3)
    assert ledger.has_processed(1)
    assert not ledger.has_processed(2)


def test_epoch_ms_uses_clock() -> None:
    assert epoch_ms(lambda: 1.5) == 1500


def test_ids_strictly_increase_within_one_millisecond() -> None:
    source = EventIdSource(lambda: 100.0)
    ids = [source.next_id() for _ in range(3)]
    assert ids == [100_000, 100_001, 100_002]


def test_observe_keeps_ids_ahead() -> None:
    source = EventIdSource(lambda: 100.0)
    source.observe(200_000)
    assert source.next_id() == 200_001
    source.observe(5)
    assert source.next_id() == 200_002
