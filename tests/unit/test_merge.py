"""Unit tests for merging entries into a ledger."""

from __future__ import annotations

import pytest

from benchledger.benchmarks import Ledger, MergeStatus, merge_entry
from benchledger.benchmarks.models import BenchResult, CommitInfo, Entry
from benchledger.core.exceptions import DuplicateCommitError, OutOfOrderError


def _entry(commit_id: str, date: int, value: float = 100.0) -> Entry:
    return Entry(
        commit=CommitInfo(id=commit_id),
        date=date,
        tool="cargo",
        benches=(BenchResult(name="fib", value=value, unit="ns/iter"),),
    )


def _ledger(*dates: int) -> Ledger:
    return Ledger(tool="cargo", entries=[_entry(f"c{i}", date) for i, date in enumerate(dates, start=1)])


# ============================================================================
# Append
# ============================================================================


class TestAppend:
    """Tests for appending new commits."""

    def test_append_to_empty(self) -> None:
        outcome = merge_entry(Ledger(tool="cargo"), _entry("c1", 1000))

        assert outcome.status is MergeStatus.APPENDED
        assert outcome.changed
        assert [e.commit.id for e in outcome.ledger.entries] == ["c1"]

    def test_does_not_mutate_input(self) -> None:
        ledger = _ledger(1000)
        outcome = merge_entry(ledger, _entry("c9", 2000))

        assert len(ledger) == 1
        assert len(outcome.ledger) == 2

    def test_equal_date_accepted(self) -> None:
        outcome = merge_entry(_ledger(1000), _entry("c9", 1000))
        assert outcome.status is MergeStatus.APPENDED

    def test_out_of_order_rejected(self) -> None:
        """An entry older than the last update is rejected without changes."""
        ledger = _ledger(1000, 2000)

        with pytest.raises(OutOfOrderError) as exc_info:
            merge_entry(ledger, _entry("c9", 1500))

        assert exc_info.value.last_update == 2000
        assert exc_info.value.commit_id == "c9"
        assert len(ledger) == 2


# ============================================================================
# Duplicates
# ============================================================================


class TestDuplicate:
    """Tests for re-ingesting a recorded commit."""

    def test_duplicate_is_noop(self) -> None:
        ledger = _ledger(1000)
        outcome = merge_entry(ledger, _entry("c1", 5000, value=999))

        assert outcome.status is MergeStatus.DUPLICATE
        assert not outcome.changed
        assert outcome.ledger is ledger
        assert isinstance(outcome.duplicate, DuplicateCommitError)
        assert outcome.ledger.entries[0].benches[0].value == 100

    def test_idempotent(self) -> None:
        """Merging the same entry twice equals merging it once."""
        entry = _entry("c2", 2000)
        once = merge_entry(_ledger(1000), entry).ledger
        twice = merge_entry(once, entry).ledger

        assert twice.entries == once.entries

    def test_overwrite_replaces_in_place(self) -> None:
        ledger = _ledger(1000, 2000, 3000)
        outcome = merge_entry(ledger, _entry("c2", 2500, value=42), overwrite=True)

        assert outcome.status is MergeStatus.REPLACED
        assert [e.commit.id for e in outcome.ledger.entries] == ["c1", "c2", "c3"]
        assert outcome.ledger.entries[1].benches[0].value == 42

    def test_overwrite_keeps_order(self) -> None:
        ledger = _ledger(1000, 2000, 3000)

        with pytest.raises(OutOfOrderError):
            merge_entry(ledger, _entry("c2", 3500), overwrite=True)
        with pytest.raises(OutOfOrderError):
            merge_entry(ledger, _entry("c2", 500), overwrite=True)

    def test_overwrite_last_entry_may_move_forward(self) -> None:
        outcome = merge_entry(_ledger(1000, 2000), _entry("c2", 9000), overwrite=True)
        assert outcome.ledger.last_update == 9000


# ============================================================================
# Retention
# ============================================================================


class TestRetention:
    """Tests for the retention cap."""

    def test_evicts_oldest(self) -> None:
        ledger = _ledger(1000, 2000, 3000)
        outcome = merge_entry(ledger, _entry("c9", 4000), retention_cap=3)

        assert [e.commit.id for e in outcome.ledger.entries] == ["c2", "c3", "c9"]
        assert [e.commit.id for e in outcome.evicted] == ["c1"]

    def test_before_eviction_keeps_everything(self) -> None:
        """The detector still sees the evicted predecessor."""
        outcome = merge_entry(_ledger(1000), _entry("c9", 2000), retention_cap=1)

        assert [e.commit.id for e in outcome.ledger.entries] == ["c9"]
        assert [e.commit.id for e in outcome.before_eviction.entries] == ["c1", "c9"]

    def test_cap_never_exceeded(self) -> None:
        ledger = Ledger(tool="cargo")
        for i in range(10):
            ledger = merge_entry(ledger, _entry(f"c{i}", 1000 * i), retention_cap=4).ledger
            assert len(ledger) <= 4

        assert [e.commit.id for e in ledger.entries] == ["c6", "c7", "c8", "c9"]

    def test_unbounded(self) -> None:
        outcome = merge_entry(_ledger(1, 2, 3, 4), _entry("c9", 5))
        assert len(outcome.ledger) == 5
        assert outcome.evicted == []
