"""Merging new entries into a ledger.

This module folds one entry into a ledger: duplicate detection, ordering
enforcement and retention eviction. Merging never mutates its input; it
returns a new ledger, so a failed persist is rolled back by dropping it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from benchledger.benchmarks.models import Ledger
from benchledger.core.exceptions import DuplicateCommitError, OutOfOrderError

if TYPE_CHECKING:
    from benchledger.benchmarks.models import Entry

logger = logging.getLogger(__name__)


class MergeStatus(str, Enum):
    """What merging did with the entry."""

    APPENDED = "appended"
    REPLACED = "replaced"
    DUPLICATE = "duplicate"


@dataclass(frozen=True)
class MergeOutcome:
    """Result of merging one entry.

    Attributes:
        status: Whether the entry was appended, replaced an existing one,
            or skipped as a duplicate.
        ledger: The ledger after the merge and eviction.
        before_eviction: The ledger after the merge, before eviction. The
            regression detector reads this one so an evicted predecessor can
            still serve as baseline.
        evicted: Entries dropped from the front by the retention cap.
        duplicate: The duplicate-commit warning, when status is DUPLICATE.
    """

    status: MergeStatus
    ledger: Ledger
    before_eviction: Ledger
    evicted: list[Entry] = field(default_factory=list)
    duplicate: DuplicateCommitError | None = None

    @property
    def changed(self) -> bool:
        """Whether the ledger must be persisted."""
        return self.status is not MergeStatus.DUPLICATE


def _check_replacement_order(ledger: Ledger, index: int, entry: Entry) -> None:
    """Ensure a replacement keeps the ledger's dates non-decreasing."""
    entries = ledger.entries
    lower = entries[index - 1].date if index > 0 else None
    upper = entries[index + 1].date if index + 1 < len(entries) else None
    if lower is not None and entry.date < lower:
        raise OutOfOrderError(ledger.tool, entry.commit.id, entry.date, lower)
    if upper is not None and entry.date > upper:
        raise OutOfOrderError(ledger.tool, entry.commit.id, entry.date, upper)


def merge_entry(
    ledger: Ledger,
    entry: Entry,
    *,
    overwrite: bool = False,
    retention_cap: int | None = None,
) -> MergeOutcome:
    """Fold one entry into a ledger.

    Args:
        ledger: Current ledger (left untouched).
        entry: Entry to merge.
        overwrite: Replace the entry of an already recorded commit in place.
        retention_cap: Keep at most this many entries, evicting the oldest.

    Returns:
        MergeOutcome describing the new ledger.

    Raises:
        OutOfOrderError: If the entry is older than the ledger's last update,
            or a replacement would break chronological order.

    Example:
        >>> outcome = merge_entry(ledger, entry, retention_cap=100)
        >>> if outcome.changed:
        ...     store.ledgers[ledger.tool] = outcome.ledger
    """
    index = ledger.index_of(entry.commit.id)

    if index is not None and not overwrite:
        duplicate = DuplicateCommitError(ledger.tool, entry.commit.id)
        logger.warning(f"{duplicate}; skipping")
        return MergeOutcome(
            status=MergeStatus.DUPLICATE,
            ledger=ledger,
            before_eviction=ledger,
            duplicate=duplicate,
        )

    merged = ledger.copy()
    if index is not None:
        _check_replacement_order(ledger, index, entry)
        merged.entries[index] = entry
        status = MergeStatus.REPLACED
    else:
        if entry.date < ledger.last_update:
            raise OutOfOrderError(ledger.tool, entry.commit.id, entry.date, ledger.last_update)
        merged.entries.append(entry)
        status = MergeStatus.APPENDED

    before_eviction = merged.copy()
    evicted: list[Entry] = []
    if retention_cap is not None and len(merged) > retention_cap:
        overflow = len(merged) - retention_cap
        evicted = merged.entries[:overflow]
        del merged.entries[:overflow]
        logger.info(f"Evicted {overflow} oldest entries from '{ledger.tool}' (cap {retention_cap})")

    return MergeOutcome(status=status, ledger=merged, before_eviction=before_eviction, evicted=evicted)
