"""High-level API for benchmark history.

This module provides BenchmarkHistory, the main interface for ingesting
CI results, detecting regressions and querying the recorded series.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, NamedTuple

from benchledger.benchmarks.merge import MergeStatus, merge_entry
from benchledger.benchmarks.models import Entry, IngestRequest, Ledger, now_ms
from benchledger.benchmarks.storage import JSONFileStore, StorageProtocol
from benchledger.core.config import LedgerConfig
from benchledger.core.exceptions import LedgerNotFoundError
from benchledger.parsers.registry import ParserRegistry, parse
from benchledger.regression import RegressionAlert, RegressionDetector, RegressionResult

if TYPE_CHECKING:
    from benchledger.benchmarks.models import BenchResult, CommitInfo, Store
    from benchledger.core.exceptions import DuplicateCommitError
    from benchledger.regression import UnitChange

logger = logging.getLogger(__name__)


class SeriesPoint(NamedTuple):
    """One measurement of a benchmark over time: (date, value, range)."""

    date: int
    value: float
    range: float


@dataclass
class IngestResult:
    """Outcome of ingesting one entry.

    Attributes:
        tool: Ledger the entry was merged into.
        entry: The ingested entry.
        status: Appended, replaced, or skipped as duplicate.
        ledger: The ledger as persisted.
        regression: Comparisons, alerts and unit changes for the entry.
        evicted: Entries dropped by the retention cap.
        duplicate: Warning reported for a skipped duplicate commit.
    """

    tool: str
    entry: Entry
    status: MergeStatus
    ledger: Ledger
    regression: RegressionResult
    evicted: list[Entry] = field(default_factory=list)
    duplicate: DuplicateCommitError | None = None

    @property
    def alerts(self) -> list[RegressionAlert]:
        return self.regression.alerts

    @property
    def unit_changes(self) -> list[UnitChange]:
        return self.regression.unit_changes

    @property
    def has_critical(self) -> bool:
        return self.regression.has_critical


class BenchmarkHistory:
    """High-level API for benchmark history.

    Mutations (``ingest*``) run strictly serialized under the store's write
    lock: load, merge, detect, persist. Reads (``get_*``) never take the lock
    and always see the last fully persisted store.

    Example:
        >>> history = BenchmarkHistory(JSONFileStore("data.js"), LedgerConfig(retention_cap=100))
        >>> result = await history.ingest_output(output, tool="cargo", commit=commit)
        >>> for alert in result.alerts:
        ...     print(alert.message)
        >>> series = await history.get_series("cargo", "fib_20")
    """

    def __init__(
        self,
        store: StorageProtocol | None = None,
        config: LedgerConfig | None = None,
        registry: ParserRegistry | None = None,
    ) -> None:
        """Initialize with storage backend and policy.

        Args:
            store: Storage backend (default: JSONFileStore honouring the config).
            config: Ledger policy (default: LedgerConfig()).
            registry: Parser registry (default: the global registry).
        """
        self.config = config or LedgerConfig()
        self._registry = registry or ParserRegistry.get()
        self._store: StorageProtocol = store or JSONFileStore(lock_timeout=self.config.lock_timeout)
        self._detector = RegressionDetector(self.config, self._registry)

    @property
    def detector(self) -> RegressionDetector:
        return self._detector

    async def ingest(
        self,
        tool: str,
        entry: Entry,
        *,
        overwrite: bool | None = None,
        repo_url: str | None = None,
    ) -> IngestResult:
        """Merge an entry into the ledger of ``tool`` and persist the store.

        Args:
            tool: Ledger key (the harness id, or a suite name).
            entry: The entry to merge.
            overwrite: Replace an already recorded commit. Defaults to
                ``config.overwrite_on_duplicate_commit``.
            repo_url: Repository URL recorded when the store has none yet;
                falls back to ``config.repo_url``.

        Returns:
            IngestResult with the persisted ledger and detected regressions.

        Raises:
            OutOfOrderError: If the entry is older than the ledger's last update.
            LoadError: If the persisted store cannot be read.
            PersistenceError: If saving fails; nothing is applied.
            StoreLockedError: If another writer holds the lock past the timeout.
        """
        if overwrite is None:
            overwrite = self.config.overwrite_on_duplicate_commit

        async with self._store.lock():
            store = await self._store.load()
            ledger = store.ledgers.get(tool) or Ledger(tool=tool)
            outcome = merge_entry(
                ledger,
                entry,
                overwrite=overwrite,
                retention_cap=self.config.retention_cap,
            )

            if not outcome.changed:
                return IngestResult(
                    tool=tool,
                    entry=entry,
                    status=outcome.status,
                    ledger=ledger,
                    regression=RegressionResult(tool=tool, commit_id=entry.commit.id),
                    duplicate=outcome.duplicate,
                )

            regression = self._detector.run(tool, entry, outcome.before_eviction)

            updated = store.copy()
            updated.ledgers[tool] = outcome.ledger
            if not updated.repo_url:
                updated.repo_url = repo_url or self.config.repo_url
            await self._store.save(updated)

        logger.info(
            f"Ingested commit {entry.commit.id} into '{tool}' ({outcome.status.value}, "
            f"{len(outcome.ledger)} entries, {len(regression.alerts)} alerts)"
        )
        return IngestResult(
            tool=tool,
            entry=entry,
            status=outcome.status,
            ledger=outcome.ledger,
            regression=regression,
            evicted=outcome.evicted,
        )

    async def ingest_output(
        self,
        raw: bytes | str,
        *,
        tool: str,
        commit: CommitInfo,
        name: str | None = None,
        date: int | None = None,
        overwrite: bool | None = None,
    ) -> IngestResult:
        """Parse harness output and ingest it as a new entry.

        Args:
            raw: Captured harness output.
            tool: Harness id selecting the parser.
            commit: Commit the run measured.
            name: Ledger key (defaults to ``tool``).
            date: Ingestion time in epoch ms (defaults to now).
            overwrite: See ``ingest``.

        Raises:
            ParseError: If the output cannot be parsed; the store is untouched.
        """
        benches = parse(tool, raw, registry=self._registry)
        entry = Entry(commit=commit, date=date if date is not None else now_ms(), tool=tool, benches=tuple(benches))
        return await self.ingest(name or tool, entry, overwrite=overwrite)

    async def ingest_request(self, request: IngestRequest, *, overwrite: bool | None = None) -> IngestResult:
        """Ingest a pre-parsed request ``{repoUrl, tool, commit, date, benches}``."""
        return await self.ingest(request.tool, request.to_entry(), overwrite=overwrite, repo_url=request.repo_url)

    async def snapshot(self) -> Store:
        """The last fully persisted store, read without taking the write lock."""
        return await self._store.load()

    async def list_tools(self) -> list[str]:
        """Ledger keys in the store."""
        store = await self.snapshot()
        return list(store.ledgers)

    async def get_ledger(self, tool: str) -> Ledger:
        """Get the ledger of a tool.

        Raises:
            LedgerNotFoundError: If the tool has no ledger.
        """
        return await self._store.get(tool)

    async def get_series(self, tool: str, name: str) -> list[SeriesPoint]:
        """Measurements of one benchmark, oldest first.

        Entries that do not contain the benchmark are skipped.

        Raises:
            LedgerNotFoundError: If the tool has no ledger.
        """
        ledger = await self.get_ledger(tool)
        points: list[SeriesPoint] = []
        for entry in ledger.entries:
            bench: BenchResult | None = entry.bench(name)
            if bench is None:
                continue
            points.append(SeriesPoint(entry.date, bench.value, bench.range_value))
        return points

    async def get_latest(self, tool: str, n: int = 1) -> list[Entry]:
        """The ``n`` most recent entries of a ledger, newest first.

        Raises:
            LedgerNotFoundError: If the tool has no ledger.
            ValueError: If ``n`` is negative.
        """
        if n < 0:
            msg = f"n must be non-negative, got {n}"
            raise ValueError(msg)
        ledger = await self.get_ledger(tool)
        return list(reversed(ledger.entries[-n:])) if n else []

    async def get_alerts(self, tool: str, commit_id: str) -> list[RegressionAlert]:
        """Recompute the alerts of a recorded entry against its predecessors.

        Raises:
            LedgerNotFoundError: If the tool has no ledger or the commit is
                not recorded in it.
        """
        result = await self.get_regression(tool, commit_id)
        return result.alerts

    async def get_regression(self, tool: str, commit_id: str) -> RegressionResult:
        """Full detection result of a recorded entry against its predecessors."""
        ledger = await self.get_ledger(tool)
        index = ledger.index_of(commit_id)
        if index is None:
            raise LedgerNotFoundError(f"{tool}@{commit_id}")
        return self._detector.run(tool, ledger.entries[index], ledger)
