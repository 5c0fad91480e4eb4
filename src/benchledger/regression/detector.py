"""Regression detector for benchmark ledgers.

This module provides the RegressionDetector class, which compares each
result of a newly merged entry against the most recent earlier
measurement of the same benchmark.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from benchledger.core.config import LedgerConfig
from benchledger.parsers.registry import ParserRegistry
from benchledger.regression.models import (
    Comparison,
    RegressionAlert,
    RegressionResult,
    UnitChange,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from benchledger.benchmarks.models import BenchResult, Entry, Ledger

logger = logging.getLogger(__name__)


class RegressionDetector:
    """Detect regressions of a new entry against its ledger history.

    The baseline of a benchmark is the most recent entry before the new one
    that contains a result with the same name. Entries lacking the name are
    skipped. The comparison direction comes from the configured
    ``direction_overrides``, falling back to the harness default.

    A result is flagged when it is at least ``1 + threshold`` times worse
    than its baseline and the difference exceeds the two ranges combined.

    Attributes:
        config: Policy supplying thresholds and direction overrides.

    Example:
        >>> detector = RegressionDetector(LedgerConfig(regression_threshold={"cargo": 0.5}))
        >>> alerts = detector.detect("cargo", entry, ledger)
        >>> for alert in alerts:
        ...     print(alert.message)
    """

    def __init__(self, config: LedgerConfig | None = None, registry: ParserRegistry | None = None) -> None:
        """Initialize detector with a policy.

        Args:
            config: Ledger policy. Defaults to LedgerConfig().
            registry: Parser registry used for harness default directions.
        """
        self.config = config or LedgerConfig()
        self._registry = registry or ParserRegistry.get()

    def find_baseline(self, entries: Sequence[Entry], position: int, name: str) -> tuple[Entry, BenchResult] | None:
        """Find the most recent measurement of ``name`` before ``position``.

        Args:
            entries: Ledger entries, oldest first.
            position: Index of the new entry; the scan starts just before it.
            name: Benchmark name.

        Returns:
            The baseline entry and its result, or None if the benchmark is new.
        """
        for entry in reversed(entries[:position]):
            bench = entry.bench(name)
            if bench is not None:
                return entry, bench
        return None

    def _position(self, entry: Entry, ledger: Ledger) -> int:
        index = ledger.index_of(entry.commit.id)
        return len(ledger.entries) if index is None else index

    def _bigger_is_worse(self, name: str, entry: Entry) -> bool:
        default = not self._registry.bigger_is_better(entry.tool)
        return self.config.bigger_is_worse(name, default=default)

    def _ratio(self, current: float, baseline: float, *, bigger_is_worse: bool) -> float | None:
        """Degradation ratio; None when the denominator is zero."""
        if bigger_is_worse:
            return current / baseline if baseline != 0 else None
        return baseline / current if current != 0 else None

    def compare(self, tool: str, entry: Entry, ledger: Ledger) -> tuple[list[Comparison], list[UnitChange]]:
        """Compare every result of ``entry`` against its baseline.

        Args:
            tool: Ledger key.
            entry: The new entry.
            ledger: The ledger containing ``entry``, before retention eviction.

        Returns:
            Comparisons in entry order, and the unit changes found.
        """
        position = self._position(entry, ledger)
        comparisons: list[Comparison] = []
        unit_changes: list[UnitChange] = []

        for bench in entry.benches:
            bigger_is_worse = self._bigger_is_worse(bench.name, entry)
            found = self.find_baseline(ledger.entries, position, bench.name)
            if found is None:
                comparisons.append(
                    Comparison(
                        name=bench.name,
                        unit=bench.unit,
                        current_value=bench.value,
                        current_range=bench.range_value,
                        bigger_is_worse=bigger_is_worse,
                    )
                )
                continue

            baseline_entry, baseline = found
            ratio: float | None = None
            if baseline.unit != bench.unit:
                change = UnitChange(
                    name=bench.name,
                    tool=tool,
                    baseline_commit_id=baseline_entry.commit.id,
                    current_commit_id=entry.commit.id,
                    baseline_unit=baseline.unit,
                    current_unit=bench.unit,
                )
                logger.warning(f"'{tool}': {change.message}; not comparing")
                unit_changes.append(change)
            else:
                ratio = self._ratio(bench.value, baseline.value, bigger_is_worse=bigger_is_worse)
                if ratio is None:
                    logger.debug(f"'{tool}': {bench.name} has a zero denominator, not comparing")

            comparisons.append(
                Comparison(
                    name=bench.name,
                    unit=bench.unit,
                    current_value=bench.value,
                    current_range=bench.range_value,
                    bigger_is_worse=bigger_is_worse,
                    baseline_commit_id=baseline_entry.commit.id,
                    baseline_value=baseline.value,
                    baseline_range=baseline.range_value,
                    ratio=ratio,
                )
            )

        return comparisons, unit_changes

    def _alerts(self, tool: str, entry: Entry, comparisons: list[Comparison]) -> list[RegressionAlert]:
        threshold = self.config.threshold_for(tool)
        fail_threshold = self.config.fail_threshold_for(tool)
        alerts: list[RegressionAlert] = []

        for comparison in comparisons:
            if comparison.ratio is None or comparison.ratio < 1 + threshold:
                continue
            if not comparison.exceeds_noise:
                logger.debug(
                    f"'{tool}': {comparison.name} ratio {comparison.ratio:.3f} is within measurement noise"
                )
                continue
            if comparison.baseline_commit_id is None or comparison.baseline_value is None:
                continue

            alerts.append(
                RegressionAlert(
                    name=comparison.name,
                    tool=tool,
                    baseline_commit_id=comparison.baseline_commit_id,
                    current_commit_id=entry.commit.id,
                    baseline_value=comparison.baseline_value,
                    current_value=comparison.current_value,
                    ratio=comparison.ratio,
                    unit=comparison.unit,
                    threshold=threshold,
                    severity="critical" if comparison.ratio >= 1 + fail_threshold else "warning",
                )
            )
        return alerts

    def detect(self, tool: str, entry: Entry, ledger: Ledger) -> list[RegressionAlert]:
        """Detect regressions of ``entry`` against the ledger's history.

        Args:
            tool: Ledger key, selecting the threshold.
            entry: The newly merged entry.
            ledger: The ledger containing ``entry``, before retention eviction.

        Returns:
            Alerts in entry order. Empty when nothing regressed.
        """
        comparisons, _ = self.compare(tool, entry, ledger)
        return self._alerts(tool, entry, comparisons)

    def find_unit_changes(self, tool: str, entry: Entry, ledger: Ledger) -> list[UnitChange]:
        """Benchmarks of ``entry`` whose unit differs from their baseline."""
        _, unit_changes = self.compare(tool, entry, ledger)
        return unit_changes

    def run(self, tool: str, entry: Entry, ledger: Ledger) -> RegressionResult:
        """Full detection: comparisons, alerts and unit changes in one pass.

        Example:
            >>> result = detector.run("cargo", entry, ledger)
            >>> if result.has_critical:
            ...     raise SystemExit(1)
        """
        comparisons, unit_changes = self.compare(tool, entry, ledger)
        alerts = self._alerts(tool, entry, comparisons)
        for alert in alerts:
            logger.warning(f"Regression in '{tool}': {alert.message}")
        return RegressionResult(
            tool=tool,
            commit_id=entry.commit.id,
            comparisons=comparisons,
            alerts=alerts,
            unit_changes=unit_changes,
        )
