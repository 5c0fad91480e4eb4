"""Models for regression detection.

This module provides dataclasses for per-benchmark comparisons,
regression alerts, unit anomalies and the combined detection result.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

Severity = Literal["warning", "critical"]


@dataclass(frozen=True)
class Comparison:
    """A benchmark of the new entry set against its baseline.

    Attributes:
        name: Benchmark name.
        unit: Unit of the current result.
        current_value: Value in the new entry.
        current_range: Uncertainty in the new entry.
        bigger_is_worse: Direction used for the comparison.
        baseline_commit_id: Commit of the baseline entry (None if no baseline).
        baseline_value: Baseline value (None if no baseline).
        baseline_range: Baseline uncertainty (None if no baseline).
        ratio: Degradation ratio, > 1 means worse (None if not comparable).
    """

    name: str
    unit: str
    current_value: float
    current_range: float
    bigger_is_worse: bool
    baseline_commit_id: str | None = None
    baseline_value: float | None = None
    baseline_range: float | None = None
    ratio: float | None = None

    @property
    def has_baseline(self) -> bool:
        return self.baseline_value is not None

    @property
    def delta(self) -> float | None:
        """Absolute difference between current and baseline."""
        if self.baseline_value is None:
            return None
        return abs(self.current_value - self.baseline_value)

    @property
    def exceeds_noise(self) -> bool:
        """Whether the delta is larger than the combined uncertainty."""
        if self.delta is None or self.baseline_range is None:
            return False
        return self.delta > self.baseline_range + self.current_range


@dataclass(frozen=True)
class RegressionAlert:
    """Alert for a detected regression.

    Attributes:
        name: Benchmark that regressed.
        tool: Ledger the benchmark belongs to.
        baseline_commit_id: Commit of the baseline measurement.
        current_commit_id: Commit of the new measurement.
        baseline_value: Baseline value.
        current_value: New value.
        ratio: How many times worse the new value is (e.g. 1.6).
        unit: Unit of both values.
        threshold: Alert threshold that was met, as a fraction.
        severity: "warning", or "critical" once the fail threshold is met.

    Example:
        >>> alert = RegressionAlert(
        ...     name="X",
        ...     tool="cargo",
        ...     baseline_commit_id="a1",
        ...     current_commit_id="b2",
        ...     baseline_value=100,
        ...     current_value=160,
        ...     ratio=1.6,
        ...     unit="ns/iter",
        ...     threshold=0.5,
        ... )
        >>> alert.message
        'X is 1.60x worse: 100 -> 160 ns/iter (threshold: 1.50x)'
    """

    name: str
    tool: str
    baseline_commit_id: str
    current_commit_id: str
    baseline_value: float
    current_value: float
    ratio: float
    unit: str = ""
    threshold: float = 0.0
    severity: Severity = "warning"

    @property
    def message(self) -> str:
        """Human-readable alert message."""
        unit = f" {self.unit}" if self.unit else ""
        return (
            f"{self.name} is {self.ratio:.2f}x worse: "
            f"{self.baseline_value:g} -> {self.current_value:g}{unit} "
            f"(threshold: {1 + self.threshold:.2f}x)"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "tool": self.tool,
            "baselineCommitId": self.baseline_commit_id,
            "currentCommitId": self.current_commit_id,
            "baselineValue": self.baseline_value,
            "currentValue": self.current_value,
            "ratio": self.ratio,
            "unit": self.unit,
            "threshold": self.threshold,
            "severity": self.severity,
        }


@dataclass(frozen=True)
class UnitChange:
    """A benchmark whose unit differs from its baseline.

    The two measurements are not compared.
    """

    name: str
    tool: str
    baseline_commit_id: str
    current_commit_id: str
    baseline_unit: str
    current_unit: str

    @property
    def message(self) -> str:
        return (
            f"{self.name} changed unit from '{self.baseline_unit}' "
            f"(commit {self.baseline_commit_id}) to '{self.current_unit}'"
        )


@dataclass
class RegressionResult:
    """Result of regression detection for one entry.

    Attributes:
        tool: Ledger that was checked.
        commit_id: Commit of the checked entry.
        comparisons: One comparison per benchmark, in entry order.
        alerts: Regression alerts detected.
        unit_changes: Benchmarks whose unit changed since their baseline.
        timestamp: When the detection was performed.
    """

    tool: str
    commit_id: str
    comparisons: list[Comparison] = field(default_factory=list)
    alerts: list[RegressionAlert] = field(default_factory=list)
    unit_changes: list[UnitChange] = field(default_factory=list)
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def has_regressions(self) -> bool:
        return len(self.alerts) > 0

    @property
    def has_critical(self) -> bool:
        return any(alert.severity == "critical" for alert in self.alerts)

    @property
    def warning_count(self) -> int:
        """Count of warning-level regressions."""
        return sum(1 for alert in self.alerts if alert.severity == "warning")

    @property
    def critical_count(self) -> int:
        """Count of critical-level regressions."""
        return sum(1 for alert in self.alerts if alert.severity == "critical")

    def summary(self) -> str:
        """Generate a human-readable summary.

        Returns:
            Multi-line summary string.
        """
        if not self.alerts and not self.unit_changes:
            return "No regressions detected."

        lines = [
            f"Regression Detection Summary for '{self.tool}' @ {self.commit_id} "
            f"({self.timestamp.strftime('%Y-%m-%d %H:%M:%S')})",
            f"  Critical: {self.critical_count}, Warnings: {self.warning_count}",
        ]

        if self.alerts:
            lines.extend(["", "Alerts:"])
            for alert in self.alerts:
                marker = "[CRITICAL]" if alert.severity == "critical" else "[WARNING]"
                lines.append(f"  {marker} {alert.message}")

        if self.unit_changes:
            lines.extend(["", "Unit changes:"])
            lines.extend(f"  [UNIT] {change.message}" for change in self.unit_changes)

        return "\n".join(lines)
