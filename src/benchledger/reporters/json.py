"""JSON reporter for benchledger.

This module provides JSON output for ingestion results and queries,
suitable for CI/CD pipelines and machine processing.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

from benchledger.benchmarks.models import format_number

if TYPE_CHECKING:
    from benchledger.benchmarks.history import IngestResult, SeriesPoint
    from benchledger.benchmarks.models import Entry
    from benchledger.regression import Comparison, RegressionAlert


class JSONReporter:
    """Reporter that outputs ingestion results as JSON.

    Attributes:
        indent: JSON indentation level (None for compact).

    Example:
        >>> reporter = JSONReporter()
        >>> print(reporter.report(result))
        {
          "timestamp": "2024-01-15T10:30:00+00:00",
          "tool": "cargo",
          "commit": "b2",
          "status": "appended",
          "alerts": [...],
          ...
        }
    """

    def __init__(self, indent: int | None = 2) -> None:
        """Initialize JSONReporter.

        Args:
            indent: JSON indentation level. Defaults to 2. Use None for compact output.
        """
        self.indent = indent

    def _get_timestamp(self) -> str:
        """Get current timestamp in ISO 8601 format."""
        return datetime.now(timezone.utc).isoformat(timespec="seconds")

    def _dumps(self, data: Any) -> str:
        return json.dumps(data, indent=self.indent, ensure_ascii=False)

    def _comparison_to_dict(self, comparison: Comparison, alerts: dict[str, RegressionAlert]) -> dict[str, Any]:
        alert = alerts.get(comparison.name)
        if alert is not None:
            status = "fail" if alert.severity == "critical" else "warn"
        elif comparison.has_baseline:
            status = "pass"
        else:
            status = "new"
        return {
            "name": comparison.name,
            "unit": comparison.unit,
            "currentValue": format_number(comparison.current_value),
            "baselineValue": None if comparison.baseline_value is None else format_number(comparison.baseline_value),
            "baselineCommitId": comparison.baseline_commit_id,
            "ratio": comparison.ratio,
            "biggerIsWorse": comparison.bigger_is_worse,
            "status": status,
        }

    def _result_to_dict(self, result: IngestResult) -> dict[str, Any]:
        alerts = {alert.name: alert for alert in result.alerts}
        return {
            "timestamp": self._get_timestamp(),
            "tool": result.tool,
            "commit": result.entry.commit.id,
            "status": result.status.value,
            "entries": len(result.ledger),
            "evicted": [entry.commit.id for entry in result.evicted],
            "duplicate": str(result.duplicate) if result.duplicate is not None else None,
            "comparisons": [self._comparison_to_dict(c, alerts) for c in result.regression.comparisons],
            "alerts": [alert.to_dict() for alert in result.alerts],
            "unitChanges": [
                {
                    "name": change.name,
                    "baselineCommitId": change.baseline_commit_id,
                    "baselineUnit": change.baseline_unit,
                    "currentUnit": change.current_unit,
                }
                for change in result.unit_changes
            ],
            "hasCritical": result.has_critical,
        }

    def report(self, result: IngestResult) -> str:
        """Generate JSON report for one ingestion.

        Args:
            result: The ingestion result to report.

        Returns:
            JSON string representation of the result.
        """
        return self._dumps(self._result_to_dict(result))

    def report_to_file(self, result: IngestResult, path: Path | str) -> None:
        """Write JSON report to a file.

        Example:
            >>> reporter.report_to_file(result, Path("bench-report.json"))
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.report(result), encoding="utf-8")

    def report_series(self, tool: str, name: str, points: list[SeriesPoint]) -> str:
        """JSON rendering of a benchmark series, oldest first."""
        return self._dumps(
            {
                "tool": tool,
                "name": name,
                "series": [
                    {"date": date, "value": format_number(value), "range": format_number(spread)}
                    for date, value, spread in points
                ],
            }
        )

    def report_entries(self, entries: list[Entry]) -> str:
        """JSON rendering of entries in their persisted shape."""
        return self._dumps([entry.to_dict() for entry in entries])

    def report_alerts(self, alerts: list[RegressionAlert]) -> str:
        return self._dumps([alert.to_dict() for alert in alerts])
