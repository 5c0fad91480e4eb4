"""Parser for pytest-benchmark JSON reports (``--benchmark-json``)."""

from __future__ import annotations

from benchledger.benchmarks.models import BenchResult
from benchledger.core.exceptions import ParseError
from benchledger.parsers.base import load_json, require_field, require_number

_TIME_UNITS = (("sec", 1.0), ("msec", 1e-3), ("usec", 1e-6), ("nsec", 1e-9))


def humanize_seconds(seconds: float) -> str:
    """Format a duration with the largest unit that keeps it >= 1.

    Example:
        >>> humanize_seconds(0.00123)
        '1.23 msec'
    """
    for unit, scale in _TIME_UNITS:
        if seconds >= scale:
            return f"{seconds / scale:.4g} {unit}"
    return f"{seconds / 1e-9:.4g} nsec"


class PytestParser:
    """Parse pytest-benchmark output.

    Each benchmark is recorded as its operations per second
    (``stats.ops``), so bigger is better.
    """

    tool = "pytest"
    bigger_is_better = True

    def parse(self, raw: bytes) -> list[BenchResult]:
        report = load_json(raw, self.tool)
        benchmarks = require_field(report, "benchmarks", self.tool, "report")
        if not isinstance(benchmarks, list):
            raise ParseError.malformed(self.tool, "'benchmarks' is not a list")

        results: list[BenchResult] = []
        for index, bench in enumerate(benchmarks):
            label = f"benchmark #{index}"
            name = bench.get("fullname") if isinstance(bench, dict) else None
            name = name or require_field(bench, "name", self.tool, label)
            label = f"benchmark '{name}'"
            stats = require_field(bench, "stats", self.tool, label)
            ops = require_number(stats, "ops", self.tool, label)

            stddev = stats.get("stddev")
            extra_lines = []
            if isinstance(stats.get("mean"), (int, float)):
                extra_lines.append(f"mean: {humanize_seconds(stats['mean'])}")
            if "rounds" in stats:
                extra_lines.append(f"rounds: {stats['rounds']}")

            results.append(
                BenchResult(
                    name=name,
                    value=ops,
                    range_value=abs(float(stddev)) if isinstance(stddev, (int, float)) else 0.0,
                    unit="iter/sec",
                    range_text=f"stddev: {stddev}" if stddev is not None else None,
                    extra="\n".join(extra_lines) or None,
                )
            )
        return results
