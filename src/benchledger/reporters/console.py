"""Console reporter for benchledger.

This module provides terminal output for ingestion results,
with comparison tables and status indicators.
"""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from typing import TYPE_CHECKING, TextIO

from benchledger.benchmarks.models import format_number

if TYPE_CHECKING:
    from benchledger.benchmarks.history import IngestResult, SeriesPoint
    from benchledger.benchmarks.models import Entry
    from benchledger.regression import Comparison, RegressionAlert


# ANSI color codes
class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    # Status colors
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    RED = "\033[31m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"


def format_value(value: float | None, unit: str = "") -> str:
    """Render a measurement the way it is persisted, with its unit."""
    if value is None:
        return "-"
    text = str(format_number(value))
    return f"{text} {unit}" if unit else text


class ConsoleReporter:
    """Reporter that outputs ingestion results to the terminal.

    Attributes:
        use_colors: Whether to use ANSI colors in output.
        output: Output stream (defaults to stdout).

    Example:
        >>> reporter = ConsoleReporter()
        >>> reporter.report_ingest(result)
        ┌──────────────────────────┬──────────────┬──────────────┬────────┬────────┐
        │ Benchmark                │ Previous     │ Current      │ Ratio  │ Status │
        ├──────────────────────────┼──────────────┼──────────────┼────────┼────────┤
        │ fib_20                   │ 100 ns/iter  │ 160 ns/iter  │ 1.60   │ ❌      │
        └──────────────────────────┴──────────────┴──────────────┴────────┴────────┘
    """

    def __init__(self, use_colors: bool = True, output: TextIO | None = None) -> None:
        """Initialize ConsoleReporter.

        Args:
            use_colors: Whether to use ANSI colors. Defaults to True.
            output: Output stream. Defaults to sys.stdout.
        """
        self.use_colors = use_colors and _supports_color(output or sys.stdout)
        self.output = output or sys.stdout

    def _color(self, text: str, color: str) -> str:
        """Apply color to text if colors are enabled."""
        if self.use_colors:
            return f"{color}{text}{Colors.RESET}"
        return text

    def _print(self, text: str = "") -> None:
        """Print text to output stream."""
        print(text, file=self.output)

    def _get_status(self, comparison: Comparison, alerts: dict[str, RegressionAlert]) -> tuple[str, str]:
        """Status indicator and color for one comparison."""
        alert = alerts.get(comparison.name)
        if alert is not None:
            if alert.severity == "critical":
                return ("❌", Colors.RED)
            return ("⚠️ ", Colors.YELLOW)
        if not comparison.has_baseline:
            return ("new", Colors.BLUE)
        if comparison.ratio is None:
            return ("-", Colors.DIM)
        return ("✅", Colors.GREEN)

    def report_ingest(self, result: IngestResult) -> None:
        """Report the outcome of one ingestion.

        Args:
            result: The ingestion result to report.
        """
        entry = result.entry
        self.print_header(f"{result.tool} @ {entry.commit.id[:12]}")

        if result.duplicate is not None:
            self.print_warning(f"{result.duplicate}; nothing recorded")
            return

        self.print_info(
            f"{result.status.value} {len(entry.benches)} benchmarks, ledger now holds {len(result.ledger)} entries"
        )
        if result.evicted:
            self.print_info(f"evicted {len(result.evicted)} oldest entries")

        alerts = {alert.name: alert for alert in result.alerts}
        rows = []
        for comparison in result.regression.comparisons:
            status, color = self._get_status(comparison, alerts)
            ratio = f"{comparison.ratio:.2f}" if comparison.ratio is not None else "-"
            rows.append(
                (
                    comparison.name,
                    format_value(comparison.baseline_value, comparison.unit),
                    format_value(comparison.current_value, comparison.unit),
                    ratio,
                    status,
                    color,
                )
            )
        if rows:
            self._print_table(rows)

        for change in result.unit_changes:
            self.print_warning(change.message)

        if result.alerts:
            for alert in result.alerts:
                if alert.severity == "critical":
                    self.print_error(alert.message)
                else:
                    self.print_warning(alert.message)
        else:
            self.print_success("No regressions detected")

    def _print_table(self, rows: list[tuple[str, str, str, str, str, str]]) -> None:
        """Print a comparison table.

        Args:
            rows: List of (name, previous, current, ratio, status, color) tuples.
        """
        widths = [
            max(26, max(len(row[0]) for row in rows) + 2),
            max(14, max(len(row[1]) for row in rows) + 2),
            max(14, max(len(row[2]) for row in rows) + 2),
            8,
            8,
        ]
        horizontal = "─"
        vertical = "│"

        def border(left: str, middle: str, right: str) -> str:
            return "  " + left + middle.join(horizontal * width for width in widths) + right

        self._print(border("┌", "┬", "┐"))
        headers = ("Benchmark", "Previous", "Current", "Ratio", "Status")
        self._print(
            "  "
            + vertical
            + vertical.join(
                self._color(f" {header:<{width - 1}}", Colors.BOLD) for header, width in zip(headers, widths)
            )
            + vertical
        )
        self._print(border("├", "┼", "┤"))

        for name, previous, current, ratio, status, color in rows:
            # pad before coloring so escape codes do not skew the widths
            cells = [
                f" {name:<{widths[0] - 1}}",
                f" {previous:<{widths[1] - 1}}",
                self._color(f" {current:<{widths[2] - 1}}", color),
                f" {ratio:<{widths[3] - 1}}",
                f" {status:<{widths[4] - 1}}",
            ]
            self._print("  " + vertical + vertical.join(cells) + vertical)

        self._print(border("└", "┴", "┘"))
        self._print()

    def report_series(self, tool: str, name: str, points: list[SeriesPoint], unit: str = "") -> None:
        """Report the history of one benchmark, oldest first."""
        self.print_header(f"{tool} / {name}")
        if not points:
            self._print("  No measurements recorded.")
            return
        for date, value, spread in points:
            recorded = datetime.fromtimestamp(date / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
            noise = f" ± {format_number(spread)}" if spread else ""
            self._print(f"  {self._color(recorded, Colors.DIM)}  {format_value(value, unit)}{noise}")

    def report_entries(self, tool: str, entries: list[Entry]) -> None:
        """Report a list of entries, one line per benchmark."""
        self.print_header(tool)
        for entry in entries:
            subject = entry.commit.message.splitlines()[0] if entry.commit.message else ""
            self._print(self._color(f"  {entry.commit.id[:12]} {subject}", Colors.BOLD))
            for bench in entry.benches:
                self._print(f"    {bench.name}: {format_value(bench.value, bench.unit)}")

    def print_header(self, text: str) -> None:
        """Print a section header.

        Args:
            text: Header text to display.
        """
        self._print()
        self._print(self._color(f"{'=' * 50}", Colors.DIM))
        self._print(self._color(f"  {text}", Colors.BOLD + Colors.CYAN))
        self._print(self._color(f"{'=' * 50}", Colors.DIM))

    def print_success(self, text: str) -> None:
        self._print(self._color(f"  ✅ {text}", Colors.GREEN))

    def print_warning(self, text: str) -> None:
        self._print(self._color(f"  ⚠️  {text}", Colors.YELLOW))

    def print_error(self, text: str) -> None:
        self._print(self._color(f"  ❌ {text}", Colors.RED))

    def print_info(self, text: str) -> None:
        self._print(self._color(f"  [i] {text}", Colors.BLUE))


def _supports_color(stream: TextIO) -> bool:
    """Check if the output stream supports ANSI colors.

    Args:
        stream: Output stream to check.

    Returns:
        True if colors are supported, False otherwise.
    """
    if not hasattr(stream, "isatty"):
        return False
    if not stream.isatty():
        return False

    import os

    if os.environ.get("NO_COLOR"):
        return False

    return os.environ.get("TERM") != "dumb"
