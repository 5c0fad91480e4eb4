"""Parser for Rust ``cargo bench`` output.

Handles the libtest bencher format, which criterion also emits when run
with ``--output-format bencher``::

    test bench_fib_20 ... bench:      37,174 ns/iter (+/- 7,527)
"""

from __future__ import annotations

import re

from benchledger.benchmarks.models import BenchResult
from benchledger.core.exceptions import ParseError
from benchledger.parsers.base import decode_text, parse_number

_BENCHER_RE = re.compile(r"^test (.+)\s+\.\.\. bench:\s+([0-9,.]+) (\w+/\w+) \(\+/- ([0-9,.]+)\)\s*$")


class CargoParser:
    """Parse libtest/criterion bencher lines; other lines are ignored."""

    tool = "cargo"
    bigger_is_better = False

    def parse(self, raw: bytes) -> list[BenchResult]:
        results: list[BenchResult] = []
        for line in decode_text(raw, self.tool).splitlines():
            match = _BENCHER_RE.match(line)
            if match is None:
                continue
            name, value, unit, spread = match.groups()
            name = name.strip()
            spread = spread.replace(",", "")
            results.append(
                BenchResult(
                    name=name,
                    value=parse_number(value, self.tool, f"benchmark '{name}'"),
                    range_value=parse_number(spread, self.tool, f"benchmark '{name}'"),
                    unit=unit,
                    range_text=f"± {spread}",
                )
            )
        if not results:
            raise ParseError.malformed(self.tool, "no 'test ... bench:' lines found")
        return results
