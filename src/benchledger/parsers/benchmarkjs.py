"""Parser for Benchmark.js console output.

Example input::

    fib(20) x 11,465 ops/sec ±1.12% (91 runs sampled)
"""

from __future__ import annotations

import re

from benchledger.benchmarks.models import BenchResult, parse_range
from benchledger.core.exceptions import ParseError
from benchledger.parsers.base import decode_text, parse_number

_RESULT_RE = re.compile(r"^ x ([0-9,.]+)\s+(\S+)\s+((?:±|\+-)[^%]+%) \((\d+) runs? sampled\)$")


class BenchmarkJSParser:
    """Parse Benchmark.js result lines. Throughput units, so bigger is better."""

    tool = "benchmarkjs"
    bigger_is_better = True

    def parse(self, raw: bytes) -> list[BenchResult]:
        results: list[BenchResult] = []
        for line in decode_text(raw, self.tool).splitlines():
            # Names may themselves contain " x ", the measurement is the last one
            split_at = line.rfind(" x ")
            if split_at <= 0:
                continue
            match = _RESULT_RE.match(line[split_at:].rstrip())
            if match is None:
                continue
            name = line[:split_at].strip()
            value_text, unit, spread, runs = match.groups()
            value = parse_number(value_text, self.tool, f"benchmark '{name}'")
            results.append(
                BenchResult(
                    name=name,
                    value=value,
                    range_value=parse_range(spread, value),
                    unit=unit,
                    range_text=spread,
                    extra=f"{runs} samples",
                )
            )
        if not results:
            raise ParseError.malformed(self.tool, "no 'x ... ops/sec' lines found")
        return results
