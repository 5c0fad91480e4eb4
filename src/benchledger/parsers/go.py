"""Parser for ``go test -bench`` output.

Example input::

    pkg: github.com/example/fib
    BenchmarkFib20-8    30000    41653 ns/op    0 B/op    0 allocs/op

A line reporting several metrics yields one result per metric, named
``"<benchmark> - <unit>"``. When the output spans several packages, names
are suffixed with ``" (<package>)"`` so they stay unique.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from benchledger.benchmarks.models import BenchResult
from benchledger.core.exceptions import ParseError
from benchledger.parsers.base import decode_text, parse_number

_BENCH_RE = re.compile(r"^(Benchmark\w+[\w()$%^&*\-=|,\[\]{}\"#]*?)(-\d+)?\s+(\d+)\s+(.+)$")
_PKG_RE = re.compile(r"^pkg:\s+(\S+)")


@dataclass
class _Row:
    package: str | None
    result: BenchResult


class GoParser:
    """Parse Go testing benchmark lines."""

    tool = "go"
    bigger_is_better = False

    def parse(self, raw: bytes) -> list[BenchResult]:
        rows: list[_Row] = []
        package: str | None = None

        for line in decode_text(raw, self.tool).splitlines():
            pkg_match = _PKG_RE.match(line)
            if pkg_match:
                package = pkg_match.group(1)
                continue

            match = _BENCH_RE.match(line.strip())
            if match is None:
                continue
            name, procs, times, remainder = match.groups()
            pieces = remainder.split()
            if len(pieces) < 2 or len(pieces) % 2:
                raise ParseError.malformed(self.tool, f"benchmark '{name}' has unpaired metrics: {remainder!r}")

            extra = f"{times} times"
            if procs:
                extra += f"\n{procs.lstrip('-')} procs"

            pairs = list(zip(pieces[::2], pieces[1::2]))
            for value, unit in pairs:
                label = name if len(pairs) == 1 else f"{name} - {unit}"
                rows.append(
                    _Row(
                        package=package,
                        result=BenchResult(
                            name=label,
                            value=parse_number(value, self.tool, f"benchmark '{label}'"),
                            unit=unit,
                            extra=extra,
                        ),
                    )
                )

        if not rows:
            raise ParseError.malformed(self.tool, "no 'Benchmark...' lines found")

        if len({row.package for row in rows}) > 1:
            return [
                row.result.model_copy(update={"name": f"{row.result.name} ({row.package})"}) if row.package else row.result
                for row in rows
            ]
        return [row.result for row in rows]
