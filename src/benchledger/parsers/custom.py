"""Parsers for pre-formatted JSON results.

Projects whose harness is not supported directly can emit a JSON array::

    [{"name": "startup", "value": 1.4, "unit": "s", "range": "± 0.1", "extra": "..."}]

Two tool ids read this format and differ only in comparison direction.
"""

from __future__ import annotations

from typing import ClassVar

from benchledger.benchmarks.models import BenchResult, parse_range
from benchledger.core.exceptions import ParseError
from benchledger.parsers.base import load_json, require_field, require_number


class _CustomParser:
    tool: ClassVar[str]
    bigger_is_better: ClassVar[bool]

    def parse(self, raw: bytes) -> list[BenchResult]:
        records = load_json(raw, self.tool)
        if not isinstance(records, list):
            raise ParseError.malformed(self.tool, "expected a JSON array of results")

        results: list[BenchResult] = []
        for index, record in enumerate(records):
            label = f"result #{index}"
            name = require_field(record, "name", self.tool, label)
            value = require_number(record, "value", self.tool, f"result '{name}'")
            unit = require_field(record, "unit", self.tool, f"result '{name}'")

            spread = record.get("range")
            if isinstance(spread, (int, float)) and not isinstance(spread, bool):
                range_value, range_text = abs(float(spread)), None
            else:
                range_text = str(spread) if spread is not None else None
                range_value = parse_range(range_text, value)

            extra = record.get("extra")
            results.append(
                BenchResult(
                    name=str(name),
                    value=value,
                    range_value=range_value,
                    unit=str(unit),
                    range_text=range_text,
                    extra=str(extra) if extra is not None else None,
                )
            )
        return results


class CustomSmallerIsBetterParser(_CustomParser):
    """Custom results where a smaller value is an improvement (times, sizes)."""

    tool = "customSmallerIsBetter"
    bigger_is_better = False


class CustomBiggerIsBetterParser(_CustomParser):
    """Custom results where a bigger value is an improvement (throughput)."""

    tool = "customBiggerIsBetter"
    bigger_is_better = True
