"""Base protocol for benchmark output parsers.

This module defines the BenchmarkParser protocol that every harness
parser implements, plus small helpers shared by the builtin parsers.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, ClassVar, Protocol, runtime_checkable

from benchledger.core.exceptions import ParseError

if TYPE_CHECKING:
    from benchledger.benchmarks.models import BenchResult


@runtime_checkable
class BenchmarkParser(Protocol):
    """Protocol for harness-specific output parsers.

    A parser turns the raw output of one benchmarking harness into
    canonical results, preserving the order the harness reported them.

    Attributes:
        tool: Identifier the parser is registered under (e.g. ``"cargo"``).
        bigger_is_better: Default comparison direction for this harness.

    Example:
        >>> class MyParser:
        ...     tool = "mine"
        ...     bigger_is_better = False
        ...     def parse(self, raw: bytes) -> list[BenchResult]: ...
        >>> isinstance(MyParser(), BenchmarkParser)
        True
    """

    tool: ClassVar[str]
    bigger_is_better: ClassVar[bool]

    def parse(self, raw: bytes) -> list[BenchResult]:
        """Parse raw harness output.

        Args:
            raw: Output bytes as captured from the harness.

        Returns:
            Results in source order.

        Raises:
            ParseError: If the output is malformed.
        """
        ...


def decode_text(raw: bytes | str, tool: str) -> str:
    """Decode harness output as UTF-8 text."""
    if isinstance(raw, str):
        return raw
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ParseError.malformed(tool, f"output is not valid UTF-8: {e}") from e


def load_json(raw: bytes | str, tool: str) -> Any:
    """Decode harness output as JSON."""
    try:
        return json.loads(decode_text(raw, tool))
    except json.JSONDecodeError as e:
        raise ParseError.malformed(tool, f"output is not valid JSON: {e}") from e


def require_field(record: Any, key: str, tool: str, label: str) -> Any:
    """Fetch a required field from a JSON record.

    Args:
        record: The JSON object being read.
        key: Field name.
        tool: Tool identifier, for error messages.
        label: How to name the record in errors (e.g. ``"benchmark #3"``).

    Raises:
        ParseError: If the record is not an object or the field is missing.
    """
    if not isinstance(record, dict):
        raise ParseError.malformed(tool, f"{label} is not an object")
    value = record.get(key)
    if value is None:
        raise ParseError.malformed(tool, f"{label} is missing required field '{key}'")
    return value


def require_number(record: Any, key: str, tool: str, label: str) -> float:
    """Fetch a required numeric field from a JSON record."""
    value = require_field(record, key, tool, label)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ParseError.malformed(tool, f"{label} field '{key}' is not a number: {value!r}")
    return float(value)


def parse_number(text: str, tool: str, label: str) -> float:
    """Parse a number printed by a harness, allowing thousands separators."""
    try:
        return float(text.replace(",", ""))
    except ValueError as e:
        raise ParseError.malformed(tool, f"{label} has an unreadable number: {text!r}") from e
