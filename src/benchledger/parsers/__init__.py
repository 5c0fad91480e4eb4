"""Parsers for benchmark harness output.

This module turns tool-specific output into canonical BenchResult records.

Example:
    >>> from benchledger.parsers import parse
    >>> results = parse("cargo", output_bytes)
"""

from __future__ import annotations

from benchledger.parsers.base import BenchmarkParser
from benchledger.parsers.benchmarkjs import BenchmarkJSParser
from benchledger.parsers.cargo import CargoParser
from benchledger.parsers.custom import CustomBiggerIsBetterParser, CustomSmallerIsBetterParser
from benchledger.parsers.go import GoParser
from benchledger.parsers.googlecpp import GoogleCppParser
from benchledger.parsers.pytest_benchmark import PytestParser
from benchledger.parsers.registry import ParserRegistry, parse

BUILTIN_PARSERS: list[type[BenchmarkParser]] = [
    CargoParser,
    GoParser,
    BenchmarkJSParser,
    PytestParser,
    GoogleCppParser,
    CustomSmallerIsBetterParser,
    CustomBiggerIsBetterParser,
]

__all__ = [
    "BUILTIN_PARSERS",
    "BenchmarkJSParser",
    "BenchmarkParser",
    "CargoParser",
    "CustomBiggerIsBetterParser",
    "CustomSmallerIsBetterParser",
    "GoParser",
    "GoogleCppParser",
    "ParserRegistry",
    "PytestParser",
    "parse",
]
