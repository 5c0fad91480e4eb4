"""Benchmark history module for benchledger.

This module provides tools for recording, storing, and querying
benchmark results for historical tracking and regression detection.

Example:
    >>> from benchledger.benchmarks import BenchmarkHistory, JSONFileStore
    >>> from benchledger.core.config import LedgerConfig
    >>>
    >>> history = BenchmarkHistory(JSONFileStore("gh-pages/dev/bench/data.js"), LedgerConfig())
    >>> result = await history.ingest_output(output, tool="cargo", commit=commit)
    >>>
    >>> # Later: inspect one benchmark over time
    >>> series = await history.get_series("cargo", "fib_20")
"""

from __future__ import annotations

from benchledger.benchmarks.models import (
    BenchResult,
    CommitInfo,
    Entry,
    GitUser,
    IngestRequest,
    Ledger,
    Store,
)
from benchledger.benchmarks.merge import MergeOutcome, MergeStatus, merge_entry
from benchledger.benchmarks.storage import JSONFileStore, StorageProtocol, StoreLock
from benchledger.benchmarks.history import BenchmarkHistory, IngestResult, SeriesPoint

__all__ = [
    "BenchResult",
    "BenchmarkHistory",
    "CommitInfo",
    "Entry",
    "GitUser",
    "IngestRequest",
    "IngestResult",
    "JSONFileStore",
    "Ledger",
    "MergeOutcome",
    "MergeStatus",
    "SeriesPoint",
    "StorageProtocol",
    "Store",
    "StoreLock",
    "merge_entry",
]
