"""benchledger: continuous benchmark history and regression alerts for CI."""

from __future__ import annotations

from benchledger.benchmarks import (
    BenchmarkHistory,
    BenchResult,
    CommitInfo,
    Entry,
    GitUser,
    IngestRequest,
    IngestResult,
    JSONFileStore,
    Ledger,
    Store,
)
from benchledger.core.config import LedgerConfig, Settings, load_config
from benchledger.core.exceptions import BenchLedgerError
from benchledger.parsers import ParserRegistry, parse
from benchledger.regression import RegressionAlert, RegressionDetector, RegressionResult

__version__ = "0.3.0"
__all__ = [
    # History
    "BenchmarkHistory",
    "IngestResult",
    "JSONFileStore",
    # Data model
    "BenchResult",
    "CommitInfo",
    "Entry",
    "GitUser",
    "IngestRequest",
    "Ledger",
    "Store",
    # Configuration
    "LedgerConfig",
    "Settings",
    "load_config",
    # Parsing
    "ParserRegistry",
    "parse",
    # Regression detection
    "RegressionAlert",
    "RegressionDetector",
    "RegressionResult",
    # Errors
    "BenchLedgerError",
    # Version
    "__version__",
]
