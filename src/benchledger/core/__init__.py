"""Core module for benchledger.

This module contains the exceptions and configuration used
throughout the library.
"""

from __future__ import annotations

from benchledger.core.config import DirectionOverride, LedgerConfig, Settings, load_config
from benchledger.core.exceptions import (
    BenchLedgerError,
    ConfigurationError,
    DuplicateCommitError,
    LedgerNotFoundError,
    LoadError,
    OutOfOrderError,
    ParseError,
    ParseErrorReason,
    PersistenceError,
    RetryableError,
    StoreLockedError,
)

__all__ = [
    "BenchLedgerError",
    "ConfigurationError",
    "DirectionOverride",
    "DuplicateCommitError",
    "LedgerConfig",
    "LedgerNotFoundError",
    "LoadError",
    "OutOfOrderError",
    "ParseError",
    "ParseErrorReason",
    "PersistenceError",
    "RetryableError",
    "Settings",
    "StoreLockedError",
    "load_config",
]
