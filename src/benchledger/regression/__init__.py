"""Regression detection module for benchledger.

This module detects performance regressions of a newly ingested entry
compared to the most recent earlier measurement of each benchmark.

Example:
    >>> from benchledger.regression import RegressionDetector
    >>>
    >>> detector = RegressionDetector(config)
    >>> result = detector.run("cargo", entry, ledger)
    >>> if result.has_critical:
    ...     print("Critical regressions detected!")
"""

from __future__ import annotations

from benchledger.regression.detector import RegressionDetector
from benchledger.regression.models import (
    Comparison,
    RegressionAlert,
    RegressionResult,
    UnitChange,
)

__all__ = [
    "Comparison",
    "RegressionAlert",
    "RegressionDetector",
    "RegressionResult",
    "UnitChange",
]
