"""Storage backends for benchmark history.

This module provides the storage protocol, the JSON file backend and
the advisory lock that serializes writers.

Example:
    >>> from benchledger.benchmarks.storage import JSONFileStore
    >>> store = JSONFileStore("benchmark-data/data.js")
    >>> data = await store.load()
"""

from __future__ import annotations

from benchledger.benchmarks.storage.base import StorageProtocol
from benchledger.benchmarks.storage.json_store import JSONFileStore
from benchledger.benchmarks.storage.locking import StoreLock

__all__ = [
    "JSONFileStore",
    "StorageProtocol",
    "StoreLock",
]
