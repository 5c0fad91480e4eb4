"""JSON file storage for benchmark history.

This module provides the file-based storage backend. The store is written
either as plain JSON or, for ``.js`` paths, wrapped as
``window.BENCHMARK_DATA = {...}`` so static dashboards can load it with a
``<script>`` tag.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any

from benchledger.benchmarks.models import Ledger, Store
from benchledger.benchmarks.storage.locking import StoreLock
from benchledger.core.exceptions import LedgerNotFoundError, LoadError, PersistenceError

logger = logging.getLogger(__name__)

JS_PREFIX = "window.BENCHMARK_DATA = "
_JS_ASSIGNMENT_RE = re.compile(r"^window\.BENCHMARK_DATA\s*=\s*")


class JSONFileStore:
    """JSON file storage for benchmark history.

    Uses atomic writes (temp file + rename) so dashboards polling the file
    never observe a truncated store. Writers serialize through ``lock()``.

    Example:
        >>> store = JSONFileStore("gh-pages/dev/bench/data.js", repo_url="https://github.com/o/r")
        >>> async with store.lock():
        ...     data = await store.load()
        ...     await store.save(data)
    """

    def __init__(
        self,
        path: str | Path = "benchmark-data/data.js",
        repo_url: str = "",
        lock_timeout: float | None = None,
    ) -> None:
        """Initialize the JSON file store.

        Args:
            path: Path to the store file. A ``.js`` suffix selects the
                dashboard script layout.
            repo_url: Repository URL for a store that does not exist yet.
            lock_timeout: Seconds to wait for the write lock (None = forever).
        """
        self._path = Path(path)
        self._repo_url = repo_url
        self._lock_timeout = lock_timeout

    @property
    def path(self) -> Path:
        return self._path

    @property
    def lock_path(self) -> Path:
        return self._path.with_name(f"{self._path.name}.lock")

    def _decode(self, content: str) -> dict[str, Any]:
        """Extract the store object from file content in either layout."""
        text = _JS_ASSIGNMENT_RE.sub("", content.strip(), count=1).rstrip(";").strip()
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            msg = f"Failed to load benchmarks from {self._path}: {e}"
            raise LoadError(msg) from e
        if not isinstance(data, dict):
            msg = f"Failed to load benchmarks from {self._path}: expected an object"
            raise LoadError(msg)
        return data

    def _encode(self, store: Store) -> str:
        content = json.dumps(store.to_dict(), indent=2, ensure_ascii=False)
        if self._path.suffix == ".js":
            return JS_PREFIX + content
        return content + "\n"

    async def load(self) -> Store:
        """Load the store from disk.

        Returns:
            The persisted store, or an empty store seeded with the configured
            repository URL when the file does not exist.

        Raises:
            LoadError: If the file exists but cannot be read or parsed.
        """
        if not self._path.exists():
            logger.info(f"No store at {self._path}, starting an empty history")
            return Store(repo_url=self._repo_url)

        try:
            content = self._path.read_text(encoding="utf-8")
        except OSError as e:
            msg = f"Failed to read {self._path}: {e}"
            raise LoadError(msg) from e

        if not content.strip():
            msg = f"Store file {self._path} is empty"
            raise LoadError(msg)

        store = Store.from_dict(self._decode(content))
        if not store.repo_url:
            store.repo_url = self._repo_url
        return store

    async def save(self, store: Store) -> None:
        """Save the store with an atomic write.

        Uses temp file + rename for atomic operation.

        Raises:
            PersistenceError: If the file cannot be written. The previous
                content stays in place.
        """
        content = self._encode(store)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            temp_fd, temp_path = tempfile.mkstemp(
                dir=self._path.parent,
                prefix=f".{self._path.name}_",
                suffix=".tmp",
            )
        except OSError as e:
            msg = f"Cannot write store {self._path}: {e}"
            raise PersistenceError(msg) from e

        try:
            with os.fdopen(temp_fd, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            # Atomic rename
            Path(temp_path).replace(self._path)
        except OSError as e:
            Path(temp_path).unlink(missing_ok=True)
            msg = f"Cannot write store {self._path}: {e}"
            raise PersistenceError(msg) from e
        except BaseException:
            Path(temp_path).unlink(missing_ok=True)
            raise

        logger.debug(f"Saved {len(store.ledgers)} ledgers to {self._path}")

    async def get(self, tool: str) -> Ledger:
        """Get the persisted ledger of a tool.

        Raises:
            LedgerNotFoundError: If the tool has no ledger.
        """
        store = await self.load()
        ledger = store.ledgers.get(tool)
        if ledger is None:
            raise LedgerNotFoundError(tool)
        return ledger

    def lock(self) -> StoreLock:
        """Exclusive write lock for this store."""
        return StoreLock(self.lock_path, timeout=self._lock_timeout)
