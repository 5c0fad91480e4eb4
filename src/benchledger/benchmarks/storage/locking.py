"""Advisory write lock for a history store.

The lock is a file created next to the store with ``O_CREAT | O_EXCL``, so
it excludes writers in other processes (parallel CI jobs sharing a
checkout) as well as concurrent coroutines in this one. A lock whose recorded
pid is no longer running (a crashed CI job) is reclaimed by the next writer.
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from pathlib import Path
from typing import TYPE_CHECKING

from benchledger.core.exceptions import PersistenceError, StoreLockedError

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger(__name__)


class StoreLock:
    """Exclusive lock on a store, usable as an async context manager.

    Attributes:
        path: Lock file path.
        timeout: Seconds to wait; None waits indefinitely, 0 fails at once.

    Example:
        >>> async with StoreLock(Path("data.js.lock"), timeout=30):
        ...     store = await backend.load()
        ...     await backend.save(store)
    """

    def __init__(self, path: str | Path, timeout: float | None = None, poll_interval: float = 0.05) -> None:
        self.path = Path(path)
        self.timeout = timeout
        self._poll_interval = poll_interval
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    async def acquire(self) -> None:
        """Acquire the lock according to the wait policy.

        Raises:
            StoreLockedError: If another writer holds the lock past the timeout.
            PersistenceError: If the lock file cannot be created.
        """
        deadline = None if self.timeout is None else time.monotonic() + self.timeout
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            msg = f"Cannot create lock directory {self.path.parent}: {e}"
            raise PersistenceError(msg) from e

        while True:
            try:
                fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
            except FileExistsError:
                if self._reclaim_stale():
                    continue
                if deadline is not None and time.monotonic() >= deadline:
                    raise StoreLockedError(str(self.path), self.timeout) from None
                remaining = self._poll_interval if deadline is None else deadline - time.monotonic()
                await asyncio.sleep(max(0.0, min(self._poll_interval, remaining)))
                continue
            except OSError as e:
                msg = f"Cannot create lock file {self.path}: {e}"
                raise PersistenceError(msg) from e

            with os.fdopen(fd, "w") as f:
                f.write(f"{os.getpid()}\n")
            self._held = True
            logger.debug(f"Acquired store lock {self.path}")
            return

    def _reclaim_stale(self) -> bool:
        """Remove a lock left behind by a writer that is no longer running.

        Only a lock whose recorded pid is known to be dead is removed; an
        empty or unreadable file may belong to a writer still starting up.

        Returns:
            True if the lock file was removed.
        """
        try:
            content = self.path.read_text(encoding="utf-8").strip()
        except OSError:
            return False
        if not content.isdigit():
            return False

        pid = int(content)
        if pid == os.getpid() or _pid_alive(pid):
            return False

        logger.warning(f"Reclaiming stale store lock {self.path} left by process {pid}")
        self.path.unlink(missing_ok=True)
        return True

    def release(self) -> None:
        """Release the lock if held."""
        if not self._held:
            return
        self.path.unlink(missing_ok=True)
        self._held = False
        logger.debug(f"Released store lock {self.path}")

    async def __aenter__(self) -> None:
        await self.acquire()

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()


def _pid_alive(pid: int) -> bool:
    """Whether a process with this pid exists on this host."""
    if os.name != "posix":
        # signal 0 terminates the target on Windows; assume alive
        return True
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True
