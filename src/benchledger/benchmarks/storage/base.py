"""Base protocol for history storage backends.

This module defines the StorageProtocol that all storage backends must implement.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from contextlib import AbstractAsyncContextManager

    from benchledger.benchmarks.models import Ledger, Store


@runtime_checkable
class StorageProtocol(Protocol):
    """Protocol for history storage backends.

    A backend persists the whole Store as one unit. ``save`` must be atomic:
    readers see either the previous or the new state, never a mix.
    Mutations run under ``lock()``; reads never take it.

    Example:
        >>> class MyStorage:
        ...     async def load(self) -> Store: ...
        ...     # ... implement other methods
        >>> isinstance(MyStorage(), StorageProtocol)
        True
    """

    async def load(self) -> Store:
        """Load the last persisted store.

        Returns:
            The store, or an empty store if nothing was persisted yet.

        Raises:
            LoadError: If persisted data exists but cannot be read.
        """
        ...

    async def save(self, store: Store) -> None:
        """Persist the whole store atomically.

        Args:
            store: The store to persist.

        Raises:
            PersistenceError: If writing fails; the previous state stays visible.
        """
        ...

    async def get(self, tool: str) -> Ledger:
        """Get the persisted ledger of a tool.

        Raises:
            LedgerNotFoundError: If the tool has no ledger.
        """
        ...

    def lock(self) -> AbstractAsyncContextManager[None]:
        """Exclusive write lock held for a load-merge-persist cycle.

        Raises:
            StoreLockedError: If the lock cannot be acquired under the wait policy.
        """
        ...
