"""
Abstract Storage Interface

DESIGN DECISION: The ledger only needs three things from its store:
append a record, delete a record by id, and a live subscription that
pushes the whole collection, newest first, every time it changes.

Keeping the contract this narrow allows us to:
1. Swap Google Sheets for another document store later
2. Use in-memory storage for tests and local runs
3. Keep projection and controller logic free of backend details

There is no diffing: every subscriber receives the complete ordered
snapshot on every change, never a delta.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

from inkledger.models.transaction import NewTransaction, Transaction


Snapshot = tuple[Transaction, ...]
SnapshotCallback = Callable[[Snapshot], None]
ErrorCallback = Callable[["SubscriptionError"], None]


@dataclass(frozen=True)
class CollectionPath:
    """
    Tenant-scoped location of the transactions collection.

    artifacts/<app_id>/<segments...>
    """
    app_id: str
    segments: tuple[str, ...] = ("public", "data", "transactions")

    @property
    def parts(self) -> tuple[str, ...]:
        return ("artifacts", self.app_id, *self.segments)

    def __str__(self) -> str:
        return "/".join(self.parts)


class Subscription:
    """
    Handle for a live subscription.

    Calling unsubscribe() (or the handle itself) synchronously stops
    delivery. After it returns no callback fires again. Safe to call twice.
    """

    def __init__(self, release: Optional[Callable[[], None]] = None):
        self._release = release
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        if self._release is not None:
            release, self._release = self._release, None
            release()

    def __call__(self) -> None:
        self.unsubscribe()


class TransactionStoreInterface(ABC):
    """
    Abstract interface for the transactions collection.

    Any storage implementation must implement these methods.
    """

    @property
    @abstractmethod
    def path(self) -> CollectionPath:
        """The collection this store reads and writes."""
        pass

    @abstractmethod
    async def append(self, record: NewTransaction) -> str:
        """
        Persist a new transaction.

        The store assigns the id and the created_at timestamp from its
        own clock. The record is only guaranteed to be visible once the
        store pushes it back through the subscriptions.

        Args:
            record: The transaction to persist

        Returns:
            The id assigned by the store

        Raises:
            WriteError: On connectivity or permission failure
        """
        pass

    @abstractmethod
    async def remove(self, transaction_id: str) -> None:
        """
        Delete a transaction by id.

        Not idempotent: removing an id that does not exist is an error.

        Raises:
            WriteError: If the id does not exist or permission is denied
        """
        pass

    @abstractmethod
    def subscribe_ordered(
        self,
        on_change: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Subscription:
        """
        Open a live subscription to the whole collection, newest first.

        on_change receives the current snapshot once the subscription is
        established and again after every insert or delete. on_error
        receives a SubscriptionError if the channel fails; after that no
        further snapshots are delivered on this subscription.

        Returns:
            A Subscription whose unsubscribe() stops delivery
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class WriteError(StorageError):
    """The store rejected a create or delete."""
    pass


class SubscriptionError(StorageError):
    """The live read channel failed (e.g. permission revoked)."""
    pass


class ConnectionError(WriteError, SubscriptionError):
    """Could not connect to storage backend."""
    pass
