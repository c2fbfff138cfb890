"""
Storage Services Package

Provides the abstract store contract and its implementations.
Google Sheets is the shared backend; the in-memory store serves tests
and local runs.
"""

from inkledger.models.transaction import DecodeError
from inkledger.services.storage.interface import (
    CollectionPath,
    ConnectionError,
    Snapshot,
    StorageError,
    Subscription,
    SubscriptionError,
    TransactionStoreInterface,
    WriteError,
)
from inkledger.services.storage.memory import InMemoryTransactionStore
from inkledger.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsTransactionStore,
)

__all__ = [
    # Interface
    "CollectionPath",
    "Snapshot",
    "Subscription",
    "TransactionStoreInterface",
    # Exceptions
    "ConnectionError",
    "DecodeError",
    "StorageError",
    "SubscriptionError",
    "WriteError",
    # Implementations
    "GoogleSheetsClient",
    "GoogleSheetsTransactionStore",
    "InMemoryTransactionStore",
]
