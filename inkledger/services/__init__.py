"""Services package."""

from inkledger.services.auth import AuthError, AuthService, Identity
from inkledger.services.storage import (
    CollectionPath,
    ConnectionError,
    DecodeError,
    GoogleSheetsClient,
    GoogleSheetsTransactionStore,
    InMemoryTransactionStore,
    StorageError,
    Subscription,
    SubscriptionError,
    TransactionStoreInterface,
    WriteError,
)

__all__ = [
    # Auth
    "AuthError",
    "AuthService",
    "Identity",
    # Storage services
    "CollectionPath",
    "ConnectionError",
    "DecodeError",
    "GoogleSheetsClient",
    "GoogleSheetsTransactionStore",
    "InMemoryTransactionStore",
    "StorageError",
    "Subscription",
    "SubscriptionError",
    "TransactionStoreInterface",
    "WriteError",
]
