"""
In-Memory Storage Implementation

A single-process store that honours the full store contract: it assigns
ids and timestamps itself, keeps raw documents (so every snapshot goes
through the same decode step as a real backend) and pushes the complete
ordered collection to every live subscriber after each write.

Used by the test-suite and for running the app without Google credentials.
Failures can be injected to exercise the error paths.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable, Mapping, Optional
from uuid import uuid4

import structlog

from inkledger.models.transaction import (
    DecodeError,
    NewTransaction,
    decode_transaction,
    sort_newest_first,
)
from inkledger.services.storage.interface import (
    CollectionPath,
    ErrorCallback,
    Snapshot,
    SnapshotCallback,
    Subscription,
    SubscriptionError,
    TransactionStoreInterface,
    WriteError,
)


logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _Subscriber:
    def __init__(self, on_change: SnapshotCallback, on_error: ErrorCallback):
        self.on_change = on_change
        self.on_error = on_error
        self.handle: Optional[Subscription] = None


class InMemoryTransactionStore(TransactionStoreInterface):
    """
    In-memory implementation of the transaction store.

    Timestamps come from the store's clock and are forced to be strictly
    increasing, so two writes in the same instant still get a
    deterministic order.
    """

    def __init__(
        self,
        path: Optional[CollectionPath] = None,
        clock: Optional[Callable[[], datetime]] = None,
        latency: float = 0.0,
    ):
        self._path = path or CollectionPath(app_id="casa-ink-prod")
        self._clock = clock or _utcnow
        self._latency = latency
        self._documents: dict[str, dict[str, Any]] = {}
        self._subscribers: list[_Subscriber] = []
        self._last_timestamp: Optional[datetime] = None

        # Fault injection
        self.fail_writes: bool = False
        self.fail_subscriptions: bool = False

    @property
    def path(self) -> CollectionPath:
        return self._path

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def load_documents(self, documents: Iterable[Mapping[str, Any]]) -> None:
        """Seed raw documents as if other clients had written them."""
        for document in documents:
            document_id = str(document.get("id") or uuid4().hex)
            self._documents[document_id] = {**document, "id": document_id}
        self._publish()

    def _next_timestamp(self) -> datetime:
        now = self._clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    async def append(self, record: NewTransaction) -> str:
        """Persist a new transaction and push the new snapshot."""
        if self._latency:
            await asyncio.sleep(self._latency)
        if self.fail_writes:
            raise WriteError(f"Write rejected by {self._path}")

        transaction_id = uuid4().hex
        document = record.to_document()
        document["id"] = transaction_id
        document["created_at"] = self._next_timestamp().isoformat()
        self._documents[transaction_id] = document

        self._publish()
        return transaction_id

    async def remove(self, transaction_id: str) -> None:
        """Delete a transaction and push the new snapshot."""
        if self._latency:
            await asyncio.sleep(self._latency)
        if self.fail_writes:
            raise WriteError(f"Delete rejected by {self._path}")
        if transaction_id not in self._documents:
            raise WriteError(f"Transaction not found: {transaction_id}")

        del self._documents[transaction_id]
        self._publish()

    def subscribe_ordered(
        self,
        on_change: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Subscription:
        """Register a subscriber and deliver the current snapshot right away."""
        if self.fail_subscriptions:
            on_error(SubscriptionError(f"Permission denied on {self._path}"))
            handle = Subscription()
            handle.unsubscribe()
            return handle

        subscriber = _Subscriber(on_change, on_error)
        subscriber.handle = Subscription(lambda: self._detach(subscriber))
        self._subscribers.append(subscriber)

        self._deliver(subscriber, self.snapshot())
        return subscriber.handle

    def revoke(self, reason: str = "Permission revoked") -> None:
        """Fail every live subscription, as a backend would on lost access."""
        for subscriber in list(self._subscribers):
            subscriber.handle.unsubscribe()
            subscriber.on_error(SubscriptionError(reason))

    def snapshot(self) -> Snapshot:
        """Decode every document into the ordered snapshot."""
        transactions = []
        for document in self._documents.values():
            try:
                transactions.append(decode_transaction(document))
            except DecodeError as e:
                logger.warning(
                    "document_skipped",
                    collection=str(self._path),
                    document_id=e.document_id,
                    error=str(e),
                )
        return sort_newest_first(transactions)

    def _detach(self, subscriber: _Subscriber) -> None:
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)

    def _publish(self) -> None:
        if not self._subscribers:
            return
        snapshot = self.snapshot()
        for subscriber in list(self._subscribers):
            self._deliver(subscriber, snapshot)

    def _deliver(self, subscriber: _Subscriber, snapshot: Snapshot) -> None:
        # A previous callback may have unsubscribed this one
        if not subscriber.handle.active:
            return
        try:
            subscriber.on_change(snapshot)
        except Exception:
            logger.exception("subscriber_failed", collection=str(self._path))
