"""
Live Ledger Projection

Keeps the locally materialized view of the remote collection: the
ordered list, a loading flag and today's total.

DESIGN DECISION: The state update is a pure reducer over
(current state, incoming snapshot). Every snapshot replaces the list
wholesale and today's total is recomputed from scratch, so a client can
never apply a stale snapshot on top of a newer one and the total never
drifts from the list it was computed from.

"Today" is the viewer's local calendar day at reduction time. Two
viewers in different timezones may legitimately see different totals.
"""

from datetime import date, datetime, tzinfo
from decimal import Decimal
from typing import Callable, Iterable, Optional

import structlog
from pydantic import BaseModel, ConfigDict

from inkledger.audit import AuditLogger
from inkledger.models.transaction import Transaction, sort_newest_first
from inkledger.services.auth import Identity
from inkledger.services.storage import (
    Snapshot,
    Subscription,
    SubscriptionError,
    TransactionStoreInterface,
)


logger = structlog.get_logger(__name__)

StateListener = Callable[["LedgerState"], None]


class LedgerState(BaseModel):
    """Everything the ledger view renders, replaced atomically."""
    model_config = ConfigDict(frozen=True)

    transactions: tuple[Transaction, ...] = ()
    loading: bool = True
    day_total: Decimal = Decimal("0.00")
    error: Optional[str] = None
    snapshot_count: int = 0

    @classmethod
    def initial(cls) -> "LedgerState":
        return cls()


def local_date(moment: datetime, tz: Optional[tzinfo] = None) -> date:
    """Calendar day of a timestamp in the given zone (system local zone if None)."""
    return moment.astimezone(tz).date()


def compute_day_total(
    transactions: Iterable[Transaction],
    today: date,
    tz: Optional[tzinfo] = None,
) -> Decimal:
    """
    Sum the values of the transactions created on `today` in `tz`.

    Decimal addition of two-place amounts is exact, so the result does not
    depend on iteration order.
    """
    total = sum(
        (t.value for t in transactions if local_date(t.created_at, tz) == today),
        Decimal("0.00"),
    )
    return total.quantize(Decimal("0.01"))


def reduce_snapshot(
    state: LedgerState,
    snapshot: Snapshot,
    today: date,
    tz: Optional[tzinfo] = None,
) -> LedgerState:
    """Replace the list with the incoming snapshot and recompute the total."""
    transactions = sort_newest_first(snapshot)
    return LedgerState(
        transactions=transactions,
        loading=False,
        day_total=compute_day_total(transactions, today, tz),
        error=None,
        snapshot_count=state.snapshot_count + 1,
    )


def reduce_error(state: LedgerState, error: Exception) -> LedgerState:
    """Stop loading and keep whatever list we already had."""
    return state.model_copy(update={
        "loading": False,
        "error": str(error) or error.__class__.__name__,
    })


class LiveLedgerProjection:
    """
    Holds the ledger state for one viewer and drives it from a store
    subscription.

    Exactly one subscription is open at a time. With no identity the
    projection stays in its initial state (empty, zero, loading).
    """

    def __init__(
        self,
        store: TransactionStoreInterface,
        timezone: Optional[tzinfo] = None,
        clock: Optional[Callable[[], datetime]] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._tz = timezone
        self._clock = clock or (lambda: datetime.now().astimezone())
        self._audit_logger = audit_logger
        self._state = LedgerState.initial()
        self._subscription: Optional[Subscription] = None
        self._identity: Optional[Identity] = None
        self._listeners: list[StateListener] = []

    @property
    def state(self) -> LedgerState:
        return self._state

    @property
    def is_subscribed(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def today(self) -> date:
        """The viewer's current calendar day."""
        return local_date(self._clock(), self._tz)

    def add_listener(self, listener: StateListener) -> Callable[[], None]:
        """Register for state changes. Returns a function that removes the listener."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def start(self, identity: Optional[Identity]) -> None:
        """
        (Re)open the subscription for an identity.

        Any previous subscription is torn down first. None leaves the
        projection inert.
        """
        self.stop()
        self._identity = identity
        if identity is None:
            return

        self._subscription = self._store.subscribe_ordered(
            self._on_snapshot,
            self._on_error,
        )
        if self._audit_logger:
            self._audit_logger.log_subscription_started(user_id=identity.uid)

    def stop(self) -> None:
        """Synchronously stop delivery and reset to the initial state."""
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self._identity = None
        if self._state != LedgerState.initial():
            self._set_state(LedgerState.initial())

    def refresh_day_total(self) -> None:
        """Re-evaluate 'today' against the current list (e.g. after midnight)."""
        if self._state.loading:
            return
        total = compute_day_total(self._state.transactions, self.today(), self._tz)
        if total != self._state.day_total:
            self._set_state(self._state.model_copy(update={"day_total": total}))

    def _on_snapshot(self, snapshot: Snapshot) -> None:
        self._set_state(reduce_snapshot(self._state, snapshot, self.today(), self._tz))

    def _on_error(self, error: SubscriptionError) -> None:
        logger.warning("ledger_subscription_failed", error=str(error))
        if self._audit_logger:
            self._audit_logger.log_subscription_failed(
                user_id=self._identity.uid if self._identity else None,
                error_message=str(error),
            )
        self._set_state(reduce_error(self._state, error))

    def _set_state(self, state: LedgerState) -> None:
        self._state = state
        for listener in list(self._listeners):
            listener(state)
