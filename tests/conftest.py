"""Shared fixtures: a controllable clock, settings, an in-memory store and a signed-in session."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from inkledger.config import LedgerSettings
from inkledger.models.transaction import PaymentMethod, ServiceType, Transaction
from inkledger.services.auth import AuthService
from inkledger.services.storage import CollectionPath, InMemoryTransactionStore


BASE_TIME = datetime(2026, 3, 14, 15, 0, tzinfo=timezone.utc)


class FakeClock:
    """A clock that only moves when told to."""

    def __init__(self, start: datetime = BASE_TIME):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def ledger_settings() -> LedgerSettings:
    return LedgerSettings(
        app_id="casa-ink-test",
        collection_segments="public,data,transactions",
        artists="Jhully,Aryan,Salomão,Lih,Guest 1",
        default_service=ServiceType.TATUAGEM,
        default_payment_method=PaymentMethod.PIX,
        viewer_timezone=None,
        studio_passcode=None,
    )


@pytest.fixture
def store(clock) -> InMemoryTransactionStore:
    return InMemoryTransactionStore(
        path=CollectionPath(app_id="casa-ink-test"),
        clock=clock,
    )


@pytest.fixture
def auth() -> AuthService:
    service = AuthService()
    service.sign_in_anonymously()
    return service


@pytest.fixture
def make_transaction():
    """Factory for persisted transactions with sensible defaults."""
    counter = {"n": 0}

    def factory(**overrides) -> Transaction:
        counter["n"] += 1
        fields = {
            "id": f"tx-{counter['n']:03d}",
            "client_name": "Ana",
            "artist": "Jhully",
            "service": ServiceType.TATUAGEM,
            "payment_method": PaymentMethod.PIX,
            "value": Decimal("100.00"),
            "obs": "",
            "created_at": BASE_TIME,
            "user_id": "user-1",
        }
        fields.update(overrides)
        return Transaction(**fields)

    return factory
