"""
Tests for the data models and the store document decoder.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from inkledger.models.audit import AuditEventBuilder, AuditEventType, AuditSeverity
from inkledger.models.transaction import (
    DecodeError,
    NewTransaction,
    PaymentMethod,
    ServiceType,
    Transaction,
    TransactionDraft,
    decode_transaction,
    sort_newest_first,
)
from inkledger.validation import DraftValidator


def _document(**overrides) -> dict:
    document = {
        "id": "abc123",
        "client_name": "Ana",
        "artist": "Jhully",
        "service": "Tatuagem",
        "payment_method": "Pix",
        "value": 1500.0,
        "obs": "",
        "created_at": "2026-03-14T15:00:00+00:00",
        "user_id": "user-1",
    }
    document.update(overrides)
    return document


class TestNewTransaction:
    """Tests for the write payload."""

    def test_create_valid(self):
        """Test creating a valid new transaction."""
        record = NewTransaction(
            client_name="Ana",
            artist="Jhully",
            service=ServiceType.TATUAGEM,
            payment_method=PaymentMethod.PIX,
            value=Decimal("1500.00"),
            user_id="user-1",
        )
        assert record.client_name == "Ana"
        assert record.obs == ""

    def test_whitespace_is_stripped(self):
        """Test that text fields are trimmed."""
        record = NewTransaction(
            client_name="  Ana  ",
            artist="Jhully",
            service=ServiceType.TATUAGEM,
            payment_method=PaymentMethod.PIX,
            value=10,
            user_id="user-1",
        )
        assert record.client_name == "Ana"

    def test_float_value_is_exact(self):
        """Test that floats are converted without binary noise."""
        record = NewTransaction(
            client_name="Ana",
            artist="Jhully",
            service=ServiceType.PIERCING,
            payment_method=PaymentMethod.DINHEIRO,
            value=10.1,
            user_id="user-1",
        )
        assert record.value == Decimal("10.10")

    def test_empty_client_name_rejected(self):
        """Test that a blank client name is rejected."""
        with pytest.raises(ValidationError):
            NewTransaction(
                client_name="   ",
                artist="Jhully",
                service=ServiceType.TATUAGEM,
                payment_method=PaymentMethod.PIX,
                value=10,
                user_id="user-1",
            )

    def test_to_document(self):
        """Test the persisted field layout."""
        record = NewTransaction(
            client_name="Ana",
            artist="Jhully",
            service=ServiceType.SINAL_RESERVA,
            payment_method=PaymentMethod.CREDITO_PARCELADO,
            value=Decimal("200"),
            obs="10x",
            user_id="user-1",
        )
        document = record.to_document()
        assert document["service"] == "Sinal/Reserva"
        assert document["payment_method"] == "Crédito Parc."
        assert document["value"] == 200.0
        assert "id" not in document
        assert "created_at" not in document


class TestTransaction:
    """Tests for persisted transactions."""

    def test_is_frozen(self, make_transaction):
        """Test that records cannot be edited once stored."""
        transaction = make_transaction()
        with pytest.raises(ValidationError):
            transaction.client_name = "Bia"

    def test_naive_timestamp_is_utc(self, make_transaction):
        """Test that a naive created_at is read as UTC."""
        transaction = make_transaction(created_at=datetime(2026, 3, 14, 12, 0))
        assert transaction.created_at.tzinfo == timezone.utc

    def test_aware_timestamp_is_normalized(self, make_transaction):
        """Test that timestamps in other zones are converted to UTC."""
        brt = timezone(timedelta(hours=-3))
        transaction = make_transaction(created_at=datetime(2026, 3, 14, 12, 0, tzinfo=brt))
        assert transaction.created_at == datetime(2026, 3, 14, 15, 0, tzinfo=timezone.utc)

    def test_reservation_badge(self, make_transaction):
        """Test that deposits are flagged as reservations."""
        assert make_transaction(service=ServiceType.SINAL_RESERVA).is_reservation
        assert not make_transaction(service=ServiceType.TATUAGEM).is_reservation

    def test_sort_newest_first(self, make_transaction):
        """Test ordering by timestamp with id as tie-breaker."""
        base = datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)
        older = make_transaction(id="a", created_at=base)
        newer = make_transaction(id="b", created_at=base + timedelta(minutes=5))
        tie = make_transaction(id="c", created_at=base)

        ordered = sort_newest_first([older, tie, newer])

        assert [t.id for t in ordered] == ["b", "c", "a"]


class TestDecodeTransaction:
    """Tests for decoding raw store documents."""

    def test_decode_valid(self):
        """Test decoding a complete document."""
        transaction = decode_transaction(_document())
        assert transaction.id == "abc123"
        assert transaction.value == Decimal("1500.00")
        assert transaction.service == ServiceType.TATUAGEM
        assert transaction.created_at == datetime(2026, 3, 14, 15, 0, tzinfo=timezone.utc)

    def test_decode_string_value(self):
        """Test that amounts stored as text are accepted."""
        assert decode_transaction(_document(value="89.9")).value == Decimal("89.90")

    def test_missing_obs_is_empty(self):
        """Test that obs is optional."""
        document = _document()
        del document["obs"]
        assert decode_transaction(document).obs == ""

    def test_missing_fields_are_named(self):
        """Test that every missing required field is reported."""
        document = _document(artist="")
        del document["created_at"]

        with pytest.raises(DecodeError) as exc_info:
            decode_transaction(document)

        message = str(exc_info.value)
        assert "artist" in message
        assert "created_at" in message
        assert exc_info.value.document_id == "abc123"

    def test_unknown_service(self):
        """Test that a service outside the catalog fails decoding."""
        with pytest.raises(DecodeError, match="service"):
            decode_transaction(_document(service="Massagem"))

    def test_bad_value(self):
        """Test that a non-numeric amount fails decoding."""
        with pytest.raises(DecodeError, match="value"):
            decode_transaction(_document(value="muito"))

    def test_bad_timestamp(self):
        """Test that an unparseable created_at fails decoding."""
        with pytest.raises(DecodeError, match="created_at"):
            decode_transaction(_document(created_at="ontem"))

    def test_decode_error_is_value_error(self):
        """Test that callers can catch decode failures as ValueError."""
        with pytest.raises(ValueError):
            decode_transaction({})


class TestTransactionDraft:
    """Tests for the in-progress form state."""

    def test_clear_entry_fields_keeps_selections(self):
        """Test that only the per-client fields are cleared."""
        draft = TransactionDraft(
            client_name="Ana",
            artist="Jhully",
            service=ServiceType.PIERCING,
            payment_method=PaymentMethod.DEBITO,
            value="150,00",
            obs="orelha",
        )
        draft.clear_entry_fields()

        assert draft.client_name == ""
        assert draft.value == ""
        assert draft.obs == ""
        assert draft.artist == "Jhully"
        assert draft.service == ServiceType.PIERCING
        assert draft.payment_method == PaymentMethod.DEBITO

    def test_labels(self):
        """Test the selector labels."""
        assert ServiceType.SINAL_RESERVA.label == "SINAL / RESERVA"
        assert ServiceType.TATUAGEM.label == "TATUAGEM"
        assert PaymentMethod.CREDITO_A_VISTA.label == "CRÉDITO À VISTA (1x)"
        assert PaymentMethod.PIX.label == "PIX"


class TestDraftValidator:
    """Tests for draft validation."""

    ROSTER = ["Jhully", "Aryan"]

    def _draft(self, **overrides) -> TransactionDraft:
        fields = {"client_name": "Ana", "artist": "Jhully", "value": "150,00"}
        fields.update(overrides)
        return TransactionDraft(**fields)

    def test_complete_draft_is_valid(self):
        """Test that a complete draft passes."""
        assert DraftValidator(self.ROSTER).validate(self._draft()).is_valid

    @pytest.mark.parametrize("overrides, field", [
        ({"client_name": "  "}, "client_name"),
        ({"artist": ""}, "artist"),
        ({"artist": "Fulano"}, "artist"),
        ({"value": ""}, "value"),
        ({"value": "0,00"}, "value"),
        ({"value": "abc"}, "value"),
    ])
    def test_incomplete_draft(self, overrides, field):
        """Test that each missing or invalid field is reported."""
        result = DraftValidator(self.ROSTER).validate(self._draft(**overrides))
        assert not result.is_valid
        assert result.fields == {field}


class TestAuditEvents:
    """Tests for audit event building."""

    def test_saved_event(self):
        """Test the saved-transaction event."""
        event = AuditEventBuilder.transaction_saved("tx-1", "user-1", "Ana", "1.500,00")
        assert event.event_type == AuditEventType.TRANSACTION_SAVED
        assert event.severity == AuditSeverity.INFO
        assert event.entity_id == "tx-1"

    def test_failure_event_log_dict(self):
        """Test that failures are logged at error level with the message."""
        event = AuditEventBuilder.save_failed("user-1", "offline")
        log_dict = event.to_log_dict()
        assert log_dict["severity"] == "error"
        assert log_dict["event_type"] == "save_failed"
        assert log_dict["error_message"] == "offline"
