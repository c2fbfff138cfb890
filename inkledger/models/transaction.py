"""
Core Data Models for Casa Ink Ledger

These models define the strict schemas for everything that crosses the
store boundary. They are designed to:
1. Enforce required vs optional fields at decode time
2. Provide clear error messages for malformed documents
3. Be serializable for storage and logging
4. Stay immutable once created (there is no update operation)

DESIGN DECISION: Store documents are loosely structured. They are decoded
into a frozen Transaction model and anything missing or unparseable fails
loudly with DecodeError instead of producing half-filled records.
"""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)


TWO_PLACES = Decimal("0.01")


# =============================================================================
# ENUMS - Fixed catalogs
# =============================================================================

class ServiceType(str, Enum):
    """
    Services the studio sells.

    Values are the labels stored in the collection, so they must not change.
    """
    TATUAGEM = "Tatuagem"
    SINAL_RESERVA = "Sinal/Reserva"
    PIERCING = "Piercing"
    JOIA = "Joia"
    RETOQUE = "Retoque"
    CURSO_WORKSHOP = "Curso/Workshop"

    @property
    def label(self) -> str:
        """Upper-case label shown in selectors."""
        return {
            ServiceType.SINAL_RESERVA: "SINAL / RESERVA",
            ServiceType.PIERCING: "PIERCING (PERFURAÇÃO)",
            ServiceType.JOIA: "JOIA (VENDA AVULSA)",
            ServiceType.CURSO_WORKSHOP: "CURSO / WORKSHOP",
        }.get(self, self.value.upper())


class PaymentMethod(str, Enum):
    """Accepted payment methods."""
    PIX = "Pix"
    DINHEIRO = "Dinheiro"
    DEBITO = "Débito"
    CREDITO_A_VISTA = "Crédito 1x"
    CREDITO_PARCELADO = "Crédito Parc."

    @property
    def label(self) -> str:
        """Upper-case label shown in selectors."""
        return {
            PaymentMethod.CREDITO_A_VISTA: "CRÉDITO À VISTA (1x)",
            PaymentMethod.CREDITO_PARCELADO: "CRÉDITO PARCELADO (2x+)",
        }.get(self, self.value.upper())


# =============================================================================
# TRANSACTION MODELS
# =============================================================================

class NewTransaction(BaseModel):
    """
    Write payload handed to the store.

    Has no id and no timestamp: the store assigns both when it persists
    the record, the client never supplies them.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    client_name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Client name (required)"
    )
    artist: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Artist who performed the service (required)"
    )
    service: ServiceType = Field(
        ...,
        description="Service sold"
    )
    payment_method: PaymentMethod = Field(
        ...,
        description="How the client paid"
    )
    value: Decimal = Field(
        ...,
        description="Amount in BRL, two decimal places"
    )
    obs: str = Field(
        default="",
        max_length=1000,
        description="Free-text note"
    )
    user_id: str = Field(
        ...,
        min_length=1,
        description="Identity of the staff member who submitted the record"
    )

    @field_validator('value', mode='before')
    @classmethod
    def coerce_value(cls, v: Any) -> Decimal:
        """Stored amounts may come back as floats; go through str to keep cents exact."""
        if isinstance(v, bool):
            raise ValueError("Amount must be a number")
        if isinstance(v, float):
            v = str(v)
        try:
            return Decimal(v).quantize(TWO_PLACES)
        except (InvalidOperation, TypeError):
            raise ValueError(f"Invalid amount: {v!r}")

    def to_document(self) -> dict[str, Any]:
        """Convert to the field layout persisted by the stores."""
        return {
            "client_name": self.client_name,
            "artist": self.artist,
            "service": self.service.value,
            "payment_method": self.payment_method.value,
            "value": float(self.value),
            "obs": self.obs,
            "user_id": self.user_id,
        }


class Transaction(NewTransaction):
    """
    A persisted transaction.

    CRITICAL: created_at comes from the store's clock, never the client's.
    Ordering of the ledger is strictly by this field, newest first.
    """

    id: str = Field(
        ...,
        min_length=1,
        description="Store-assigned identifier"
    )
    created_at: datetime = Field(
        ...,
        description="Store-assigned write timestamp (UTC)"
    )

    @field_validator('created_at')
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        """Naive timestamps are UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @property
    def is_reservation(self) -> bool:
        """Deposits are shown with their own badge in the history."""
        return self.service == ServiceType.SINAL_RESERVA

    @property
    def sort_key(self) -> tuple[datetime, str]:
        return (self.created_at, self.id)

    def to_document(self) -> dict[str, Any]:
        document = super().to_document()
        document["id"] = self.id
        document["created_at"] = self.created_at.isoformat()
        return document


class TransactionDraft(BaseModel):
    """
    In-progress form state.

    The value is kept as the display string the user is typing
    (e.g. "1.500,00"); it is converted to a number only on submit.
    """
    model_config = ConfigDict(validate_assignment=True)

    client_name: str = ""
    artist: str = ""
    service: ServiceType = ServiceType.TATUAGEM
    payment_method: PaymentMethod = PaymentMethod.PIX
    value: str = ""
    obs: str = ""

    def clear_entry_fields(self) -> None:
        """Clear the per-client fields; selections stay for the next entry."""
        self.client_name = ""
        self.value = ""
        self.obs = ""


# =============================================================================
# DECODING
# =============================================================================

REQUIRED_DOCUMENT_FIELDS = (
    "id",
    "client_name",
    "artist",
    "service",
    "payment_method",
    "value",
    "created_at",
    "user_id",
)


class DecodeError(ValueError):
    """A store document could not be turned into a Transaction."""

    def __init__(self, message: str, document_id: Optional[str] = None):
        super().__init__(message)
        self.document_id = document_id


def decode_transaction(document: Mapping[str, Any]) -> Transaction:
    """
    Decode a raw store document into a Transaction.

    Raises:
        DecodeError: if any required field is missing or empty, or if a
            value cannot be parsed (unknown service, bad amount, bad date).
    """
    document_id = document.get("id") or None
    missing = [
        name for name in REQUIRED_DOCUMENT_FIELDS
        if document.get(name) is None or document.get(name) == ""
    ]
    if missing:
        raise DecodeError(
            f"Document {document_id or '<no id>'} is missing fields: {', '.join(missing)}",
            document_id=document_id,
        )

    created_at = document["created_at"]
    if isinstance(created_at, str):
        try:
            created_at = datetime.fromisoformat(created_at)
        except ValueError:
            raise DecodeError(
                f"Document {document_id} has an invalid created_at: {created_at!r}",
                document_id=document_id,
            )

    try:
        return Transaction(
            id=str(document["id"]),
            client_name=document["client_name"],
            artist=document["artist"],
            service=document["service"],
            payment_method=document["payment_method"],
            value=document["value"],
            obs=document.get("obs") or "",
            created_at=created_at,
            user_id=str(document["user_id"]),
        )
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise DecodeError(
            f"Document {document_id} has invalid fields: {fields}",
            document_id=document_id,
        ) from e


def sort_newest_first(transactions) -> tuple[Transaction, ...]:
    """Order by store timestamp, newest first. Ties are broken by id."""
    return tuple(sorted(transactions, key=lambda t: t.sort_key, reverse=True))
