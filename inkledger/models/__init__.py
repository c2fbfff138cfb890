"""
Data Models Package

This package contains all Pydantic models used in Casa Ink Ledger.
Everything read from or written to the store goes through these schemas.
"""

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
from inkledger.models.validation import ValidationIssue, ValidationResult
from inkledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Transaction models
    "DecodeError",
    "NewTransaction",
    "PaymentMethod",
    "ServiceType",
    "Transaction",
    "TransactionDraft",
    "decode_transaction",
    "sort_newest_first",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
