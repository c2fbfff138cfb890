"""
Audit Models for Casa Ink Ledger

Every write, every sign-in transition and every failure of the live
channel produces an audit event. This provides:
1. Traceability of who registered or deleted what
2. Debugging information when the store misbehaves
3. A record of failures the staff only saw as an alert

DESIGN DECISION: Audit events are append-only. We never modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Writes
    TRANSACTION_SAVED = "transaction_saved"
    TRANSACTION_DELETED = "transaction_deleted"
    SAVE_FAILED = "save_failed"
    DELETE_FAILED = "delete_failed"

    # Live channel
    SUBSCRIPTION_STARTED = "subscription_started"
    SUBSCRIPTION_FAILED = "subscription_failed"

    # Session
    SIGNED_IN = "signed_in"
    SIGNED_OUT = "signed_out"
    SIGN_IN_FAILED = "sign_in_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # What is this about?
    entity_id: Optional[str] = Field(
        default=None,
        description="Transaction id the event relates to"
    )
    user_id: Optional[str] = Field(
        default=None,
        description="Identity that triggered the event"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_id": self.entity_id,
            "user_id": self.user_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_saved(transaction_id, user_id, client, amount)
    """

    @staticmethod
    def transaction_saved(
        transaction_id: str,
        user_id: str,
        client_name: str,
        amount: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_SAVED,
            entity_id=transaction_id,
            user_id=user_id,
            description=f"Transaction saved: {client_name} - R$ {amount}",
            details={
                "client_name": client_name,
                "amount": amount,
            },
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: str,
        user_id: Optional[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_id=transaction_id,
            user_id=user_id,
            description=f"Transaction deleted: {transaction_id}",
        )

    @staticmethod
    def save_failed(
        user_id: Optional[str],
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            description="Store rejected a new transaction",
            error_message=error_message,
        )

    @staticmethod
    def delete_failed(
        transaction_id: str,
        user_id: Optional[str],
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DELETE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_id=transaction_id,
            user_id=user_id,
            description=f"Store rejected deletion of {transaction_id}",
            error_message=error_message,
        )

    @staticmethod
    def subscription_started(user_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUBSCRIPTION_STARTED,
            severity=AuditSeverity.DEBUG,
            user_id=user_id,
            description="Live ledger subscription opened",
        )

    @staticmethod
    def subscription_failed(
        user_id: Optional[str],
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUBSCRIPTION_FAILED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            description="Live ledger subscription failed",
            error_message=error_message,
        )

    @staticmethod
    def signed_in(user_id: str, method: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SIGNED_IN,
            user_id=user_id,
            description=f"Signed in ({method})",
            details={"method": method},
        )

    @staticmethod
    def signed_out(user_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SIGNED_OUT,
            user_id=user_id,
            description="Signed out",
        )

    @staticmethod
    def sign_in_failed(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SIGN_IN_FAILED,
            severity=AuditSeverity.WARNING,
            description="Sign-in rejected",
            error_message=error_message,
        )
