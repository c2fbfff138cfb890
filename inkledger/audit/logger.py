"""
Audit Logger

DESIGN DECISION: Every write and every session transition is logged.
This provides:
1. Traceability of who registered or deleted what
2. Debugging capability when the store misbehaves
3. A trail for failures the staff only saw as an alert

The audit logger:
- Gracefully handles failures (never breaks the ledger flow)
- Writes structured JSON lines through structlog
"""

from typing import Optional

import structlog

from inkledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Keeps the most recent events in memory so the UI can show them.
    """

    def __init__(self, history_size: int = 200):
        self._logger = structlog.get_logger("inkledger.audit")
        self._history: list[AuditEvent] = []
        self._history_size = history_size

    @property
    def recent_events(self) -> list[AuditEvent]:
        """Most recent events, newest first."""
        return list(reversed(self._history))

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns False if the event could not be written.
        """
        self._history.append(event)
        del self._history[:-self._history_size]

        log_dict = event.to_log_dict()
        try:
            if event.severity == AuditSeverity.ERROR:
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception as e:
            # Logging must never break the ledger flow
            self._logger.error(
                "audit_log_failed",
                error=str(e),
                event_type=event.event_type.value,
            )
            return False
        return True

    def log_transaction_saved(
        self,
        transaction_id: str,
        user_id: str,
        client_name: str,
        amount: str,
    ) -> None:
        self.log(AuditEventBuilder.transaction_saved(
            transaction_id=transaction_id,
            user_id=user_id,
            client_name=client_name,
            amount=amount,
        ))

    def log_transaction_deleted(
        self,
        transaction_id: str,
        user_id: Optional[str],
    ) -> None:
        self.log(AuditEventBuilder.transaction_deleted(
            transaction_id=transaction_id,
            user_id=user_id,
        ))

    def log_save_failed(self, user_id: Optional[str], error_message: str) -> None:
        self.log(AuditEventBuilder.save_failed(
            user_id=user_id,
            error_message=error_message,
        ))

    def log_delete_failed(
        self,
        transaction_id: str,
        user_id: Optional[str],
        error_message: str,
    ) -> None:
        self.log(AuditEventBuilder.delete_failed(
            transaction_id=transaction_id,
            user_id=user_id,
            error_message=error_message,
        ))

    def log_subscription_started(self, user_id: str) -> None:
        self.log(AuditEventBuilder.subscription_started(user_id=user_id))

    def log_subscription_failed(
        self,
        user_id: Optional[str],
        error_message: str,
    ) -> None:
        self.log(AuditEventBuilder.subscription_failed(
            user_id=user_id,
            error_message=error_message,
        ))

    def log_signed_in(self, user_id: str, method: str) -> None:
        self.log(AuditEventBuilder.signed_in(user_id=user_id, method=method))

    def log_signed_out(self, user_id: str) -> None:
        self.log(AuditEventBuilder.signed_out(user_id=user_id))

    def log_sign_in_failed(self, error_message: str) -> None:
        self.log(AuditEventBuilder.sign_in_failed(error_message=error_message))
