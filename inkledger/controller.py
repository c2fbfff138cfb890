"""
Transaction Lifecycle Controller

Turns form actions into store writes.

DESIGN DECISION: The controller never touches the projection. A saved
transaction shows up, and a deleted one disappears, only when the store
pushes the next snapshot. That keeps every viewer, including the one who
made the change, on the same code path.

Rules:
- At most one submission in flight per controller; a second submit while
  one is outstanding is a no-op, not queued
- Invalid drafts are declined silently
- Store failures become an alert and leave the draft untouched
- Deletion requires an explicit confirmation
- Nothing is retried automatically
"""

import inspect
from enum import Enum
from typing import Awaitable, Callable, Optional, Union

import structlog
from pydantic import ValidationError

from inkledger import currency
from inkledger.audit import AuditLogger
from inkledger.config import LedgerSettings
from inkledger.models.transaction import NewTransaction, TransactionDraft
from inkledger.services.auth import AuthService
from inkledger.services.storage import StorageError, TransactionStoreInterface
from inkledger.validation import DraftValidator


logger = structlog.get_logger(__name__)

AlertCallback = Callable[[str], None]
ConfirmCallback = Callable[[str], Union[bool, Awaitable[bool]]]

SAVE_FAILED_MESSAGE = "Erro ao salvar transação"
DELETE_FAILED_MESSAGE = "Erro ao apagar registro"
DELETE_CONFIRM_PROMPT = "CONFIRMA A EXCLUSÃO DESTE REGISTRO?"


class SubmitOutcome(str, Enum):
    SAVED = "saved"
    DECLINED = "declined"
    BUSY = "busy"
    FAILED = "failed"


class DeleteOutcome(str, Enum):
    DELETED = "deleted"
    DECLINED = "declined"
    FAILED = "failed"


class TransactionController:
    """
    Validates and submits new transactions, confirms and performs deletions.

    Holds the draft for one form. Artist, service and payment method stay
    selected across submissions so repeated entries are quick.
    """

    def __init__(
        self,
        store: TransactionStoreInterface,
        auth: AuthService,
        settings: LedgerSettings,
        audit_logger: Optional[AuditLogger] = None,
        alert: Optional[AlertCallback] = None,
    ):
        self._store = store
        self._auth = auth
        self._audit_logger = audit_logger
        self._alert = alert
        self._validator = DraftValidator(settings.artist_roster)
        self._submitting = False

        self.draft = TransactionDraft(
            service=settings.default_service,
            payment_method=settings.default_payment_method,
        )
        self.last_error: Optional[str] = None

    @property
    def is_submitting(self) -> bool:
        return self._submitting

    def set_value_input(self, raw: str) -> str:
        """Feed raw keystrokes into the value field and return the normalized display."""
        self.draft.value = currency.parse_display_input(raw)
        return self.draft.value

    async def submit(self) -> SubmitOutcome:
        """
        Submit the current draft.

        Returns:
            SAVED on success, DECLINED if the draft is incomplete or nobody
            is signed in, BUSY if a submission is already outstanding,
            FAILED if the store rejected the write.
        """
        if self._submitting:
            return SubmitOutcome.BUSY

        identity = self._auth.current_identity
        if identity is None:
            return SubmitOutcome.DECLINED

        result = self._validator.validate(self.draft)
        if not result.is_valid:
            logger.debug("submit_declined", fields=sorted(result.fields))
            return SubmitOutcome.DECLINED

        try:
            record = NewTransaction(
                client_name=self.draft.client_name,
                artist=self.draft.artist,
                service=self.draft.service,
                payment_method=self.draft.payment_method,
                value=currency.to_numeric(self.draft.value),
                obs=self.draft.obs,
                user_id=identity.uid,
            )
        except ValidationError as e:
            logger.debug("submit_declined", errors=e.error_count())
            return SubmitOutcome.DECLINED

        self._submitting = True
        try:
            transaction_id = await self._store.append(record)
        except StorageError as e:
            self.last_error = SAVE_FAILED_MESSAGE
            logger.error("transaction_save_failed", error=str(e))
            if self._audit_logger:
                self._audit_logger.log_save_failed(
                    user_id=identity.uid,
                    error_message=str(e),
                )
            self._raise_alert(SAVE_FAILED_MESSAGE)
            return SubmitOutcome.FAILED
        finally:
            self._submitting = False

        self.last_error = None
        if self._audit_logger:
            self._audit_logger.log_transaction_saved(
                transaction_id=transaction_id,
                user_id=identity.uid,
                client_name=record.client_name,
                amount=currency.format_amount(record.value),
            )
        self.draft.clear_entry_fields()
        return SubmitOutcome.SAVED

    async def request_delete(
        self,
        transaction_id: str,
        confirm: ConfirmCallback,
    ) -> DeleteOutcome:
        """
        Delete a transaction after explicit confirmation.

        The local list is not touched: the record disappears when the
        store pushes the post-deletion snapshot.
        """
        answer = confirm(DELETE_CONFIRM_PROMPT)
        if inspect.isawaitable(answer):
            answer = await answer
        if answer is not True:
            return DeleteOutcome.DECLINED

        identity = self._auth.current_identity
        user_id = identity.uid if identity else None
        try:
            await self._store.remove(transaction_id)
        except StorageError as e:
            self.last_error = DELETE_FAILED_MESSAGE
            logger.error(
                "transaction_delete_failed",
                transaction_id=transaction_id,
                error=str(e),
            )
            if self._audit_logger:
                self._audit_logger.log_delete_failed(
                    transaction_id=transaction_id,
                    user_id=user_id,
                    error_message=str(e),
                )
            self._raise_alert(DELETE_FAILED_MESSAGE)
            return DeleteOutcome.FAILED

        self.last_error = None
        if self._audit_logger:
            self._audit_logger.log_transaction_deleted(
                transaction_id=transaction_id,
                user_id=user_id,
            )
        return DeleteOutcome.DELETED

    def _raise_alert(self, message: str) -> None:
        if self._alert is not None:
            self._alert(message)
