"""
Application Context

Ties the components together for one logged-in process.

DESIGN DECISION: There are no module-level handles for the store or the
session. Everything is built explicitly by create_ledger_context() and
torn down with close(). The context also owns the rule that exactly one
live subscription exists per signed-in session: it is torn down and
re-opened on every sign-in / sign-out transition.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

import structlog

from inkledger.audit import AuditLogger
from inkledger.config import LedgerSettings, get_settings
from inkledger.controller import AlertCallback, TransactionController
from inkledger.projection import LiveLedgerProjection
from inkledger.services.auth import AuthError, AuthService, Identity
from inkledger.services.storage import (
    CollectionPath,
    GoogleSheetsClient,
    GoogleSheetsTransactionStore,
    InMemoryTransactionStore,
    TransactionStoreInterface,
)


logger = structlog.get_logger(__name__)


@dataclass
class LedgerContext:
    """Everything one running ledger client needs."""

    settings: LedgerSettings
    store: TransactionStoreInterface
    auth: AuthService
    projection: LiveLedgerProjection
    controller: TransactionController
    audit_logger: AuditLogger
    _detach: list[Callable[[], None]] = field(default_factory=list)
    closed: bool = False

    def bind_session(self) -> None:
        """Follow auth transitions with the projection's subscription."""
        self._detach.append(self.auth.add_listener(self._on_identity_changed))
        if self.auth.current_identity is not None:
            self.projection.start(self.auth.current_identity)

    def _on_identity_changed(self, identity: Optional[Identity]) -> None:
        if identity is None:
            self.projection.stop()
        else:
            self.projection.start(identity)

    def sign_in(
        self,
        passcode: Optional[str] = None,
        display_name: Optional[str] = None,
    ) -> Identity:
        """
        Sign in with the studio passcode, or anonymously when none is configured.

        Raises:
            AuthError: If the passcode is rejected
        """
        try:
            if self.auth.requires_passcode:
                identity = self.auth.sign_in_with_passcode(passcode or "", display_name)
                method = "passcode"
            else:
                identity = self.auth.sign_in_anonymously()
                method = "anonymous"
        except AuthError as e:
            self.audit_logger.log_sign_in_failed(str(e))
            raise
        self.audit_logger.log_signed_in(user_id=identity.uid, method=method)
        return identity

    def sign_out(self) -> None:
        identity = self.auth.current_identity
        self.auth.sign_out()
        if identity is not None:
            self.audit_logger.log_signed_out(user_id=identity.uid)

    def close(self) -> None:
        """Stop the subscription and detach from the session."""
        if self.closed:
            return
        for detach in self._detach:
            detach()
        self._detach.clear()
        self.projection.stop()
        self.closed = True


def build_store(
    settings: LedgerSettings,
    use_sheets: bool = True,
) -> TransactionStoreInterface:
    """
    Create the transaction store.

    Falls back to the in-memory store when Google Sheets is not configured.
    """
    path = CollectionPath(
        app_id=settings.app_id,
        segments=tuple(settings.segments_list),
    )
    if use_sheets:
        try:
            sheets_settings = get_settings().google_sheets
            return GoogleSheetsTransactionStore(
                path=path,
                client=GoogleSheetsClient(sheets_settings),
                poll_interval=sheets_settings.poll_interval_seconds,
            )
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("sheets_not_configured", error=str(e))
    return InMemoryTransactionStore(path=path)


def create_ledger_context(
    settings: Optional[LedgerSettings] = None,
    store: Optional[TransactionStoreInterface] = None,
    alert: Optional[AlertCallback] = None,
    clock: Optional[Callable[[], datetime]] = None,
    use_sheets: bool = True,
) -> LedgerContext:
    """
    Factory function to create all ledger components.

    Args:
        settings: Ledger settings; loaded from the environment if None
        store: Store to use; built from settings if None
        alert: Called with a user-facing message when a write fails
        clock: Viewer clock used to decide what "today" is
        use_sheets: Whether to try Google Sheets when building the store

    Returns:
        A context with its session binding already in place
    """
    settings = settings or get_settings().ledger
    store = store or build_store(settings, use_sheets=use_sheets)
    audit_logger = AuditLogger()
    auth = AuthService(passcode=settings.studio_passcode)

    context = LedgerContext(
        settings=settings,
        store=store,
        auth=auth,
        projection=LiveLedgerProjection(
            store,
            timezone=settings.timezone,
            clock=clock,
            audit_logger=audit_logger,
        ),
        controller=TransactionController(
            store,
            auth,
            settings,
            audit_logger=audit_logger,
            alert=alert,
        ),
        audit_logger=audit_logger,
    )
    context.bind_session()
    return context
