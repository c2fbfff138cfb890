"""
Tests for sign-in handling and the application context.
"""

import asyncio

import pytest

from inkledger.config import LedgerSettings, get_settings, validate_all_settings
from inkledger.context import build_store, create_ledger_context
from inkledger.controller import SubmitOutcome
from inkledger.models.audit import AuditEventType
from inkledger.projection import LedgerState
from inkledger.services.auth import AuthError, AuthService
from inkledger.services.storage import InMemoryTransactionStore


class TestAuthService:
    """Tests for the session holder."""

    def test_starts_signed_out(self):
        """Test that there is no identity before sign-in."""
        assert AuthService().current_identity is None

    def test_anonymous_sign_in(self):
        """Test anonymous sign-in when no passcode is configured."""
        auth = AuthService()
        identity = auth.sign_in_anonymously()
        assert identity.is_anonymous
        assert auth.current_identity == identity

    def test_anonymous_refused_with_passcode(self):
        """Test that a passcode-protected studio refuses anonymous sign-in."""
        auth = AuthService(passcode="tinta")
        with pytest.raises(AuthError):
            auth.sign_in_anonymously()
        assert auth.current_identity is None

    def test_wrong_passcode(self):
        """Test that a wrong passcode is rejected."""
        auth = AuthService(passcode="tinta")
        with pytest.raises(AuthError, match="Senha incorreta"):
            auth.sign_in_with_passcode("errada")

    def test_passcode_sign_in(self):
        """Test a named passcode sign-in."""
        auth = AuthService(passcode="tinta")
        identity = auth.sign_in_with_passcode("tinta", display_name=" Lih ")
        assert not identity.is_anonymous
        assert identity.display_name == "Lih"

    def test_listeners_hear_transitions(self):
        """Test that listeners are told about sign-in and sign-out."""
        auth = AuthService()
        seen = []
        remove = auth.add_listener(seen.append)

        identity = auth.sign_in_anonymously()
        auth.sign_out()
        remove()
        auth.sign_in_anonymously()

        assert seen == [identity, None]

    def test_sign_out_when_signed_out(self):
        """Test that signing out twice notifies once."""
        auth = AuthService()
        seen = []
        auth.add_listener(seen.append)
        auth.sign_out()
        assert seen == []


class TestLedgerContext:
    """Tests for wiring the session to the live subscription."""

    @pytest.fixture
    def context(self, ledger_settings, store, clock):
        context = create_ledger_context(ledger_settings, store=store, clock=clock)
        yield context
        context.close()

    def test_signed_out_is_inert(self, context, store):
        """Test that nothing is subscribed before sign-in."""
        assert store.subscriber_count == 0
        assert context.projection.state == LedgerState.initial()

    def test_sign_in_opens_subscription(self, context, store):
        """Test that signing in starts the live list."""
        identity = context.sign_in(display_name="Jhully")

        assert store.subscriber_count == 1
        assert context.projection.state.loading is False
        events = [e.event_type for e in context.audit_logger.recent_events]
        assert AuditEventType.SIGNED_IN in events
        assert identity.uid == context.auth.current_identity.uid

    def test_sign_out_releases_subscription(self, context, store):
        """Test that signing out stops the live list and resets the view."""
        context.sign_in()
        context.sign_out()

        assert store.subscriber_count == 0
        assert context.projection.state == LedgerState.initial()
        assert context.audit_logger.recent_events[0].event_type == AuditEventType.SIGNED_OUT

    def test_sign_in_again_single_subscription(self, context, store):
        """Test that repeated sign-ins never leave a second subscription open."""
        context.sign_in()
        context.sign_out()
        context.sign_in()
        context.sign_in()

        assert store.subscriber_count == 1

    def test_close_stops_following_session(self, context, store):
        """Test that a closed context ignores later sign-ins."""
        context.sign_in()
        context.close()
        assert store.subscriber_count == 0

        context.auth.sign_in_anonymously()
        assert store.subscriber_count == 0

    def test_wrong_passcode_is_audited(self, store, clock):
        """Test that a rejected sign-in is audited and subscribes nothing."""
        settings = LedgerSettings(studio_passcode="tinta", viewer_timezone=None)
        context = create_ledger_context(settings, store=store, clock=clock)

        with pytest.raises(AuthError):
            context.sign_in(passcode="errada")

        assert store.subscriber_count == 0
        assert context.audit_logger.recent_events[0].event_type == AuditEventType.SIGN_IN_FAILED

        context.sign_in(passcode="tinta")
        assert store.subscriber_count == 1
        context.close()

    @pytest.mark.asyncio
    async def test_submit_reaches_projection(self, context):
        """Test that an entry saved through the context shows up in its own list."""
        context.sign_in()
        controller = context.controller
        controller.draft.client_name = "Ana"
        controller.draft.artist = "Jhully"
        controller.set_value_input("5000")

        assert await controller.submit() == SubmitOutcome.SAVED
        assert [t.client_name for t in context.projection.state.transactions] == ["Ana"]
        assert context.projection.state.transactions[0].user_id == context.auth.current_identity.uid


class TestSessionsOnSharedStore:
    """Tests for several browser sessions sharing one store."""

    @pytest.fixture
    def shared_store(self, clock):
        return InMemoryTransactionStore(clock=clock, latency=0.01)

    @pytest.fixture
    def sessions(self, ledger_settings, shared_store, clock):
        created = []
        for _ in range(2):
            alerts = []
            context = create_ledger_context(
                ledger_settings,
                store=shared_store,
                alert=alerts.append,
                clock=clock,
            )
            context.sign_in()
            created.append((context, alerts))
        yield created
        for context, _ in created:
            context.close()

    def _fill(self, context, client_name):
        context.controller.draft.client_name = client_name
        context.controller.draft.artist = "Jhully"
        context.controller.set_value_input("10000")

    def test_sign_out_is_per_session(self, sessions, shared_store):
        """Test that one session signing out leaves the other live."""
        (first, _), (second, _) = sessions

        first.sign_out()
        first.close()

        assert first.auth.current_identity is None
        assert second.auth.current_identity is not None
        assert second.projection.is_subscribed
        assert shared_store.subscriber_count == 1

    @pytest.mark.asyncio
    async def test_simultaneous_submits_both_land(self, sessions, shared_store):
        """Test that two sessions submitting at once both save their own entry."""
        (first, _), (second, _) = sessions
        self._fill(first, "Ana")
        self._fill(second, "Bia")

        outcomes = await asyncio.gather(
            first.controller.submit(),
            second.controller.submit(),
        )

        assert outcomes == [SubmitOutcome.SAVED, SubmitOutcome.SAVED]
        assert {t.client_name for t in shared_store.snapshot()} == {"Ana", "Bia"}
        for context, _ in sessions:
            assert len(context.projection.state.transactions) == 2
            assert context.controller.draft.client_name == ""

    @pytest.mark.asyncio
    async def test_alerts_stay_in_their_session(self, sessions, shared_store):
        """Test that a failed save alerts only the session that made it."""
        (first, first_alerts), (second, second_alerts) = sessions
        self._fill(first, "Ana")
        self._fill(second, "Bia")
        shared_store.fail_writes = True

        assert await first.controller.submit() == SubmitOutcome.FAILED

        assert len(first_alerts) == 1
        assert second_alerts == []
        assert second.controller.draft.client_name == "Bia"


class TestBuildStore:
    """Tests for choosing the store."""

    def test_in_memory_without_sheets(self, ledger_settings):
        """Test the local store scoped to the configured collection."""
        settings = ledger_settings.model_copy(update={
            "app_id": "studio-2",
            "collection_segments": "private,ledger",
        })
        store = build_store(settings, use_sheets=False)

        assert isinstance(store, InMemoryTransactionStore)
        assert str(store.path) == "artifacts/studio-2/private/ledger"

    def test_falls_back_when_sheets_not_configured(self, ledger_settings, monkeypatch, tmp_path):
        """Test that a missing spreadsheet id means the local store."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("GOOGLE_SHEETS_CREDENTIALS_PATH", "credentials.json")
        monkeypatch.setenv("GOOGLE_SHEETS_SPREADSHEET_ID", "")
        get_settings.cache_clear()

        with pytest.warns(UserWarning):
            store = build_store(ledger_settings)

        assert isinstance(store, InMemoryTransactionStore)
        get_settings.cache_clear()


class TestSettings:
    """Tests for ledger settings."""

    def test_roster_parsing(self):
        """Test that the roster is split and trimmed."""
        settings = LedgerSettings(artists=" Jhully , Aryan,,Lih ")
        assert settings.artist_roster == ["Jhully", "Aryan", "Lih"]

    def test_segments_parsing(self):
        """Test the collection segments list."""
        settings = LedgerSettings(collection_segments="public, data ,transactions")
        assert settings.segments_list == ["public", "data", "transactions"]

    def test_no_timezone_means_local(self):
        """Test that no configured zone means the system local zone."""
        assert LedgerSettings(viewer_timezone=None).timezone is None

    def test_unknown_timezone_rejected(self):
        """Test that a bad zone name fails at startup."""
        with pytest.raises(ValueError):
            LedgerSettings(viewer_timezone="Mars/Olympus_Mons")

    def test_status_report(self, monkeypatch, tmp_path):
        """Test that the status report names the section that failed to load."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)
        get_settings.cache_clear()

        status = validate_all_settings()

        assert status["ledger"] is True
        assert status["google_sheets"] is False
        assert "spreadsheet_id" in status["google_sheets_error"]
        get_settings.cache_clear()
