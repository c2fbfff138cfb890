"""
Streamlit Frontend for Casa Ink Ledger

The screen the studio staff keep open at the counter all day.

DESIGN PRINCIPLES:
1. One form, one list, one big number (today's total)
2. Repeated entries are fast: artist, service and payment stay selected
3. Deleting always asks for confirmation
4. Failures are shown, never crash the page

The ledger core runs on its own event loop in a background thread so the
live subscription keeps receiving snapshots between Streamlit reruns.
The loop and the store are shared by the whole server process; every
browser session gets its own ledger context (sign-in, draft, live list,
alerts). The page only reads the immutable ledger state.
"""

import asyncio
import threading

import streamlit as st

from inkledger.config import get_settings, validate_all_settings
from inkledger.context import LedgerContext, build_store, create_ledger_context
from inkledger.controller import DeleteOutcome, SubmitOutcome
from inkledger.currency import parse_display_input, to_display
from inkledger.export import ExportError, export_csv, export_filename
from inkledger.models.transaction import PaymentMethod, ServiceType
from inkledger.services.auth import AuthError


# How often the live parts of the page re-read the ledger state
LIVE_REFRESH_SECONDS = 2


# Page configuration
st.set_page_config(
    page_title="A Casa Ink - Gestão Financeira",
    page_icon="💀",
    layout="centered",
)

# Custom CSS: black and white with a magenta total
st.markdown("""
<style>
    .stApp { background-color: #000000; color: #ffffff; }
    .day-total {
        font-size: 3.5em;
        font-weight: 900;
        color: #ec008c;
        text-shadow: 0 0 15px rgba(236, 0, 140, 0.4);
        line-height: 1;
    }
    .day-total-label {
        font-size: 0.7em;
        font-weight: bold;
        letter-spacing: 0.3em;
        color: #71717a;
        text-transform: uppercase;
    }
    .entry-badge {
        display: inline-block;
        width: 2.5em;
        text-align: center;
        border: 1px solid #3f3f46;
        font-weight: 900;
    }
</style>
""", unsafe_allow_html=True)


class LedgerRuntime:
    """
    Process-wide pieces: the event loop thread and the shared store.

    Sessions, drafts and alerts are per browser session, see get_session().
    """

    def __init__(self):
        self.loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self.loop.run_forever, daemon=True)
        self._thread.start()
        self.settings = get_settings().ledger
        self.store = self.call(build_store, self.settings)

    def run(self, coro):
        """Run a coroutine on the ledger loop and wait for its result."""
        return asyncio.run_coroutine_threadsafe(coro, self.loop).result()

    def call(self, fn, *args, **kwargs):
        """Run a plain function on the ledger loop and wait for its result."""
        async def invoke():
            return fn(*args, **kwargs)
        return self.run(invoke())


class LedgerSession:
    """One browser session: its own sign-in, draft, live list and alerts."""

    def __init__(self, runtime: LedgerRuntime):
        self.runtime = runtime
        self.alerts: list[str] = []
        self.context: LedgerContext = runtime.call(
            create_ledger_context,
            settings=runtime.settings,
            store=runtime.store,
            alert=self.alerts.append,
        )

    def run(self, coro):
        return self.runtime.run(coro)

    def call(self, fn, *args, **kwargs):
        return self.runtime.call(fn, *args, **kwargs)

    def pop_alerts(self) -> list[str]:
        alerts, self.alerts[:] = list(self.alerts), []
        return alerts

    def close(self) -> None:
        self.call(self.context.close)


@st.cache_resource
def get_runtime() -> LedgerRuntime:
    """Get or create the ledger runtime (cached for the server process)."""
    return LedgerRuntime()


def get_session() -> LedgerSession:
    """Get or create the ledger session of the current browser session."""
    if "ledger_session" not in st.session_state:
        st.session_state.ledger_session = LedgerSession(get_runtime())
    return st.session_state.ledger_session


def end_session(session: LedgerSession):
    """Sign out, release the live subscription and forget the session."""
    session.call(session.context.sign_out)
    session.close()
    del st.session_state.ledger_session
    st.session_state.pop("pending_delete", None)


def main():
    """Main application entry point."""
    session = get_session()
    context = session.context

    render_status()

    if context.auth.current_identity is None:
        render_login(session)
        return

    render_header(session)
    render_entry_form(session)
    render_history(session)


def render_status():
    """Render the connection status in the sidebar."""
    status = validate_all_settings()
    with st.sidebar:
        st.markdown("### Status")
        if status.get("google_sheets", False):
            st.success("✅ Google Sheets - Conectado")
        else:
            error = status.get("google_sheets_error", "Não configurado")
            st.warning(f"⚠️ Google Sheets - {error}")
            st.caption("Os registros ficam só na memória deste servidor.")
        if not status.get("ledger", False):
            st.error(f"❌ Configuração do caixa - {status.get('ledger_error')}")


def render_login(session: LedgerSession):
    """Render the sign-in screen."""
    context = session.context
    st.title("A CASA INK")
    st.caption("GESTÃO FINANCEIRA")

    with st.form("login"):
        name = st.text_input("Seu nome (opcional)")
        passcode = ""
        if context.auth.requires_passcode:
            passcode = st.text_input("Senha do estúdio", type="password")
        submitted = st.form_submit_button("ENTRAR", type="primary")

    if submitted:
        try:
            session.call(context.sign_in, passcode=passcode, display_name=name)
            st.rerun()
        except AuthError as e:
            # Inline message, the form stays editable
            st.error(str(e))


def render_header(session: LedgerSession):
    """Render today's total and the export / sign-out actions."""
    context = session.context
    state = context.projection.state

    col1, col2 = st.columns([3, 2])
    with col1:
        st.markdown("## A CASA **INK**")
        st.caption("GESTÃO FINANCEIRA")
    with col2:
        render_day_total(session)

    col1, col2 = st.columns(2)
    with col1:
        try:
            data = export_csv(state.transactions, context.settings.timezone)
            st.download_button(
                "⬇ Exportar CSV",
                data=data.encode("utf-8"),
                file_name=export_filename(context.projection.today()),
                mime="text/csv",
            )
        except ExportError as e:
            st.caption(str(e))
    with col2:
        if st.button("Sair"):
            end_session(session)
            st.rerun()


@st.fragment(run_every=LIVE_REFRESH_SECONDS)
def render_day_total(session: LedgerSession):
    """Render today's total; re-evaluated so it rolls over at midnight."""
    projection = session.context.projection
    session.call(projection.refresh_day_total)
    st.markdown('<div class="day-total-label">Total hoje</div>', unsafe_allow_html=True)
    st.markdown(
        f'<div class="day-total">{to_display(projection.state.day_total)}</div>',
        unsafe_allow_html=True,
    )


def render_entry_form(session: LedgerSession):
    """Render the new-entry form."""
    context = session.context
    controller = context.controller
    draft = controller.draft
    roster = context.settings.artist_roster

    st.markdown("---")
    st.subheader("➕ NOVA ENTRADA")

    with st.form("entry", clear_on_submit=False):
        col1, col2 = st.columns(2)
        with col1:
            client_name = st.text_input(
                "Cliente *",
                value=draft.client_name,
                placeholder="NOME DO CLIENTE",
            )
        with col2:
            value = st.text_input(
                "Valor (R$) *",
                value=draft.value,
                placeholder="0,00",
                help="Digite só os números: 150000 vira 1.500,00",
            )

        col1, col2 = st.columns(2)
        with col1:
            artist = st.selectbox(
                "Artista *",
                options=roster,
                index=roster.index(draft.artist) if draft.artist in roster else None,
                placeholder="SELECIONE O ARTISTA",
                format_func=str.upper,
            )
        with col2:
            services = list(ServiceType)
            service = st.selectbox(
                "Serviço",
                options=services,
                index=services.index(draft.service),
                format_func=lambda s: s.label,
            )

        col1, col2 = st.columns(2)
        with col1:
            methods = list(PaymentMethod)
            payment_method = st.selectbox(
                "Pagamento",
                options=methods,
                index=methods.index(draft.payment_method),
                format_func=lambda m: m.label,
            )
        with col2:
            obs = st.text_input(
                "OBS (opcional)",
                value=draft.obs,
                placeholder="EX: PARCELOU EM 10X",
            )

        submitted = st.form_submit_button(
            "REGISTRANDO..." if controller.is_submitting else "REGISTRAR ENTRADA",
            type="primary",
            disabled=controller.is_submitting,
        )

    if submitted:
        draft.client_name = client_name
        draft.artist = artist or ""
        draft.service = service
        draft.payment_method = payment_method
        draft.value = parse_display_input(value)
        draft.obs = obs

        outcome = session.run(controller.submit())
        for message in session.pop_alerts():
            st.error(message)
        if outcome == SubmitOutcome.BUSY:
            st.info("Aguarde, a entrada anterior ainda está sendo registrada.")
        elif outcome == SubmitOutcome.SAVED:
            st.rerun()


@st.fragment(run_every=LIVE_REFRESH_SECONDS)
def render_history(session: LedgerSession):
    """Render the live transaction list."""
    context = session.context
    state = context.projection.state

    st.markdown("---")
    st.subheader("🕘 HISTÓRICO")

    if state.error:
        st.warning(f"Não foi possível atualizar a lista: {state.error}")

    if state.loading:
        st.info("Carregando...")
        return

    if not state.transactions:
        st.caption("Nenhum movimento registrado hoje.")
        return

    tz = context.settings.timezone
    pending = st.session_state.get("pending_delete")

    for t in state.transactions:
        moment = t.created_at.astimezone(tz)
        col1, col2, col3 = st.columns([1, 6, 3])
        with col1:
            st.markdown(
                f'<span class="entry-badge">{"R" if t.is_reservation else "T"}</span>',
                unsafe_allow_html=True,
            )
        with col2:
            st.markdown(f"**{t.client_name.upper()}**")
            details = f"{t.artist.upper()} • {t.service.label} • {t.payment_method.label}"
            if t.obs:
                details += f" • {t.obs}"
            st.caption(details)
        with col3:
            st.markdown(f"**{to_display(t.value)}**")
            st.caption(moment.strftime("%d/%m/%Y • %H:%M"))

            if pending == t.id:
                st.caption("CONFIRMA A EXCLUSÃO DESTE REGISTRO?")
                if st.button("Sim, apagar", key=f"confirm-{t.id}"):
                    st.session_state.pending_delete = None
                    outcome = session.run(
                        context.controller.request_delete(t.id, confirm=lambda _: True)
                    )
                    for message in session.pop_alerts():
                        st.error(message)
                    if outcome == DeleteOutcome.DELETED:
                        st.rerun()
                if st.button("Cancelar", key=f"cancel-{t.id}"):
                    st.session_state.pending_delete = None
                    st.rerun()
            elif st.button("🗑", key=f"delete-{t.id}", help="Apagar registro"):
                st.session_state.pending_delete = t.id
                st.rerun()


if __name__ == "__main__":
    main()
