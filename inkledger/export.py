"""
CSV Export

Pure formatting over the list the projection already holds: one
semicolon-delimited row per transaction, Brazilian date and amount
formats, UTF-8 BOM so spreadsheet apps pick up the accents.
"""

from datetime import date, tzinfo
from typing import Iterable, Optional

from inkledger.currency import format_amount
from inkledger.models.transaction import Transaction


CSV_HEADER = "Data;Hora;Cliente;Artista;Serviço;Pagamento;Valor;Obs"
BOM = "\ufeff"


class ExportError(Exception):
    """Nothing to export."""
    pass


def _clean(text: str) -> str:
    # The delimiter and line breaks would break the row
    return text.replace(";", ",").replace("\r\n", " ").replace("\n", " ")


def export_csv(
    transactions: Iterable[Transaction],
    tz: Optional[tzinfo] = None,
) -> str:
    """
    Render the transactions as CSV text, in the order given.

    Raises:
        ExportError: If there are no transactions
    """
    rows = list(transactions)
    if not rows:
        raise ExportError("Não há dados para exportar.")

    lines = [CSV_HEADER]
    for t in rows:
        moment = t.created_at.astimezone(tz)
        lines.append(";".join([
            moment.strftime("%d/%m/%Y"),
            moment.strftime("%H:%M:%S"),
            _clean(t.client_name),
            _clean(t.artist),
            t.service.value,
            t.payment_method.value,
            format_amount(t.value),
            _clean(t.obs),
        ]))
    return BOM + "\n".join(lines) + "\n"


def export_filename(today: date) -> str:
    return f"CAIXA_CASA_INK_{today.strftime('%d-%m-%Y')}.csv"
