"""
Currency Value Codec

Converts between amounts and the Brazilian display format
("1.500,00": dot for thousands, comma for decimals).

The editable input works like a cash register: every keystroke is a digit
pushed in from the right, so the digits typed so far are always read as a
whole number of cents. Anything that is not a digit is dropped.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Union

Number = Union[Decimal, float, int]

_NON_DIGITS = re.compile(r"\D")
# Swap the en-US separators produced by format() for pt-BR ones
_TO_BRAZILIAN = str.maketrans({",": ".", ".": ","})


def format_amount(amount: Number) -> str:
    """Render an amount as 1.500,00 (no currency symbol)."""
    if isinstance(amount, float):
        amount = Decimal(str(amount))
    return f"{Decimal(amount):,.2f}".translate(_TO_BRAZILIAN)


def parse_display_input(raw: str) -> str:
    """
    Normalize accumulated keystrokes into the display format.

    "150" -> "1,50", "1.500,001" -> "15.000,01", "" -> "0,00".
    Applying it to its own output returns the same string.
    """
    digits = _NON_DIGITS.sub("", raw or "")
    cents = int(digits) if digits else 0
    return format_amount(Decimal(cents).scaleb(-2))


def to_numeric(display: str) -> Decimal:
    """
    Convert a display string back to a number.

    Blank input is zero. Raises ValueError for text that is not an amount.
    """
    if display is None or not display.strip():
        return Decimal("0")
    canonical = display.strip().replace(".", "").replace(",", ".")
    try:
        return Decimal(canonical)
    except InvalidOperation:
        raise ValueError(f"Not an amount: {display!r}")


def to_display(amount: Number) -> str:
    """Read-only currency rendering: R$ 1.500,00."""
    if isinstance(amount, float):
        amount = Decimal(str(amount))
    amount = Decimal(amount)
    if amount < 0:
        return f"-R$ {format_amount(-amount)}"
    return f"R$ {format_amount(amount)}"
