from __future__ import annotations

from decimal import Decimal, InvalidOperation, localcontext

from babel.core import UnknownLocaleError
from babel.numbers import format_currency as _babel_format_currency

DEFAULT_CURRENCY = "INR"
DEFAULT_LOCALE = "en_IN"
DEFAULT_SYMBOL = "₹"

_ZERO = Decimal("0.00")
_CENT = Decimal("0.01")


def to_major_units(amount: int | float | str | None) -> Decimal:
    """Convert an amount in paise to rupees. Unusable input becomes zero."""
    if amount is None:
        return _ZERO
    try:
        value = Decimal(str(amount)) / 100
    except (InvalidOperation, ValueError, TypeError):
        return _ZERO
    if not value.is_finite():
        return _ZERO
    with localcontext() as ctx:
        ctx.prec = 64
        try:
            return value.quantize(_CENT)
        except InvalidOperation:
            return value


def format_currency(
    amount: int | float | str | None,
    currency: str = DEFAULT_CURRENCY,
    locale: str = DEFAULT_LOCALE,
    symbol: str = DEFAULT_SYMBOL,
) -> str:
    """Format paise for display: 500000 -> '₹5,000.00'.

    Never raises. A bad locale or currency configuration falls back to
    '<symbol><amount with 2 decimals>'.
    """
    value = to_major_units(amount)
    try:
        return _babel_format_currency(value, currency, locale=locale, currency_digits=True)
    except (UnknownLocaleError, ValueError, TypeError, AttributeError, ArithmeticError):
        return f"{symbol}{value:.2f}"
