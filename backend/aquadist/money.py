# Overview: Currency arithmetic shared by the cart, finalizers, and reports.
"""
Money Invariants (authoritative)

- All amounts are Decimal; storage keeps full precision (Numeric(16, 4)).
- Product prices are stored net of tax.
- Tax is a flat 19% (IVA): tax = subtotal * 0.19, total = subtotal + tax.
- Rounding to the whole currency unit (CLP) happens for display only.
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

TAX_RATE = Decimal("0.19")
ZERO = Decimal("0")


def to_decimal(value) -> Decimal:
    """Coerce int/str/float/Decimal to Decimal. Floats go through str()."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError("amount must be numeric")
    if isinstance(value, float):
        value = str(value)
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError):
        raise ValueError(f"invalid amount: {value!r}")


def tax_for(subtotal) -> Decimal:
    return to_decimal(subtotal) * TAX_RATE


def round_currency(value) -> int:
    """Round half-up to the whole currency unit for display."""
    return int(to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def price_with_tax(net_price) -> Decimal:
    return to_decimal(net_price) * (1 + TAX_RATE)


def net_from_gross(gross_price) -> Decimal:
    """Staff enter tax-inclusive prices; the catalog keeps the rounded net price."""
    return Decimal(round_currency(to_decimal(gross_price) / (1 + TAX_RATE)))


def amount_str(value) -> str | None:
    """Serialize an amount without trailing zeros ("2975.0000" -> "2975")."""
    if value is None:
        return None
    d = to_decimal(value)
    if d == d.to_integral_value():
        return str(d.quantize(Decimal("1")))
    return format(d.normalize(), "f")
