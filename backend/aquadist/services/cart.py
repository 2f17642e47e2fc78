# Overview: In-progress cart for one pending sale or delivery, independent of persistence.
"""
Cart Rules (authoritative)

- Lines are kept in insertion order; one line per product.
- unit_price is captured when the line is first added and never refreshed,
  so later catalog price changes do not move an open cart.
- Stock checks here are a guard only. True availability is re-checked by
  the finalizer under the same transaction that writes the order.
- totals() is recomputed on every call; nothing is cached.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable

from ..money import ZERO, amount_str, round_currency, tax_for, to_decimal
from .bottle_ledger import BottleDepositLedger


@dataclass
class CartLine:
    product_id: int
    product_name: str
    unit_price: Decimal
    quantity: int = 1
    affects_bottle_deposit: bool = False

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": amount_str(self.unit_price),
            "line_total": amount_str(self.line_total),
            "affects_bottle_deposit": self.affects_bottle_deposit,
        }


@dataclass(frozen=True)
class CartTotals:
    subtotal: Decimal
    tax: Decimal
    total: Decimal

    def to_dict(self) -> dict:
        return {
            "subtotal": amount_str(self.subtotal),
            "tax": amount_str(self.tax),
            "total": amount_str(self.total),
            "subtotal_display": round_currency(self.subtotal),
            "tax_display": round_currency(self.tax),
            "total_display": round_currency(self.total),
        }


class CartBuilder:
    """
    Mutable list of {product, quantity} lines.

    stock_lookup(product_id) -> on-hand quantity. Without one, stock is
    treated as unlimited (server-side carts attach one only to report shortfalls).
    When a BottleDepositLedger is attached, quantity changes on deposit-bearing
    products are forwarded to it.
    """

    def __init__(
        self,
        stock_lookup: Callable[[int], int] | None = None,
        ledger: BottleDepositLedger | None = None,
    ):
        self.stock_lookup = stock_lookup
        self.ledger = ledger
        self._lines: dict[int, CartLine] = {}

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines.values())

    def __len__(self) -> int:
        return len(self._lines)

    def __bool__(self) -> bool:
        return bool(self._lines)

    def line(self, product_id: int) -> CartLine | None:
        return self._lines.get(product_id)

    def _on_hand(self, product_id: int) -> int | None:
        if self.stock_lookup is None:
            return None
        return self.stock_lookup(product_id)

    def available_stock(self, product_id: int) -> int | None:
        """On-hand minus what this cart already holds; None when unlimited."""
        on_hand = self._on_hand(product_id)
        if on_hand is None:
            return None
        existing = self._lines.get(product_id)
        return on_hand - (existing.quantity if existing else 0)

    def _forward(self, line: CartLine, delta: int) -> None:
        if self.ledger is not None and line.affects_bottle_deposit and delta:
            self.ledger.record_delivery_change(delta)

    def add_line(self, product) -> CartLine | None:
        """
        Add one unit of `product`. Returns the affected line, or None when
        no stock is available (the cart is left untouched).
        """
        available = self.available_stock(product.id)
        if available is not None and available <= 0:
            return None

        line = self._lines.get(product.id)
        if line is None:
            line = CartLine(
                product_id=product.id,
                product_name=product.name,
                unit_price=to_decimal(product.price),
                quantity=1,
                affects_bottle_deposit=bool(getattr(product, "affects_bottle_deposit", False)),
            )
            self._lines[product.id] = line
        else:
            line.quantity += 1

        self._forward(line, 1)
        return line

    def set_line_quantity(self, product_id: int, quantity: int) -> CartLine | None:
        """Quantities below 1 are ignored; the result is capped at on-hand stock."""
        line = self._lines.get(product_id)
        if line is None or quantity < 1:
            return line

        on_hand = self._on_hand(product_id)
        if on_hand is not None:
            quantity = min(quantity, on_hand)
            if quantity < 1:
                return line

        delta = quantity - line.quantity
        line.quantity = quantity
        self._forward(line, delta)
        return line

    def remove_line(self, product_id: int) -> CartLine | None:
        line = self._lines.pop(product_id, None)
        if line is not None:
            self._forward(line, -line.quantity)
        return line

    def clear(self) -> None:
        for product_id in list(self._lines):
            self.remove_line(product_id)

    def totals(self) -> CartTotals:
        subtotal = sum((line.line_total for line in self._lines.values()), ZERO)
        tax = tax_for(subtotal)
        return CartTotals(subtotal=subtotal, tax=tax, total=subtotal + tax)

    def bottle_units(self) -> int:
        return sum(line.quantity for line in self._lines.values() if line.affects_bottle_deposit)

    def to_dict(self) -> dict:
        data = {
            "lines": [line.to_dict() for line in self._lines.values()],
            "totals": self.totals().to_dict(),
        }
        if self.ledger is not None:
            data["bottles"] = self.ledger.to_dict()
        return data
