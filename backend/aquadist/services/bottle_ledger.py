# Overview: Returnable-container (botellón) accounting for one customer in one delivery.
"""
balance = bottles_in_circulation + bottles_to_deliver - bottles_to_collect

bottles_in_circulation and bottles_owned are value copies of the customer's
live counters taken when the ledger is created. They are persisted on the
delivery route as-is and never recomputed.
"""
from __future__ import annotations

from dataclasses import dataclass

from ..validation import ValidationError


@dataclass
class BottleDepositLedger:
    bottles_in_circulation: int = 0
    bottles_owned: int = 0
    bottles_to_deliver: int = 0
    bottles_to_collect: int = 0

    @classmethod
    def from_customer(cls, customer) -> "BottleDepositLedger":
        return cls(
            bottles_in_circulation=int(customer.bottles_lent or 0),
            bottles_owned=int(customer.bottles_owned or 0),
        )

    @classmethod
    def from_route(cls, route) -> "BottleDepositLedger":
        """Restore the figures stored on a delivery route (edit mode)."""
        return cls(
            bottles_in_circulation=route.bottles_in_circulation,
            bottles_owned=route.bottles_owned,
            bottles_to_deliver=route.bottles_to_deliver,
            bottles_to_collect=route.bottles_to_collect,
        )

    def record_delivery_change(self, delta: int) -> int:
        self.bottles_to_deliver = max(0, self.bottles_to_deliver + delta)
        return self.bottles_to_deliver

    def set_bottles_to_deliver(self, n: int) -> None:
        if n < 0:
            raise ValidationError("bottles_to_deliver must be >= 0")
        self.bottles_to_deliver = n

    def set_bottles_to_collect(self, n: int) -> None:
        if n < 0:
            raise ValidationError("bottles_to_collect must be >= 0")
        self.bottles_to_collect = n

    @property
    def balance(self) -> int:
        return self.bottles_in_circulation + self.bottles_to_deliver - self.bottles_to_collect

    def route_fields(self) -> dict:
        """Column values persisted on the DeliveryRoute header."""
        return {
            "bottles_in_circulation": self.bottles_in_circulation,
            "bottles_owned": self.bottles_owned,
            "bottles_to_deliver": self.bottles_to_deliver,
            "bottles_to_collect": self.bottles_to_collect,
            "bottles_balance": self.balance,
        }

    def to_dict(self) -> dict:
        return self.route_fields()
