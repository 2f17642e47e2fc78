"""
Cart and bottle-deposit tests.

Verifies:
- Lines are priced when added and capped at on-hand stock
- Totals add 19% tax and display rounded half-up
- Refill quantity changes feed the bottle ledger
"""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from aquadist.money import round_currency, net_from_gross
from aquadist.services.bottle_ledger import BottleDepositLedger
from aquadist.services.cart import CartBuilder
from aquadist.validation import ValidationError


def _product(pid, price, name=None, deposit=False):
    return SimpleNamespace(
        id=pid,
        name=name or f"Product {pid}",
        price=Decimal(str(price)),
        affects_bottle_deposit=deposit,
    )


class TestCartBuilder:

    def test_totals_for_mixed_cart(self):
        cart = CartBuilder()
        cart.add_line(_product(1, 1000))
        cart.set_line_quantity(1, 2)
        cart.add_line(_product(2, 500))

        totals = cart.totals()
        assert totals.subtotal == Decimal("2500")
        assert totals.tax == Decimal("475")
        assert totals.total == Decimal("2975")
        assert [line.product_id for line in cart.lines] == [1, 2]

    def test_add_line_without_stock_is_refused(self):
        stock = {1: 0}
        cart = CartBuilder(stock_lookup=stock.get)
        assert cart.add_line(_product(1, 1000)) is None
        assert len(cart) == 0

    def test_add_line_stops_at_on_hand(self):
        stock = {1: 2}
        cart = CartBuilder(stock_lookup=stock.get)
        product = _product(1, 1000)
        cart.add_line(product)
        cart.add_line(product)
        assert cart.add_line(product) is None
        assert cart.line(1).quantity == 2

    def test_set_quantity_is_capped_at_stock(self):
        stock = {1: 3}
        cart = CartBuilder(stock_lookup=stock.get)
        cart.add_line(_product(1, 1000))
        cart.set_line_quantity(1, 10)
        assert cart.line(1).quantity == 3

    def test_set_quantity_below_one_is_ignored(self):
        cart = CartBuilder()
        cart.add_line(_product(1, 1000))
        cart.set_line_quantity(1, 4)
        cart.set_line_quantity(1, 0)
        assert cart.line(1).quantity == 4

    def test_unit_price_is_captured_when_added(self):
        product = _product(1, 1000)
        cart = CartBuilder()
        cart.add_line(product)
        product.price = Decimal("1500")
        cart.add_line(product)
        assert cart.line(1).unit_price == Decimal("1000")
        assert cart.totals().subtotal == Decimal("2000")

    def test_remove_and_clear(self):
        cart = CartBuilder()
        cart.add_line(_product(1, 1000))
        cart.add_line(_product(2, 500))
        cart.remove_line(1)
        assert [line.product_id for line in cart.lines] == [2]
        cart.clear()
        assert not cart
        assert cart.totals().total == Decimal("0")

    def test_to_dict_rounds_display_amounts(self):
        cart = CartBuilder()
        cart.add_line(_product(1, "999.5"))
        data = cart.to_dict()
        assert data["totals"]["subtotal"] == "999.5"
        # 999.5 * 1.19 = 1189.405
        assert data["totals"]["total_display"] == 1189
        assert data["lines"][0]["line_total"] == "999.5"


class TestBottleDepositLedger:

    def test_balance_from_customer_snapshot(self):
        customer = SimpleNamespace(bottles_lent=5, bottles_owned=2)
        ledger = BottleDepositLedger.from_customer(customer)
        ledger.set_bottles_to_deliver(3)
        ledger.set_bottles_to_collect(2)
        assert ledger.balance == 6
        assert ledger.route_fields()["bottles_owned"] == 2

    def test_refill_lines_feed_the_ledger(self):
        ledger = BottleDepositLedger(bottles_in_circulation=5)
        cart = CartBuilder(ledger=ledger)
        cart.add_line(_product(1, 2500, deposit=True))
        cart.set_line_quantity(1, 3)
        cart.add_line(_product(2, 500))
        assert ledger.bottles_to_deliver == 3
        assert cart.bottle_units() == 3

        cart.remove_line(1)
        assert ledger.bottles_to_deliver == 0

    def test_delivery_change_never_goes_negative(self):
        ledger = BottleDepositLedger(bottles_to_deliver=1)
        assert ledger.record_delivery_change(-5) == 0

    @pytest.mark.parametrize("setter", ["set_bottles_to_deliver", "set_bottles_to_collect"])
    def test_negative_counts_rejected(self, setter):
        ledger = BottleDepositLedger()
        with pytest.raises(ValidationError):
            getattr(ledger, setter)(-1)


class TestMoney:

    @pytest.mark.parametrize("value,expected", [("0.5", 1), ("1.49", 1), ("2.5", 3), ("475.0000", 475)])
    def test_round_half_up(self, value, expected):
        assert round_currency(value) == expected

    def test_net_from_gross(self):
        assert net_from_gross(1190) == Decimal("1000")
