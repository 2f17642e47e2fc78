"""
Order finalizer tests.

Verifies:
- A finalized sale writes header, items and movements in one unit
- Stock shortfalls abort before anything is written
- Edits return prior items before re-checking availability
- Cancel returns stock; delete does not touch it
"""

from decimal import Decimal

import pytest

from aquadist.errors import InsufficientStockError, NotFoundError
from aquadist.models import Order, OrderItem, InventoryMovement
from aquadist.services import inventory_service, order_service
from aquadist.services.cart import CartLine
from aquadist.services.order_service import OrderError
from aquadist.validation import ValidationError


def _cart(*entries):
    return order_service.build_cart([{"product_id": p.id, "quantity": q} for p, q in entries])


class TestFinalizeOrder:

    def test_finalize_writes_header_items_and_movements(self, db_session, seller, customer, water, ice):
        result = order_service.finalize_order(
            customer.id, _cart((water, 2), (ice, 1)), "cash", "in_person", actor=seller,
        )

        order = result.header
        assert order.subtotal == Decimal("2500")
        assert order.tax == Decimal("475")
        assert order.total_amount == Decimal("2975")
        assert order.status == "confirmed"
        assert order.payment_status == "paid"
        assert order.created_by_user_id == seller.id
        assert [i.product_id for i in result.items] == [water.id, ice.id]

        movements = (
            db_session.query(InventoryMovement)
            .filter_by(reason="order", reference_id=order.id)
            .order_by(InventoryMovement.id)
            .all()
        )
        assert [m.quantity_delta for m in movements] == [-2, -1]
        assert inventory_service.get_on_hand(water.id) == 8
        assert inventory_service.get_on_hand(ice.id) == 4

    def test_pending_payment_method_marks_payment_pending(self, db_session, seller, customer, water):
        result = order_service.finalize_order(customer.id, _cart((water, 1)), "pending", "in_person", actor=seller)
        assert result.header.payment_status == "pending"

    def test_insufficient_stock_writes_nothing(self, db_session, seller, customer, water, ice):
        with pytest.raises(InsufficientStockError) as exc:
            order_service.finalize_order(customer.id, _cart((water, 2), (ice, 6)), "cash", "in_person", actor=seller)

        assert exc.value.details["requested"] == 6
        assert exc.value.details["available"] == 5
        assert db_session.query(Order).count() == 0
        assert db_session.query(OrderItem).count() == 0
        assert db_session.query(InventoryMovement).filter_by(reason="order").count() == 0
        assert inventory_service.get_on_hand(water.id) == 10

    def test_split_lines_for_one_product_are_checked_together(self, db_session, seller, customer, ice):
        lines = [
            CartLine(ice.id, ice.name, Decimal("500"), 3),
            CartLine(ice.id, ice.name, Decimal("500"), 3),
        ]
        with pytest.raises(InsufficientStockError) as exc:
            order_service.finalize_order(customer.id, lines, "cash", "in_person", actor=seller)

        assert exc.value.details["product_id"] == ice.id
        assert exc.value.details["requested"] == 6
        assert exc.value.details["available"] == 5
        assert db_session.query(Order).count() == 0
        assert db_session.query(InventoryMovement).filter_by(reason="order").count() == 0
        assert inventory_service.get_on_hand(ice.id) == 5

    def test_missing_customer_rejected(self, db_session, water):
        with pytest.raises(ValidationError):
            order_service.finalize_order(None, _cart((water, 1)), "cash", "in_person")

    def test_unknown_customer_rejected(self, db_session, water):
        with pytest.raises(ValidationError):
            order_service.finalize_order(9999, _cart((water, 1)), "cash", "in_person")
        assert db_session.query(Order).count() == 0

    def test_empty_cart_rejected(self, db_session, customer):
        with pytest.raises(ValidationError):
            order_service.finalize_order(customer.id, [], "cash", "in_person")

    def test_unknown_payment_method_rejected(self, db_session, customer, water):
        with pytest.raises(ValidationError):
            order_service.finalize_order(customer.id, _cart((water, 1)), "bitcoin", "in_person")

    def test_inactive_product_cannot_be_sold(self, db_session, make_product):
        product = make_product("OLD", 100, stock=3, is_active=False)
        with pytest.raises(ValidationError):
            order_service.build_cart([{"product_id": product.id, "quantity": 1}])

    def test_duplicate_entries_merge_into_one_line(self, db_session, water):
        cart = order_service.build_cart([
            {"product_id": water.id, "quantity": 1},
            {"product_id": water.id, "quantity": 2},
        ])
        assert len(cart) == 1
        assert cart.line(water.id).quantity == 3


class TestEditOrder:

    def test_edit_returns_prior_items_before_checking_stock(self, db_session, seller, customer, water):
        first = order_service.finalize_order(customer.id, _cart((water, 8)), "cash", "in_person", actor=seller)
        assert inventory_service.get_on_hand(water.id) == 2

        # 10 units only fit because the order's own 8 go back first
        cart = order_service.build_cart(
            [{"product_id": water.id, "quantity": 10}], prior_items=list(first.header.items),
        )
        edited = order_service.finalize_order(
            customer.id, cart, "cash", "in_person", actor=seller, order_id=first.header.id,
        )

        assert edited.header.id == first.header.id
        assert edited.header.total_amount == Decimal("11900")
        assert inventory_service.get_on_hand(water.id) == 0
        assert db_session.query(OrderItem).filter_by(order_id=first.header.id).count() == 1
        returns = db_session.query(InventoryMovement).filter_by(direction="return", reference_id=first.header.id).all()
        assert [m.quantity_delta for m in returns] == [8]
        assert inventory_service.verify_ledger() == []

    def test_failed_edit_keeps_original_order(self, db_session, seller, customer, water):
        first = order_service.finalize_order(customer.id, _cart((water, 3)), "cash", "in_person", actor=seller)
        order_id = first.header.id

        cart = order_service.build_cart([{"product_id": water.id, "quantity": 11}])
        with pytest.raises(InsufficientStockError):
            order_service.finalize_order(customer.id, cart, "cash", "in_person", actor=seller, order_id=order_id)

        db_session.expire_all()
        assert db_session.query(OrderItem).filter_by(order_id=order_id).one().quantity == 3
        assert inventory_service.get_on_hand(water.id) == 7

    def test_edit_keeps_captured_price(self, db_session, seller, customer, water):
        first = order_service.finalize_order(customer.id, _cart((water, 1)), "cash", "in_person", actor=seller)
        water.price = Decimal("2000")
        db_session.commit()

        cart = order_service.build_cart(
            [{"product_id": water.id, "quantity": 2}], prior_items=list(first.header.items),
        )
        edited = order_service.finalize_order(
            customer.id, cart, "cash", "in_person", actor=seller, order_id=first.header.id,
        )
        assert edited.header.subtotal == Decimal("2000")

    def test_cancelled_order_cannot_be_edited(self, db_session, seller, customer, water):
        first = order_service.finalize_order(customer.id, _cart((water, 1)), "cash", "in_person", actor=seller)
        order_service.cancel_order(first.header.id, actor=seller)
        with pytest.raises(OrderError):
            order_service.finalize_order(
                customer.id, _cart((water, 1)), "cash", "in_person", actor=seller, order_id=first.header.id,
            )


class TestCancelAndDelete:

    def test_cancel_returns_stock(self, db_session, seller, customer, water, ice):
        result = order_service.finalize_order(customer.id, _cart((water, 2), (ice, 1)), "cash", "in_person", actor=seller)
        order = order_service.cancel_order(result.header.id, actor=seller)

        assert order.status == "cancelled"
        assert order.cancelled_by_user_id == seller.id
        assert inventory_service.get_on_hand(water.id) == 10
        assert inventory_service.get_on_hand(ice.id) == 5

    def test_cancel_twice_rejected(self, db_session, seller, customer, water):
        result = order_service.finalize_order(customer.id, _cart((water, 1)), "cash", "in_person", actor=seller)
        order_service.cancel_order(result.header.id, actor=seller)
        with pytest.raises(OrderError):
            order_service.cancel_order(result.header.id, actor=seller)

    def test_delete_removes_items_but_not_movements(self, db_session, seller, customer, water):
        result = order_service.finalize_order(customer.id, _cart((water, 2)), "cash", "in_person", actor=seller)
        order_id = result.header.id

        order_service.delete_order(order_id)

        assert db_session.query(Order).count() == 0
        assert db_session.query(OrderItem).count() == 0
        assert db_session.query(InventoryMovement).filter_by(reason="order", reference_id=order_id).count() == 1
        assert inventory_service.get_on_hand(water.id) == 8

    def test_delete_unknown_order(self, db_session):
        with pytest.raises(NotFoundError):
            order_service.delete_order(12345)


class TestQuoteCart:

    def test_quote_reports_shortfalls_and_bottles(self, db_session, customer, refill, ice):
        data = order_service.quote_cart(
            [{"product_id": refill.id, "quantity": 3}, {"product_id": ice.id, "quantity": 9}],
            customer_id=customer.id,
            bottles_to_collect=2,
        )
        assert data["totals"]["subtotal"] == "12000"
        assert data["bottles"]["bottles_to_deliver"] == 3
        assert data["bottles"]["bottles_balance"] == 6
        assert data["shortfalls"] == [{"product_id": ice.id, "requested": 9, "available": 5}]
        assert db_session.query(Order).count() == 0

    def test_quote_at_exact_stock_has_no_shortfall(self, db_session, ice, make_product):
        empty = make_product("EMPTY", 300)
        data = order_service.quote_cart([
            {"product_id": ice.id, "quantity": 5},
            {"product_id": empty.id, "quantity": 1},
        ])
        assert data["shortfalls"] == [{"product_id": empty.id, "requested": 1, "available": 0}]
        assert [line["quantity"] for line in data["lines"]] == [5, 1]
