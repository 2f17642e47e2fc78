"""
Delivery route tests.

Verifies:
- Routes snapshot the customer's bottle counters when scheduled
- Completing a route moves the customer's bottles_lent
- Edits keep the original snapshot; completed routes are frozen
- Cancel returns stock
"""

from datetime import date
from decimal import Decimal

import pytest

from aquadist.errors import InsufficientStockError
from aquadist.models import DeliveryRoute, DeliveryRouteItem, InventoryMovement
from aquadist.services import delivery_service, inventory_service, order_service
from aquadist.services.order_service import OrderError
from aquadist.validation import ValidationError

ROUTE_DAY = date(2026, 10, 19)


def _schedule(customer, actor, *entries, **kwargs):
    cart = order_service.build_cart([{"product_id": p.id, "quantity": q} for p, q in entries])
    kwargs.setdefault("route_date", ROUTE_DAY)
    return delivery_service.finalize_route(customer.id, cart, kwargs.pop("payment_method", "cash"), actor=actor, **kwargs)


class TestScheduleRoute:

    def test_route_snapshots_bottles(self, db_session, driver, customer, refill):
        result = _schedule(customer, driver, (refill, 3), bottles_to_collect=2)
        route = result.header

        assert route.bottles_in_circulation == 5
        assert route.bottles_to_deliver == 3
        assert route.bottles_to_collect == 2
        assert route.bottles_balance == 6
        assert route.total == Decimal("8925")
        assert route.payment_amount == Decimal("8925")
        assert route.delivery_status == "pending"
        assert route.route_order == 1
        assert inventory_service.get_on_hand(refill.id) == 7

        movements = db_session.query(InventoryMovement).filter_by(reason="delivery_route", reference_id=route.id).all()
        assert [m.quantity_delta for m in movements] == [-3]

    def test_scheduling_does_not_move_customer_counter(self, db_session, driver, customer, refill):
        _schedule(customer, driver, (refill, 3))
        db_session.refresh(customer)
        assert customer.bottles_lent == 5

    def test_route_order_increments_per_day(self, db_session, driver, customer, make_customer, refill):
        other = make_customer("C002")
        first = _schedule(customer, driver, (refill, 1))
        second = _schedule(other, driver, (refill, 1))
        next_day = _schedule(other, driver, (refill, 1), route_date=date(2026, 10, 20))

        assert (first.header.route_order, second.header.route_order) == (1, 2)
        assert next_day.header.route_order == 1
        assert [r.id for r in delivery_service.list_routes(ROUTE_DAY)] == [first.header.id, second.header.id]

    def test_explicit_bottles_to_deliver_overrides_cart(self, db_session, driver, customer, refill, ice):
        result = _schedule(customer, driver, (refill, 2), (ice, 1), bottles_to_deliver=4)
        assert result.header.bottles_to_deliver == 4

    def test_partial_payment_amount(self, db_session, driver, customer, refill):
        result = _schedule(customer, driver, (refill, 1), payment_amount="1000")
        assert result.header.payment_amount == Decimal("1000")

    def test_insufficient_stock_writes_nothing(self, db_session, driver, customer, refill):
        with pytest.raises(InsufficientStockError):
            _schedule(customer, driver, (refill, 11))
        assert db_session.query(DeliveryRoute).count() == 0
        assert db_session.query(DeliveryRouteItem).count() == 0
        assert inventory_service.get_on_hand(refill.id) == 10

    def test_bad_route_date(self, db_session, driver, customer, refill):
        with pytest.raises(ValidationError):
            _schedule(customer, driver, (refill, 1), route_date="19/10/2026")

    def test_negative_bottles_to_collect(self, db_session, driver, customer, refill):
        with pytest.raises(ValidationError):
            _schedule(customer, driver, (refill, 1), bottles_to_collect=-1)


class TestRouteLifecycle:

    def test_complete_updates_bottles_lent(self, db_session, driver, customer, refill):
        result = _schedule(customer, driver, (refill, 3), bottles_to_collect=2)
        route = delivery_service.complete_route(result.header.id, actor=driver)

        assert route.delivery_status == "completed"
        assert route.completed_at is not None
        db_session.refresh(customer)
        assert customer.bottles_lent == 6

    def test_bottles_lent_is_floored_at_zero(self, db_session, driver, make_customer, refill):
        customer = make_customer("C009", bottles_lent=1)
        result = _schedule(customer, driver, (refill, 1), bottles_to_collect=5)
        delivery_service.complete_route(result.header.id, actor=driver)
        db_session.refresh(customer)
        assert customer.bottles_lent == 0

    def test_completed_route_is_frozen(self, db_session, driver, customer, refill):
        result = _schedule(customer, driver, (refill, 1))
        delivery_service.complete_route(result.header.id, actor=driver)

        with pytest.raises(OrderError):
            _schedule(customer, driver, (refill, 2), route_id=result.header.id)
        with pytest.raises(OrderError):
            delivery_service.cancel_route(result.header.id, actor=driver)
        with pytest.raises(OrderError):
            delivery_service.complete_route(result.header.id, actor=driver)

    def test_edit_keeps_snapshot_and_reverses_stock(self, db_session, driver, customer, refill):
        result = _schedule(customer, driver, (refill, 3), bottles_to_collect=2)
        customer.bottles_lent = 40
        db_session.commit()

        edited = _schedule(customer, driver, (refill, 10), route_id=result.header.id, bottles_to_collect=2)

        assert edited.header.id == result.header.id
        assert edited.header.bottles_in_circulation == 5
        assert edited.header.bottles_to_deliver == 10
        assert edited.header.bottles_balance == 13
        assert inventory_service.get_on_hand(refill.id) == 0
        assert inventory_service.verify_ledger() == []

    def test_cancel_returns_stock(self, db_session, driver, customer, refill):
        result = _schedule(customer, driver, (refill, 4))
        route = delivery_service.cancel_route(result.header.id, actor=driver)

        assert route.status == "cancelled"
        assert route.delivery_status == "cancelled"
        assert inventory_service.get_on_hand(refill.id) == 10

    def test_delete_keeps_movements(self, db_session, driver, customer, refill):
        result = _schedule(customer, driver, (refill, 2))
        route_id = result.header.id
        delivery_service.delete_route(route_id)

        assert db_session.query(DeliveryRoute).count() == 0
        assert db_session.query(DeliveryRouteItem).count() == 0
        assert db_session.query(InventoryMovement).filter_by(reference_id=route_id, reason="delivery_route").count() == 1
