# Overview: Service-layer operations for delivery routes (scheduled order variant with bottle logistics).
"""
Delivery Route Rules (authoritative)

- Finalizing a route follows the order finalizer contract (same
  preconditions, one transaction, edit = reverse then replace) with
  DeliveryRouteItems and reason="delivery_route" movements.
- Bottle snapshots (bottles_in_circulation, bottles_owned) are copied from
  the customer when the route is created. Editing a route keeps the
  original snapshots.
- bottles_to_deliver defaults to the quantity of deposit-bearing lines.
- The customer's live bottles_lent only moves when the route is completed:
  bottles_lent += bottles_to_deliver - bottles_to_collect (floored at 0).
- Completed routes cannot be edited or cancelled.
"""
from __future__ import annotations

from datetime import date

from flask import current_app

from ..errors import NotFoundError
from ..models.delivery import SALE_TYPES
from ..money import to_decimal
from ..time_utils import parse_iso_date, utcnow
from ..validation import ValidationError, require_positive_int
from .bottle_ledger import BottleDepositLedger
from .datastore import DataStore, get_store
from .order_service import (
    FinalizedOrder,
    OrderError,
    as_lines,
    check_availability,
    check_payment_method,
    check_preconditions,
    load_customer,
    payment_status_for,
    return_items,
    run_unit,
    take_items,
    totals_for,
)


class FinalizedRoute(FinalizedOrder):
    pass


def _coerce_date(value) -> date:
    if isinstance(value, date):
        return value
    try:
        parsed = parse_iso_date(value) if isinstance(value, str) else None
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError("route_date must be an ISO-8601 date")
    return parsed


def _get_route(store: DataStore, route_id: int):
    route = store.delivery_routes.get(route_id)
    if route is None:
        raise NotFoundError("Delivery route not found", details={"route_id": route_id})
    return route


def next_route_order(route_date: date, *, store: DataStore | None = None) -> int:
    last = get_store(store).delivery_routes.first({"route_date": route_date}, order_by="-route_order")
    return (last.route_order + 1) if last else 1


def finalize_route(
    customer_id: int,
    lines,
    payment_method: str,
    actor=None,
    route_date=None,
    route_order: int | None = None,
    bottles_to_collect: int = 0,
    bottles_to_deliver: int | None = None,
    observation: str | None = None,
    payment_amount=None,
    route_id: int | None = None,
    sale_type: str = "scheduled",
    *,
    store: DataStore | None = None,
) -> FinalizedRoute:
    store = get_store(store)
    lines = as_lines(lines)
    customer_id = check_preconditions(customer_id, lines)
    check_payment_method(payment_method)
    if sale_type not in SALE_TYPES:
        raise ValidationError(f"sale_type must be one of: {', '.join(SALE_TYPES)}")

    route_date = _coerce_date(route_date if route_date is not None else date.today())
    if route_order is not None:
        route_order = require_positive_int(route_order, "route_order")
    bottles_to_collect = require_positive_int(bottles_to_collect or 0, "bottles_to_collect", allow_zero=True)
    if bottles_to_deliver is None:
        bottles_to_deliver = sum(line.quantity for line in lines if line.affects_bottle_deposit)
    bottles_to_deliver = require_positive_int(bottles_to_deliver, "bottles_to_deliver", allow_zero=True)

    actor_id = actor.id if actor is not None else None

    def _op():
        with store.transaction():
            customer = load_customer(store, customer_id)

            if route_id is not None:
                route = _get_route(store, route_id)
                if route.status == "cancelled" or route.delivery_status != "pending":
                    raise OrderError(
                        "Only pending delivery routes can be edited",
                        details={"route_id": route_id, "delivery_status": route.delivery_status},
                    )
                if route.customer_id == customer_id:
                    ledger = BottleDepositLedger.from_route(route)
                else:
                    ledger = BottleDepositLedger.from_customer(customer)
                return_items(store, list(route.items), "delivery_route", route.id, actor_id, f"Route {route.id} edited")
                store.delivery_route_items.delete_where({"delivery_route_id": route.id})
                store.session.expire(route, ["items"])
            else:
                ledger = BottleDepositLedger.from_customer(customer)

            ledger.set_bottles_to_deliver(bottles_to_deliver)
            ledger.set_bottles_to_collect(bottles_to_collect)

            check_availability(store, lines)
            totals = totals_for(lines)
            amount = totals["total"] if payment_amount is None else to_decimal(payment_amount)
            if amount < 0:
                raise ValidationError("payment_amount must be >= 0")

            header_fields = {
                "customer_id": customer_id,
                "route_date": route_date,
                "subtotal": totals["subtotal"],
                "tax": totals["tax"],
                "total": totals["total"],
                "payment_amount": amount,
                "payment_method": payment_method,
                "payment_status": payment_status_for(payment_method),
                "sale_type": sale_type,
                "status": "confirmed",
                "observation": observation,
                **ledger.route_fields(),
            }

            if route_id is None:
                sequence = route_order or next_route_order(route_date, store=store)
                route = store.delivery_routes.insert({
                    **header_fields,
                    "route_order": sequence,
                    "delivery_status": "pending",
                    "created_by_user_id": actor_id,
                })
            else:
                if route_order is not None:
                    header_fields["route_order"] = route_order
                route = store.delivery_routes.update(route_id, {**header_fields, "updated_at": utcnow()})

            items = store.delivery_route_items.insert_many([
                {
                    "delivery_route_id": route.id,
                    "product_id": line.product_id,
                    "quantity": line.quantity,
                    "unit_price": line.unit_price,
                    "total_price": line.line_total,
                }
                for line in lines
            ])

            take_items(store, lines, "delivery_route", route.id, actor_id, f"Route {route.id}")

        return FinalizedRoute(route, items)

    result = run_unit(store, _op)
    current_app.logger.info(
        "Delivery route %s %s for %s: %d lines, balance %s",
        result.header.id, "edited" if route_id else "scheduled", route_date,
        len(result.items), result.header.bottles_balance,
    )
    return result


def complete_route(route_id: int, actor=None, *, store: DataStore | None = None):
    """Mark delivered and move the customer's live bottle counter."""
    store = get_store(store)

    def _op():
        with store.transaction():
            route = _get_route(store, route_id)
            if route.status == "cancelled" or route.delivery_status != "pending":
                raise OrderError(
                    "Only pending delivery routes can be completed",
                    details={"route_id": route_id, "delivery_status": route.delivery_status},
                )
            customer = store.customers.get(route.customer_id)
            if customer is not None:
                lent = (customer.bottles_lent or 0) + route.bottles_to_deliver - route.bottles_to_collect
                store.customers.update(customer.id, {"bottles_lent": max(0, lent)})
            route = store.delivery_routes.update(route.id, {
                "delivery_status": "completed",
                "completed_at": utcnow(),
            })
        return route

    route = run_unit(store, _op)
    current_app.logger.info("Delivery route %s completed", route.id)
    return route


def cancel_route(route_id: int, actor=None, *, store: DataStore | None = None):
    """Cancel a pending route and return its items to stock."""
    store = get_store(store)
    actor_id = actor.id if actor is not None else None

    def _op():
        with store.transaction():
            route = _get_route(store, route_id)
            if route.status == "cancelled":
                raise OrderError("Delivery route already cancelled", details={"route_id": route_id})
            if route.delivery_status == "completed":
                raise OrderError("Completed delivery routes cannot be cancelled", details={"route_id": route_id})
            return_items(store, list(route.items), "delivery_route", route.id, actor_id, f"Route {route.id} cancelled")
            route = store.delivery_routes.update(route.id, {
                "status": "cancelled",
                "delivery_status": "cancelled",
                "cancelled_at": utcnow(),
            })
        return route

    route = run_unit(store, _op)
    current_app.logger.info("Delivery route %s cancelled", route.id)
    return route


def delete_route(route_id: int, *, store: DataStore | None = None) -> None:
    store = get_store(store)
    with store.transaction():
        if not store.delivery_routes.delete(route_id):
            raise NotFoundError("Delivery route not found", details={"route_id": route_id})


def get_route(route_id: int, *, store: DataStore | None = None):
    return _get_route(get_store(store), route_id)


def list_routes(
    route_date=None,
    delivery_status: str | None = None,
    *,
    store: DataStore | None = None,
) -> list:
    """Routes for one day in driving order (all days when route_date is None)."""
    store = get_store(store)
    filters: dict = {}
    if route_date is not None:
        filters["route_date"] = _coerce_date(route_date)
    if delivery_status:
        filters["delivery_status"] = delivery_status
    return store.delivery_routes.find(filters, order_by=["route_date", "route_order", "id"])
