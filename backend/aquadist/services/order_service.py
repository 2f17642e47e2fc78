# Overview: Service-layer operations for sales orders; turns a built cart into a persisted order.
"""
Order Finalizer Contract (authoritative)

Preconditions (checked before any lasting write):
- a customer is selected and exists
- the cart holds at least one line
- payment method and channel are known values
- each product's summed line quantity is <= its on-hand stock, otherwise
  InsufficientStockError{product, requested, available}

Sequence, all inside ONE DataStore transaction:
- header (status=confirmed, payment_status=pending iff payment_method=pending)
- one OrderItem per cart line, in cart order
- one InventoryMovement per line (-quantity, reason=order, reference_id=order.id)
Any failure rolls the whole unit back; the caller sees the original domain
error, or a PersistenceError naming the failing step.

Edit mode (order_id given):
- prior items are returned to stock (direction=return), deleted, and
  replaced by the new set. Availability is checked after the reversal, so
  the order's own prior quantities count as available.
- header totals and updated_at are rewritten.

Delete removes the order and its items only. Movements weakly reference the
order and are kept, so deleting does not touch stock; cancel does.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta

from flask import current_app

from ..errors import DomainError, InsufficientStockError, NotFoundError
from ..models.sales import PAYMENT_METHODS, SALES_CHANNELS
from ..money import ZERO, tax_for
from ..time_utils import utcnow
from ..validation import ValidationError, require_positive_int
from . import inventory_service
from .bottle_ledger import BottleDepositLedger
from .cart import CartBuilder, CartLine
from .concurrency import run_with_retry
from .datastore import DataStore, get_store


class OrderError(DomainError):
    """Raised for order lifecycle errors (e.g., editing a cancelled order)."""
    status_code = 409


@dataclass
class FinalizedOrder:
    header: object
    items: list = field(default_factory=list)

    def to_dict(self) -> dict:
        data = self.header.to_dict(include_items=False)
        data["items"] = [item.to_dict() for item in self.items]
        return data


# -- Shared finalizer steps (orders and delivery routes) --

def as_lines(lines) -> list[CartLine]:
    if isinstance(lines, CartBuilder):
        return lines.lines
    return list(lines or [])


def build_cart(
    entries,
    *,
    store: DataStore | None = None,
    ledger: BottleDepositLedger | None = None,
    prior_items=(),
) -> CartBuilder:
    """
    Build a cart from request entries [{"product_id", "quantity"}, ...].

    No stock cap is applied here; the finalizer reports shortfalls as
    InsufficientStockError. Products already on the order being edited keep
    their captured unit price and may be inactive.
    """
    store = get_store(store)
    if entries is None:
        entries = []
    if not isinstance(entries, list):
        raise ValidationError("items must be a list")

    quantities: dict[int, int] = {}
    for entry in entries:
        if not isinstance(entry, dict):
            raise ValidationError("each item must be an object")
        product_id = require_positive_int(entry.get("product_id"), "product_id")
        quantity = require_positive_int(entry.get("quantity", 1), "quantity")
        quantities[product_id] = quantities.get(product_id, 0) + quantity

    prior_prices = {item.product_id: item.unit_price for item in prior_items}

    cart = CartBuilder(ledger=ledger)
    for product_id, quantity in quantities.items():
        product = store.products.get(product_id)
        if product is None:
            raise ValidationError(f"Unknown product {product_id}")
        if not product.is_active and product_id not in prior_prices:
            raise ValidationError(f"Product {product.code} is inactive")
        line = cart.add_line(product)
        if product_id in prior_prices:
            line.unit_price = prior_prices[product_id]
        cart.set_line_quantity(product_id, quantity)
    return cart


def check_payment_method(payment_method: str) -> None:
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")


def payment_status_for(payment_method: str) -> str:
    return "pending" if payment_method == "pending" else "paid"


def check_preconditions(customer_id, lines: list[CartLine]) -> int:
    if not customer_id:
        raise ValidationError("A customer must be selected")
    if not lines:
        raise ValidationError("Cart is empty")
    return require_positive_int(customer_id, "customer_id")


def load_customer(store: DataStore, customer_id: int):
    customer = store.customers.get(customer_id)
    if customer is None:
        raise ValidationError("Customer not found")
    return customer


def check_availability(store: DataStore, lines: list[CartLine]) -> None:
    """Every product's summed quantity must fit the current on-hand stock."""
    requested: dict[int, int] = {}
    names: dict[int, str] = {}
    for line in lines:
        requested[line.product_id] = requested.get(line.product_id, 0) + line.quantity
        names.setdefault(line.product_id, line.product_name)
    for product_id, quantity in requested.items():
        available = inventory_service.get_on_hand(product_id, store=store)
        if quantity > available:
            raise InsufficientStockError(product_id, names[product_id], quantity, available)


def totals_for(lines: list[CartLine]) -> dict:
    subtotal = sum((line.line_total for line in lines), ZERO)
    tax = tax_for(subtotal)
    return {"subtotal": subtotal, "tax": tax, "total": subtotal + tax}


def return_items(store: DataStore, items, reason: str, reference_id: int, actor_id, notes: str) -> None:
    for item in items:
        inventory_service.apply_movement(
            item.product_id,
            item.quantity,
            reason,
            actor_id,
            notes=notes,
            direction="return",
            reference_id=reference_id,
            store=store,
        )


def take_items(store: DataStore, lines: list[CartLine], reason: str, reference_id: int, actor_id, notes: str) -> None:
    for line in lines:
        inventory_service.apply_movement(
            line.product_id,
            -line.quantity,
            reason,
            actor_id,
            notes=notes,
            direction="out",
            reference_id=reference_id,
            store=store,
        )


def run_unit(store: DataStore, op):
    """Retry a whole finalize on concurrency conflicts unless nested in a caller's transaction."""
    if store.in_transaction:
        return op()
    return run_with_retry(op)


# -- Orders --

def finalize_order(
    customer_id: int,
    lines,
    payment_method: str,
    channel: str,
    actor=None,
    order_id: int | None = None,
    *,
    store: DataStore | None = None,
) -> FinalizedOrder:
    store = get_store(store)
    lines = as_lines(lines)
    customer_id = check_preconditions(customer_id, lines)
    check_payment_method(payment_method)
    if channel not in SALES_CHANNELS:
        raise ValidationError(f"channel must be one of: {', '.join(SALES_CHANNELS)}")

    actor_id = actor.id if actor is not None else None

    def _op():
        with store.transaction():
            load_customer(store, customer_id)

            if order_id is not None:
                order = store.orders.get(order_id)
                if order is None:
                    raise NotFoundError("Order not found", details={"order_id": order_id})
                if order.status == "cancelled":
                    raise OrderError("Cannot edit a cancelled order", details={"order_id": order_id})
                return_items(store, list(order.items), "order", order.id, actor_id, f"Order {order.id} edited")
                store.order_items.delete_where({"order_id": order.id})
                store.session.expire(order, ["items"])

            check_availability(store, lines)
            totals = totals_for(lines)

            header_fields = {
                "customer_id": customer_id,
                "subtotal": totals["subtotal"],
                "tax": totals["tax"],
                "total_amount": totals["total"],
                "status": "confirmed",
                "payment_method": payment_method,
                "payment_status": payment_status_for(payment_method),
                "channel": channel,
            }
            if order_id is None:
                order = store.orders.insert({**header_fields, "created_by_user_id": actor_id})
            else:
                order = store.orders.update(order_id, {**header_fields, "updated_at": utcnow()})

            items = store.order_items.insert_many([
                {
                    "order_id": order.id,
                    "product_id": line.product_id,
                    "quantity": line.quantity,
                    "unit_price": line.unit_price,
                    "total_price": line.line_total,
                }
                for line in lines
            ])

            take_items(store, lines, "order", order.id, actor_id, f"Order {order.id}")

        return FinalizedOrder(order, items)

    result = run_unit(store, _op)
    current_app.logger.info(
        "Order %s %s: %d lines, total %s",
        result.header.id, "edited" if order_id else "finalized", len(result.items), result.header.total_amount,
    )
    return result


def cancel_order(order_id: int, actor=None, *, store: DataStore | None = None):
    """Mark an order cancelled and return its items to stock."""
    store = get_store(store)
    actor_id = actor.id if actor is not None else None

    def _op():
        with store.transaction():
            order = store.orders.get(order_id)
            if order is None:
                raise NotFoundError("Order not found", details={"order_id": order_id})
            if order.status == "cancelled":
                raise OrderError("Order already cancelled", details={"order_id": order_id})
            if order.status == "confirmed":
                return_items(store, list(order.items), "order", order.id, actor_id, f"Order {order.id} cancelled")
            order = store.orders.update(order.id, {
                "status": "cancelled",
                "cancelled_at": utcnow(),
                "cancelled_by_user_id": actor_id,
            })
        return order

    order = run_unit(store, _op)
    current_app.logger.info("Order %s cancelled", order.id)
    return order


def delete_order(order_id: int, *, store: DataStore | None = None) -> None:
    store = get_store(store)
    with store.transaction():
        if not store.orders.delete(order_id):
            raise NotFoundError("Order not found", details={"order_id": order_id})


def get_order(order_id: int, *, store: DataStore | None = None):
    order = get_store(store).orders.get(order_id)
    if order is None:
        raise NotFoundError("Order not found", details={"order_id": order_id})
    return order


def day_bounds(start: date | None, end: date | None) -> tuple[datetime | None, datetime | None]:
    """Inclusive date range -> [start 00:00, day after end 00:00)."""
    lo = datetime.combine(start, time.min) if start else None
    hi = datetime.combine(end + timedelta(days=1), time.min) if end else None
    return lo, hi


def list_orders(
    status: str | None = None,
    channel: str | None = None,
    customer_id: int | None = None,
    start: date | None = None,
    end: date | None = None,
    limit: int = 100,
    *,
    store: DataStore | None = None,
) -> list:
    store = get_store(store)
    filters: dict = {}
    if status:
        filters["status"] = status
    if channel:
        filters["channel"] = channel
    if customer_id:
        filters["customer_id"] = customer_id
    lo, hi = day_bounds(start, end)
    if lo:
        filters["created_at__gte"] = lo
    if hi:
        filters["created_at__lt"] = hi
    return store.orders.find(filters, order_by=["-created_at", "-id"], limit=limit)


def quote_cart(
    entries,
    customer_id: int | None = None,
    bottles_to_collect: int = 0,
    *,
    store: DataStore | None = None,
) -> dict:
    """Totals, bottle figures and stock shortfalls for a cart, without persisting anything."""
    store = get_store(store)
    ledger = None
    if customer_id:
        customer = load_customer(store, require_positive_int(customer_id, "customer_id"))
        ledger = BottleDepositLedger.from_customer(customer)
        ledger.set_bottles_to_collect(require_positive_int(bottles_to_collect, "bottles_to_collect", allow_zero=True))

    cart = build_cart(entries, store=store, ledger=ledger)
    cart.stock_lookup = inventory_service.stock_lookup(store)
    shortfalls = []
    for line in cart.lines:
        remaining = cart.available_stock(line.product_id)
        if remaining < 0:
            shortfalls.append({
                "product_id": line.product_id,
                "requested": line.quantity,
                "available": line.quantity + remaining,
            })

    data = cart.to_dict()
    data["shortfalls"] = shortfalls
    return data
