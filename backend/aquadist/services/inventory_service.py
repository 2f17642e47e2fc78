# Overview: Service-layer operations for inventory; on-hand counters plus the movement ledger.
"""
Inventory Invariants (authoritative)

Inventory model:
- One InventoryItem per (product, location) holds the on-hand quantity.
- Every quantity change appends exactly one InventoryMovement in the same
  transaction, capturing previous_quantity and new_quantity.
- Movements are append-only (never updated or deleted).
- SUM(quantity_delta) over an item's movements equals its stored quantity;
  verify_ledger() replays the log to prove it.

Business invariants:
- On-hand quantity may never go negative. A movement that would do so fails
  with NegativeStockError and the quantity is left unchanged.
- Quantity writes go through DataStore.update_inventory (compare-and-set on
  version_id), never a read-then-write from this layer.

Manual entry:
- in / return add stock, out / loan remove it, adjustment takes a signed quantity.
- Manual movements carry reason="adjustment" unless stated otherwise.
"""
from __future__ import annotations

from flask import current_app

from ..errors import NotFoundError
from ..models.inventory import MOVEMENT_DIRECTIONS, MOVEMENT_REASONS, INVENTORY_LOCATIONS
from ..validation import ValidationError, require_positive_int
from .datastore import DataStore, get_store


_ADDING = {"in", "return"}


def _find_item(store: DataStore, product_id: int, location: str):
    return store.inventory_items.first({"product_id": product_id, "location": location})


def apply_movement(
    product_id: int,
    delta: int,
    reason: str,
    actor_id: int | None,
    notes: str | None = None,
    direction: str | None = None,
    reference_id: int | None = None,
    location: str = "warehouse",
    *,
    store: DataStore | None = None,
):
    """
    Apply a signed quantity change and append its movement.

    Returns the InventoryMovement. Runs inside the caller's transaction when
    `store` is already in one, otherwise commits on its own.
    """
    store = get_store(store)
    product_id = require_positive_int(product_id, "product_id")

    if isinstance(delta, bool) or not isinstance(delta, int):
        raise ValidationError("quantity delta must be an integer")
    if delta == 0:
        raise ValidationError("quantity delta must be non-zero")
    if reason not in MOVEMENT_REASONS:
        raise ValidationError(f"reason must be one of: {', '.join(MOVEMENT_REASONS)}")
    if location not in INVENTORY_LOCATIONS:
        raise ValidationError(f"location must be one of: {', '.join(INVENTORY_LOCATIONS)}")
    if direction is None:
        direction = "in" if delta > 0 else "out"
    if direction not in MOVEMENT_DIRECTIONS:
        raise ValidationError(f"direction must be one of: {', '.join(MOVEMENT_DIRECTIONS)}")

    with store.transaction():
        if store.products.get(product_id) is None:
            raise NotFoundError("Product not found", details={"product_id": product_id})

        if _find_item(store, product_id, location) is None:
            store.inventory_items.insert({
                "product_id": product_id,
                "location": location,
                "quantity": 0,
                "status": "available",
                "condition": "new",
            })

        item, previous, new = store.update_inventory(product_id, delta, location=location)

        movement = store.inventory_movements.insert({
            "inventory_item_id": item.id,
            "direction": direction,
            "quantity_delta": delta,
            "previous_quantity": previous,
            "new_quantity": new,
            "reason": reason,
            "reference_id": reference_id,
            "notes": notes,
            "created_by_user_id": actor_id,
        })

    return movement


def record_inventory_movement(
    product_id: int,
    direction: str,
    quantity,
    notes: str | None,
    actor_id: int | None,
    *,
    reason: str = "adjustment",
    location: str = "warehouse",
    store: DataStore | None = None,
):
    """Manual stock entry from the movement form (not tied to an order)."""
    if direction not in MOVEMENT_DIRECTIONS:
        raise ValidationError(f"direction must be one of: {', '.join(MOVEMENT_DIRECTIONS)}")

    if direction == "adjustment":
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise ValidationError("quantity must be an integer")
        delta = quantity
    else:
        qty = require_positive_int(quantity, "quantity")
        delta = qty if direction in _ADDING else -qty

    movement = apply_movement(
        product_id,
        delta,
        reason,
        actor_id,
        notes=notes,
        direction=direction,
        location=location,
        store=store,
    )
    current_app.logger.info(
        "Inventory movement %s product=%s delta=%s new=%s",
        direction, product_id, delta, movement.new_quantity,
    )
    return movement


def get_on_hand(product_id: int, location: str = "warehouse", *, store: DataStore | None = None) -> int:
    item = _find_item(get_store(store), product_id, location)
    return item.quantity if item else 0


def stock_lookup(store: DataStore | None = None, location: str = "warehouse"):
    """Callable suitable for CartBuilder(stock_lookup=...)."""
    store = get_store(store)
    return lambda product_id: get_on_hand(product_id, location, store=store)


def list_inventory(location: str | None = None, *, store: DataStore | None = None) -> list:
    store = get_store(store)
    filters = {"location": location} if location else None
    return store.inventory_items.find(filters, order_by=["product_id", "location"])


def list_movements(
    product_id: int | None = None,
    reason: str | None = None,
    reference_id: int | None = None,
    limit: int = 100,
    *,
    store: DataStore | None = None,
) -> list:
    store = get_store(store)
    filters: dict = {}
    if product_id is not None:
        item_ids = [i.id for i in store.inventory_items.find({"product_id": product_id})]
        if not item_ids:
            return []
        filters["inventory_item_id"] = item_ids
    if reason is not None:
        filters["reason"] = reason
    if reference_id is not None:
        filters["reference_id"] = reference_id
    return store.inventory_movements.find(filters, order_by=["-created_at", "-id"], limit=limit)


def replay_quantity(item_id: int, *, store: DataStore | None = None) -> int:
    """Rebuild an item's quantity from its movement log alone."""
    store = get_store(store)
    return sum(m.quantity_delta for m in store.inventory_movements.find({"inventory_item_id": item_id}))


def verify_ledger(*, store: DataStore | None = None) -> list[dict]:
    """Return every item whose stored quantity disagrees with the replayed ledger."""
    store = get_store(store)
    mismatches = []
    for item in store.inventory_items.find(order_by="id"):
        replayed = replay_quantity(item.id, store=store)
        if replayed != item.quantity:
            mismatches.append({
                "inventory_item_id": item.id,
                "product_id": item.product_id,
                "location": item.location,
                "stored_quantity": item.quantity,
                "replayed_quantity": replayed,
            })
    return mismatches


def set_alert(
    product_id: int,
    alert_quantity: int,
    min_quantity: int = 0,
    enabled: bool = True,
    *,
    store: DataStore | None = None,
):
    store = get_store(store)
    alert_quantity = require_positive_int(alert_quantity, "alert_quantity", allow_zero=True)
    min_quantity = require_positive_int(min_quantity, "min_quantity", allow_zero=True)

    with store.transaction():
        if store.products.get(product_id) is None:
            raise NotFoundError("Product not found", details={"product_id": product_id})
        alert = store.inventory_alerts.first({"product_id": product_id})
        values = {"alert_quantity": alert_quantity, "min_quantity": min_quantity, "enabled": bool(enabled)}
        if alert is None:
            alert = store.inventory_alerts.insert({"product_id": product_id, **values})
        else:
            alert = store.inventory_alerts.update(alert.id, values)
    return alert


def low_stock_items(threshold: int | None = None, *, store: DataStore | None = None) -> list[dict]:
    """
    Active products whose warehouse quantity is below their alert level.

    A product's enabled InventoryAlert sets its level; otherwise the
    LOW_STOCK_THRESHOLD setting applies. Products never stocked count as 0.
    Sorted by quantity ascending.
    """
    store = get_store(store)
    if threshold is None:
        threshold = current_app.config.get("LOW_STOCK_THRESHOLD", 20)

    alerts = {a.product_id: a for a in store.inventory_alerts.find()}
    quantities = {
        i.product_id: i.quantity
        for i in store.inventory_items.find({"location": "warehouse"})
    }

    rows = []
    for product in store.products.find({"is_active": True}):
        alert = alerts.get(product.id)
        if alert is not None and not alert.enabled:
            continue
        level = alert.alert_quantity if alert is not None else threshold
        quantity = quantities.get(product.id, 0)
        if quantity < level:
            rows.append({
                "product_id": product.id,
                "product": product.name,
                "code": product.code,
                "quantity": quantity,
                "alert_quantity": level,
            })
    rows.sort(key=lambda r: (r["quantity"], r["product"]))
    return rows
