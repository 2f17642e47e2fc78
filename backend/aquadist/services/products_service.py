# Overview: Service-layer operations for the product catalog.
"""
Catalog rules:
- code is unique across the catalog (ConflictError on duplicates).
- price is stored net of tax. Staff may send price_with_tax instead; it is
  converted with round(price_with_tax / 1.19).
- A product that appears on sales, routes or inventory cannot be deleted;
  deactivate it instead.
"""
from __future__ import annotations

from ..errors import NotFoundError
from ..money import net_from_gross
from ..validation import ConflictError, ValidationError, enforce_rules_product
from .datastore import DataStore, get_store

PRODUCT_MUTABLE_FIELDS = {"code", "name", "description", "category", "price", "is_active", "affects_bottle_deposit"}


def resolve_price(payload: dict) -> dict:
    """Replace a tax-inclusive `price_with_tax` with the stored net `price`."""
    payload = dict(payload or {})
    gross = payload.pop("price_with_tax", None)
    if gross is not None:
        if "price" in payload:
            raise ValidationError("Send either price or price_with_tax, not both")
        try:
            payload["price"] = str(net_from_gross(gross))
        except ValueError:
            raise ValidationError("price_with_tax must be a number")
    return payload


def _check_code_unique(store: DataStore, code: str, exclude_id: int | None = None) -> None:
    filters = {"code": code}
    if exclude_id is not None:
        filters["id__ne"] = exclude_id
    if store.products.first(filters) is not None:
        raise ConflictError("Product code already exists.")


def list_products(active: bool | None = None, q: str | None = None, *, store: DataStore | None = None) -> list:
    store = get_store(store)
    filters: dict = {}
    if active is not None:
        filters["is_active"] = active
    products = store.products.find(filters, order_by=["name", "id"])
    if q:
        needle = q.strip().lower()
        products = [p for p in products if needle in p.name.lower() or needle in p.code.lower()]
    return products


def get_product(product_id: int, *, store: DataStore | None = None):
    product = get_store(store).products.get(product_id)
    if product is None:
        raise NotFoundError("Product not found", details={"product_id": product_id})
    return product


def create_product(*, patch: dict, store: DataStore | None = None):
    store = get_store(store)
    enforce_rules_product(patch)
    with store.transaction():
        _check_code_unique(store, patch["code"])
        product = store.products.insert({k: v for k, v in patch.items() if k in PRODUCT_MUTABLE_FIELDS})
    return product


def update_product(product_id: int, *, patch: dict, store: DataStore | None = None):
    store = get_store(store)
    enforce_rules_product(patch)
    with store.transaction():
        get_product(product_id, store=store)
        if "code" in patch:
            _check_code_unique(store, patch["code"], exclude_id=product_id)
        product = store.products.update(product_id, {k: v for k, v in patch.items() if k in PRODUCT_MUTABLE_FIELDS})
    return product


def delete_product(product_id: int, *, store: DataStore | None = None) -> None:
    store = get_store(store)
    with store.transaction():
        get_product(product_id, store=store)
        in_use = (
            store.order_items.count({"product_id": product_id})
            or store.delivery_route_items.count({"product_id": product_id})
            or store.inventory_items.count({"product_id": product_id})
        )
        if in_use:
            raise ConflictError("Product has sales or stock history; deactivate it instead.")
        alert = store.inventory_alerts.first({"product_id": product_id})
        if alert is not None:
            store.inventory_alerts.delete(alert.id)
        store.products.delete(product_id)
