# Overview: Service-layer operations for customer master data.
"""
Customer rules:
- code is unique (ConflictError on duplicates).
- business customers need a valid tax id; personal customers store a
  missing tax id as NULL (see validation.enforce_rules_customer).
- Search matches name, tax id or code case-insensitively, needs at least
  two characters, and returns at most ten rows.
- A customer with sales or routes cannot be deleted.
"""
from __future__ import annotations

from sqlalchemy import or_

from ..errors import NotFoundError
from ..models import Customer
from ..validation import ConflictError, enforce_rules_customer
from .datastore import DataStore, get_store

SEARCH_MIN_CHARS = 2
SEARCH_LIMIT = 10


def _check_code_unique(store: DataStore, code: str, exclude_id: int | None = None) -> None:
    filters = {"code": code}
    if exclude_id is not None:
        filters["id__ne"] = exclude_id
    if store.customers.first(filters) is not None:
        raise ConflictError("Customer code already exists.")


def list_customers(category: str | None = None, *, store: DataStore | None = None) -> list:
    store = get_store(store)
    filters = {"category": category} if category else None
    return store.customers.find(filters, order_by=["full_name", "id"])


def search_customers(term: str | None, *, store: DataStore | None = None) -> list:
    store = get_store(store)
    term = (term or "").strip()
    if len(term) < SEARCH_MIN_CHARS:
        return []
    pattern = f"%{term}%"
    with store.step("search customers"):
        return (
            store.session.query(Customer)
            .filter(or_(
                Customer.full_name.ilike(pattern),
                Customer.tax_id.ilike(pattern),
                Customer.code.ilike(pattern),
            ))
            .order_by(Customer.full_name.asc(), Customer.id.asc())
            .limit(SEARCH_LIMIT)
            .all()
        )


def get_customer(customer_id: int, *, store: DataStore | None = None):
    customer = get_store(store).customers.get(customer_id)
    if customer is None:
        raise NotFoundError("Customer not found", details={"customer_id": customer_id})
    return customer


def create_customer(*, patch: dict, store: DataStore | None = None):
    store = get_store(store)
    enforce_rules_customer(patch)
    with store.transaction():
        _check_code_unique(store, patch["code"])
        customer = store.customers.insert(patch)
    return customer


def update_customer(customer_id: int, *, patch: dict, store: DataStore | None = None):
    store = get_store(store)
    with store.transaction():
        current = get_customer(customer_id, store=store)
        enforce_rules_customer(patch, current)
        if "code" in patch:
            _check_code_unique(store, patch["code"], exclude_id=customer_id)
        customer = store.customers.update(customer_id, patch)
    return customer


def delete_customer(customer_id: int, *, store: DataStore | None = None) -> None:
    store = get_store(store)
    with store.transaction():
        get_customer(customer_id, store=store)
        if store.orders.count({"customer_id": customer_id}) or store.delivery_routes.count({"customer_id": customer_id}):
            raise ConflictError("Customer has sales or delivery routes and cannot be deleted.")
        store.customers.delete(customer_id)
