# Overview: Generic data-access collaborator over the SQLAlchemy session.
"""
Data Store Contract (authoritative)

- One Table per entity with find / get / insert / update / delete.
- insert/update/delete flush but never commit; commits happen only when the
  outermost `transaction()` block exits cleanly. Any exception inside the
  outermost block rolls the whole unit back.
- update_inventory() is the only way to change InventoryItem.quantity: an
  atomic compare-and-set on version_id with a floor check, never a blind
  read-then-write.
- SQLAlchemy errors are converted to PersistenceError naming the failing step.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterable

from sqlalchemy import select, update
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..errors import NegativeStockError, PersistenceError
from ..models import (
    User,
    Product,
    Customer,
    InventoryItem,
    InventoryMovement,
    InventoryAlert,
    Order,
    OrderItem,
    DeliveryRoute,
    DeliveryRouteItem,
    Expense,
)
from ..time_utils import utcnow

_OPERATORS = {
    "eq": lambda col, v: col == v,
    "ne": lambda col, v: col != v,
    "gt": lambda col, v: col > v,
    "gte": lambda col, v: col >= v,
    "lt": lambda col, v: col < v,
    "lte": lambda col, v: col <= v,
    "in": lambda col, v: col.in_(list(v)),
    "ilike": lambda col, v: col.ilike(f"%{v}%"),
    "isnull": lambda col, v: col.is_(None) if v else col.isnot(None),
}


class Table:
    """
    Entity accessor.

    Filters are a dict of `column` or `column__op` keys, e.g.
    {"is_active": True, "created_at__gte": start, "id__in": [1, 2]}.
    order_by takes column names; a leading "-" sorts descending.
    """

    def __init__(self, store: "DataStore", model):
        self.store = store
        self.model = model
        self.name = model.__tablename__

    def _column(self, key: str):
        col = getattr(self.model, key, None)
        if col is None:
            raise PersistenceError(f"query {self.name}", f"unknown column {key!r}")
        return col

    def _query(self, filters: dict | None):
        q = self.store.session.query(self.model)
        for key, value in (filters or {}).items():
            field, _, op = key.partition("__")
            op = op or ("in" if isinstance(value, (list, tuple, set)) else "eq")
            if op not in _OPERATORS:
                raise PersistenceError(f"query {self.name}", f"unknown operator {op!r}")
            q = q.filter(_OPERATORS[op](self._column(field), value))
        return q

    def find(self, filters: dict | None = None, order_by: str | Iterable[str] | None = None, limit: int | None = None) -> list:
        with self.store.step(f"find {self.name}"):
            q = self._query(filters)
            if isinstance(order_by, str):
                order_by = [order_by]
            for key in order_by or ():
                desc = key.startswith("-")
                col = self._column(key.lstrip("-"))
                q = q.order_by(col.desc() if desc else col.asc())
            if limit is not None:
                q = q.limit(limit)
            return q.all()

    def first(self, filters: dict | None = None, order_by: str | Iterable[str] | None = None):
        rows = self.find(filters, order_by=order_by, limit=1)
        return rows[0] if rows else None

    def count(self, filters: dict | None = None) -> int:
        with self.store.step(f"count {self.name}"):
            return self._query(filters).count()

    def get(self, record_id: int):
        if record_id is None:
            return None
        with self.store.step(f"get {self.name}"):
            return self.store.session.get(self.model, record_id)

    def insert(self, record: dict):
        with self.store.step(f"insert {self.name}"):
            obj = self.model(**record)
            self.store.session.add(obj)
            self.store.session.flush()
            return obj

    def insert_many(self, records: Iterable[dict]) -> list:
        with self.store.step(f"insert {self.name}"):
            objs = [self.model(**record) for record in records]
            self.store.session.add_all(objs)
            self.store.session.flush()
            return objs

    def update(self, record_id: int, partial: dict):
        with self.store.step(f"update {self.name}"):
            obj = self.store.session.get(self.model, record_id)
            if obj is None:
                return None
            for key, value in partial.items():
                setattr(obj, key, value)
            self.store.session.flush()
            return obj

    def delete(self, record_id: int) -> bool:
        with self.store.step(f"delete {self.name}"):
            obj = self.store.session.get(self.model, record_id)
            if obj is None:
                return False
            self.store.session.delete(obj)
            self.store.session.flush()
            return True

    def delete_where(self, filters: dict) -> int:
        """Delete matching rows through the ORM so relationship cascades apply."""
        with self.store.step(f"delete {self.name}"):
            rows = self._query(filters).all()
            for row in rows:
                self.store.session.delete(row)
            self.store.session.flush()
            return len(rows)


class DataStore:
    """Backend collaborator used by every domain service."""

    def __init__(self, session=None):
        self.session = session or db.session
        self._depth = 0

        self.users = Table(self, User)
        self.products = Table(self, Product)
        self.customers = Table(self, Customer)
        self.inventory_items = Table(self, InventoryItem)
        self.inventory_movements = Table(self, InventoryMovement)
        self.inventory_alerts = Table(self, InventoryAlert)
        self.orders = Table(self, Order)
        self.order_items = Table(self, OrderItem)
        self.delivery_routes = Table(self, DeliveryRoute)
        self.delivery_route_items = Table(self, DeliveryRouteItem)
        self.expenses = Table(self, Expense)

    @contextmanager
    def step(self, name: str):
        """Translate SQLAlchemy failures into PersistenceError(step=name)."""
        try:
            yield
        except PersistenceError:
            raise
        except (OperationalError, StaleDataError) as exc:
            raise PersistenceError(name, str(exc), retryable=True) from exc
        except SQLAlchemyError as exc:
            raise PersistenceError(name, str(exc)) from exc

    @contextmanager
    def transaction(self):
        """
        Unit of work. Nested blocks join the outermost one; only the
        outermost block commits, and any exception rolls everything back.
        """
        self._depth += 1
        outermost = self._depth == 1
        try:
            yield self
            if outermost:
                with self.step("commit"):
                    self.session.commit()
        except BaseException:
            if outermost:
                self.session.rollback()
            raise
        finally:
            self._depth -= 1

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    def update_inventory(
        self,
        product_id: int,
        quantity_delta: int,
        *,
        location: str = "warehouse",
        attempts: int = 3,
    ) -> tuple[InventoryItem, int, int]:
        """
        Atomically apply quantity_delta to the (product, location) item.

        Compare-and-set on version_id: the UPDATE only lands if nobody else
        changed the row since it was read. Returns (item, previous, new).
        Raises NegativeStockError (quantity untouched) if the result would be
        negative, and a retryable PersistenceError if every attempt lost the race.
        """
        step = "update inventory"
        with self.step(step):
            for _ in range(attempts):
                row = self.session.execute(
                    select(InventoryItem.id, InventoryItem.quantity, InventoryItem.version_id).where(
                        InventoryItem.product_id == product_id,
                        InventoryItem.location == location,
                    )
                ).one_or_none()
                if row is None:
                    raise PersistenceError(step, f"no inventory item for product {product_id} at {location}")

                previous = row.quantity
                new = previous + quantity_delta
                if new < 0:
                    raise NegativeStockError(product_id, previous, quantity_delta)

                now = utcnow()
                result = self.session.execute(
                    update(InventoryItem)
                    .where(InventoryItem.id == row.id, InventoryItem.version_id == row.version_id)
                    .values(
                        quantity=new,
                        version_id=row.version_id + 1,
                        last_count_date=now,
                        updated_at=now,
                    )
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 1:
                    item = self.session.get(InventoryItem, row.id, populate_existing=True)
                    return item, previous, new

        raise PersistenceError(step, f"concurrent update on product {product_id}", retryable=True)


def get_store(store: DataStore | None = None) -> DataStore:
    return store if store is not None else DataStore()
