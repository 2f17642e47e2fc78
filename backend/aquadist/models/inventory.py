from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow

INVENTORY_LOCATIONS = ("warehouse", "route", "customer")
INVENTORY_STATUSES = ("available", "reserved", "loaned", "maintenance")
INVENTORY_CONDITIONS = ("new", "used", "repaired")
MOVEMENT_DIRECTIONS = ("in", "out", "adjustment", "loan", "return")
MOVEMENT_REASONS = ("order", "delivery_route", "adjustment", "maintenance")


class InventoryItem(db.Model):
    """
    On-hand quantity for one (product, location) pair.

    INVARIANT: quantity is never negative (enforced by CHECK constraint and by
    the compare-and-set update in DataStore.update_inventory).

    Rows are created lazily the first time a movement references a pair that
    is not yet tracked. Quantity changes always go through a movement; the
    movement log is authoritative and the quantity is derivable by replay.
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.UniqueConstraint("product_id", "location", name="uq_inventory_items_product_location"),
        db.CheckConstraint("quantity >= 0", name="ck_inventory_items_quantity_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    location = db.Column(db.String(16), nullable=False, default="warehouse")
    status = db.Column(db.String(16), nullable=False, default="available")
    condition = db.Column(db.String(16), nullable=False, default="new")
    serial_number = db.Column(db.String(64), nullable=True)

    last_count_date = db.Column(db.DateTime(timezone=True), nullable=True)

    # Compare-and-set token for quantity updates
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    product = db.relationship("Product", backref=db.backref("inventory_items", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product": {
                "code": self.product.code,
                "name": self.product.name,
                "category": self.product.category,
            } if self.product else None,
            "quantity": self.quantity,
            "location": self.location,
            "status": self.status,
            "condition": self.condition,
            "serial_number": self.serial_number,
            "last_count_date": to_utc_z(self.last_count_date) if self.last_count_date else None,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class InventoryMovement(db.Model):
    """
    Append-only ledger of inventory changes.

    IMMUTABLE: Rows are never updated or deleted. previous_quantity and
    new_quantity are captured at write time so every row is self-auditing.

    reference_id weakly points at the originating order or delivery route
    (lookup only, no foreign key, never cascaded).
    """
    __tablename__ = "inventory_movements"
    __table_args__ = (
        db.Index("ix_inventory_movements_item_created", "inventory_item_id", "created_at"),
        db.Index("ix_inventory_movements_reference", "reason", "reference_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    inventory_item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)

    direction = db.Column(db.String(16), nullable=False, index=True)
    quantity_delta = db.Column(db.Integer, nullable=False)
    previous_quantity = db.Column(db.Integer, nullable=False)
    new_quantity = db.Column(db.Integer, nullable=False)

    reason = db.Column(db.String(32), nullable=False, default="adjustment")
    reference_id = db.Column(db.Integer, nullable=True)
    notes = db.Column(db.String(255), nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    inventory_item = db.relationship("InventoryItem", backref=db.backref("movements", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "inventory_item_id": self.inventory_item_id,
            "product_id": self.inventory_item.product_id if self.inventory_item else None,
            "direction": self.direction,
            "quantity_delta": self.quantity_delta,
            "previous_quantity": self.previous_quantity,
            "new_quantity": self.new_quantity,
            "reason": self.reason,
            "reference_id": self.reference_id,
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }


class InventoryAlert(db.Model):
    """Per-product low-stock thresholds used by the dashboard."""
    __tablename__ = "inventory_alerts"
    __table_args__ = (
        db.UniqueConstraint("product_id", name="uq_inventory_alerts_product"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    min_quantity = db.Column(db.Integer, nullable=False, default=0)
    alert_quantity = db.Column(db.Integer, nullable=False, default=20)
    enabled = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    product = db.relationship("Product", backref=db.backref("inventory_alert", uselist=False, lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "min_quantity": self.min_quantity,
            "alert_quantity": self.alert_quantity,
            "enabled": self.enabled,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
