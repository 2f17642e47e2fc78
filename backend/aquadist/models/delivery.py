from __future__ import annotations

from ..extensions import db
from ..money import amount_str, round_currency
from ..time_utils import to_iso_date, to_utc_z, utcnow

DELIVERY_STATUSES = ("pending", "completed", "cancelled")
SALE_TYPES = ("scheduled", "direct")


class DeliveryRoute(db.Model):
    """
    Scheduled delivery: an order variant with sequencing and bottle logistics.

    SNAPSHOTS: bottles_in_circulation and bottles_owned are value copies of
    the customer's counters at creation time. They are never recomputed, so
    historical routes stay accurate after the customer's live counters move.

    bottles_balance = bottles_in_circulation + bottles_to_deliver - bottles_to_collect
    (informational; it does not block finalization).
    """
    __tablename__ = "delivery_routes"
    __table_args__ = (
        db.Index("ix_delivery_routes_date_order", "route_date", "route_order"),
        db.Index("ix_delivery_routes_date_status", "route_date", "delivery_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    route_date = db.Column(db.Date, nullable=False)
    route_order = db.Column(db.Integer, nullable=False, default=1)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    bottles_to_deliver = db.Column(db.Integer, nullable=False, default=0)
    bottles_to_collect = db.Column(db.Integer, nullable=False, default=0)
    bottles_in_circulation = db.Column(db.Integer, nullable=False, default=0)
    bottles_owned = db.Column(db.Integer, nullable=False, default=0)
    bottles_balance = db.Column(db.Integer, nullable=False, default=0)
    observation = db.Column(db.Text, nullable=True)

    subtotal = db.Column(db.Numeric(16, 4), nullable=False, default=0)
    tax = db.Column(db.Numeric(16, 4), nullable=False, default=0)
    total = db.Column(db.Numeric(16, 4), nullable=False, default=0)

    payment_amount = db.Column(db.Numeric(16, 4), nullable=False, default=0)
    payment_method = db.Column(db.String(16), nullable=False, default="cash")
    payment_status = db.Column(db.String(16), nullable=False, default="paid")

    sale_type = db.Column(db.String(16), nullable=False, default="scheduled")
    status = db.Column(db.String(16), nullable=False, default="confirmed", index=True)
    delivery_status = db.Column(db.String(16), nullable=False, default="pending")

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    customer = db.relationship("Customer", backref=db.backref("delivery_routes", lazy=True))
    items = db.relationship(
        "DeliveryRouteItem",
        backref="delivery_route",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="DeliveryRouteItem.id",
    )

    def to_dict(self, include_items: bool = True) -> dict:
        customer = self.customer
        data = {
            "id": self.id,
            "route_date": to_iso_date(self.route_date),
            "route_order": self.route_order,
            "customer": {
                "id": customer.id,
                "name": customer.full_name,
                "code": customer.code,
                "phone": customer.phone,
                "address": customer.address,
            } if customer else None,
            "bottles_to_deliver": self.bottles_to_deliver,
            "bottles_to_collect": self.bottles_to_collect,
            "bottles_in_circulation": self.bottles_in_circulation,
            "bottles_owned": self.bottles_owned,
            "bottles_balance": self.bottles_balance,
            "observation": self.observation,
            "subtotal": amount_str(self.subtotal),
            "tax": amount_str(self.tax),
            "total": amount_str(self.total),
            "total_display": round_currency(self.total),
            "payment": {
                "amount": amount_str(self.payment_amount),
                "method": self.payment_method,
                "status": self.payment_status,
            },
            "sale_type": self.sale_type,
            "status": self.status,
            "delivery_status": self.delivery_status,
            "created_by_user_id": self.created_by_user_id,
            "completed_at": to_utc_z(self.completed_at) if self.completed_at else None,
            "cancelled_at": to_utc_z(self.cancelled_at) if self.cancelled_at else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class DeliveryRouteItem(db.Model):
    __tablename__ = "delivery_route_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_delivery_route_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    delivery_route_id = db.Column(
        db.Integer,
        db.ForeignKey("delivery_routes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(16, 4), nullable=False)
    total_price = db.Column(db.Numeric(16, 4), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "delivery_route_id": self.delivery_route_id,
            "product_id": self.product_id,
            "product_code": self.product.code if self.product else None,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "unit_price": amount_str(self.unit_price),
            "total_price": amount_str(self.total_price),
            "created_at": to_utc_z(self.created_at),
        }
