from __future__ import annotations

from ..extensions import db
from ..money import amount_str, round_currency
from ..time_utils import to_utc_z, utcnow

ORDER_STATUSES = ("draft", "confirmed", "cancelled")
PAYMENT_STATUSES = ("pending", "paid")
PAYMENT_METHODS = ("cash", "transfer", "card", "pending")
SALES_CHANNELS = ("in_person", "mobile", "scheduled_route")


class Order(db.Model):
    """
    Sale document (counter or mobile sale).

    TOTALS: subtotal, tax and total_amount keep full precision;
    total_amount == subtotal + subtotal * 0.19. The *_display values in
    to_dict() are rounded to the whole currency unit.

    OWNERSHIP: An order exclusively owns its OrderItems (cascade delete).
    Customers are referenced, never owned.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_status_created", "status", "created_at"),
        db.Index("ix_orders_payment_status_created", "payment_status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    subtotal = db.Column(db.Numeric(16, 4), nullable=False, default=0)
    tax = db.Column(db.Numeric(16, 4), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(16, 4), nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default="draft", index=True)
    payment_status = db.Column(db.String(16), nullable=False, default="pending")
    payment_method = db.Column(db.String(16), nullable=False, default="cash")
    channel = db.Column(db.String(16), nullable=False, default="in_person", index=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    customer = db.relationship("Customer", backref=db.backref("orders", lazy=True))
    items = db.relationship(
        "OrderItem",
        backref="order",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "customer_id": self.customer_id,
            "customer_name": self.customer.full_name if self.customer else None,
            "customer_tax_id": self.customer.tax_id if self.customer else None,
            "subtotal": amount_str(self.subtotal),
            "tax": amount_str(self.tax),
            "total_amount": amount_str(self.total_amount),
            "total_display": round_currency(self.total_amount),
            "status": self.status,
            "payment_status": self.payment_status,
            "payment_method": self.payment_method,
            "channel": self.channel,
            "created_by_user_id": self.created_by_user_id,
            "cancelled_at": to_utc_z(self.cancelled_at) if self.cancelled_at else None,
            "cancelled_by_user_id": self.cancelled_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class OrderItem(db.Model):
    """Line item; unit_price is the price captured at sale time."""
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_order_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(16, 4), nullable=False)
    total_price = db.Column(db.Numeric(16, 4), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "product_code": self.product.code if self.product else None,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "unit_price": amount_str(self.unit_price),
            "total_price": amount_str(self.total_price),
            "created_at": to_utc_z(self.created_at),
        }
