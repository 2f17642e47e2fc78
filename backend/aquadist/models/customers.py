from __future__ import annotations

from ..extensions import db
from ..money import amount_str
from ..time_utils import to_utc_z

CUSTOMER_CATEGORIES = ("personal", "business")


class Customer(db.Model):
    """
    Customer master data.

    TAX ID: business customers must carry a valid RUT; personal customers
    may omit it (stored as NULL, never as an empty string).

    BOTTLE COUNTERS: `bottles_owned` and `bottles_lent` are the live
    returnable-container counters. Delivery routes copy them at creation
    time; they are never read back through a join for historical routes.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_customers_code"),
        db.Index("ix_customers_full_name", "full_name"),
        db.Index("ix_customers_tax_id", "tax_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), nullable=False)
    tax_id = db.Column(db.String(16), nullable=True)
    full_name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(16), nullable=False, default="personal")

    street = db.Column(db.String(255), nullable=False)
    number = db.Column(db.String(32), nullable=False)
    district = db.Column(db.String(128), nullable=False)
    city = db.Column(db.String(128), nullable=False)
    reference = db.Column(db.String(255), nullable=True)

    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    contact = db.Column(db.String(255), nullable=True)
    comments = db.Column(db.Text, nullable=True)

    bottles_owned = db.Column(db.Integer, nullable=False, default=0)
    bottles_lent = db.Column(db.Integer, nullable=False, default=0)
    credit_limit = db.Column(db.Numeric(16, 4), nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def address(self) -> str:
        return f"{self.street} {self.number}, {self.district}, {self.city}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "tax_id": self.tax_id,
            "full_name": self.full_name,
            "category": self.category,
            "street": self.street,
            "number": self.number,
            "district": self.district,
            "city": self.city,
            "reference": self.reference,
            "address": self.address,
            "phone": self.phone,
            "email": self.email,
            "contact": self.contact,
            "comments": self.comments,
            "bottles_owned": self.bottles_owned,
            "bottles_lent": self.bottles_lent,
            "credit_limit": amount_str(self.credit_limit),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
