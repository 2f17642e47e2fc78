from __future__ import annotations

from ..extensions import db
from ..money import amount_str, price_with_tax, round_currency
from ..time_utils import to_utc_z

PRODUCT_CATEGORIES = ("water", "dispenser", "accessory", "pack")


class Product(db.Model):
    """
    Catalog entry.

    PRICE: `price` is stored net of tax. The tax-inclusive price shown to
    staff is derived (price * 1.19), never stored.

    BOTTLE DEPOSIT: `affects_bottle_deposit` marks refill products whose
    quantity moves returnable 20L containers (botellones) to the customer.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_products_code"),
        db.Index("ix_products_active_name", "is_active", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    code = db.Column(db.String(32), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(16), nullable=False, default="water")

    price = db.Column(db.Numeric(16, 4), nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    affects_bottle_deposit = db.Column(db.Boolean, nullable=False, default=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} code={self.code!r} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "price": amount_str(self.price),
            "price_with_tax": round_currency(price_with_tax(self.price)),
            "is_active": self.is_active,
            "affects_bottle_deposit": self.affects_bottle_deposit,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
