from __future__ import annotations

from ..extensions import db
from ..money import amount_str
from ..time_utils import to_iso_date, to_utc_z, utcnow

EXPENSE_CATEGORIES = ("fuel", "maintenance", "salaries", "services", "supplies", "other")


class Expense(db.Model):
    """Operating expense entered by staff; income is derived from paid sales."""
    __tablename__ = "expenses"
    __table_args__ = (
        db.Index("ix_expenses_date_category", "expense_date", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    category = db.Column(db.String(32), nullable=False)
    amount = db.Column(db.Numeric(16, 4), nullable=False)
    description = db.Column(db.String(255), nullable=True)
    expense_date = db.Column(db.Date, nullable=False)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category": self.category,
            "amount": amount_str(self.amount),
            "description": self.description,
            "expense_date": to_iso_date(self.expense_date),
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
