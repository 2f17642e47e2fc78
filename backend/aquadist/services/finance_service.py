# Overview: Service-layer operations for expenses and the income/expense summary.
"""
Income is derived, never entered: paid, non-cancelled orders count at their
total_amount and paid, non-cancelled delivery routes at their payment_amount.
Expenses are entered by staff. net_income = income - expenses.
"""
from __future__ import annotations

from datetime import date

from ..money import ZERO, amount_str, round_currency
from ..time_utils import to_iso_date
from ..validation import enforce_rules_expense
from .datastore import DataStore, get_store
from .order_service import day_bounds


def create_expense(*, patch: dict, actor=None, store: DataStore | None = None):
    store = get_store(store)
    enforce_rules_expense(patch)
    record = dict(patch)
    record.setdefault("expense_date", date.today())
    record["created_by_user_id"] = actor.id if actor is not None else None
    with store.transaction():
        expense = store.expenses.insert(record)
    return expense


def list_expenses(
    start: date | None = None,
    end: date | None = None,
    category: str | None = None,
    *,
    store: DataStore | None = None,
) -> list:
    store = get_store(store)
    filters: dict = {}
    if start:
        filters["expense_date__gte"] = start
    if end:
        filters["expense_date__lte"] = end
    if category:
        filters["category"] = category
    return store.expenses.find(filters, order_by=["-expense_date", "-id"])


def _income_entries(store: DataStore, start: date | None, end: date | None) -> list[dict]:
    lo, hi = day_bounds(start, end)
    order_filters: dict = {"payment_status": "paid", "status__ne": "cancelled"}
    if lo:
        order_filters["created_at__gte"] = lo
    if hi:
        order_filters["created_at__lt"] = hi

    route_filters: dict = {"payment_status": "paid", "status__ne": "cancelled"}
    if start:
        route_filters["route_date__gte"] = start
    if end:
        route_filters["route_date__lte"] = end

    entries = [
        {
            "type": "income",
            "source": "order",
            "reference_id": o.id,
            "date": to_iso_date(o.created_at.date()),
            "amount": o.total_amount,
        }
        for o in store.orders.find(order_filters)
    ]
    entries += [
        {
            "type": "income",
            "source": "delivery_route",
            "reference_id": r.id,
            "date": to_iso_date(r.route_date),
            "amount": r.payment_amount,
        }
        for r in store.delivery_routes.find(route_filters)
    ]
    return entries


def financial_summary(start: date | None = None, end: date | None = None, *, store: DataStore | None = None) -> dict:
    store = get_store(store)
    income_entries = _income_entries(store, start, end)
    expenses = list_expenses(start, end, store=store)

    income = sum((e["amount"] for e in income_entries), ZERO)
    spent = sum((e.amount for e in expenses), ZERO)

    by_category: dict[str, object] = {}
    for e in expenses:
        by_category[e.category] = by_category.get(e.category, ZERO) + e.amount

    transactions = [{**e, "amount": amount_str(e["amount"])} for e in income_entries]
    transactions += [
        {
            "type": "expense",
            "source": e.category,
            "reference_id": e.id,
            "date": to_iso_date(e.expense_date),
            "amount": amount_str(e.amount),
            "description": e.description,
        }
        for e in expenses
    ]
    transactions.sort(key=lambda t: (t["date"] or "", t["type"]), reverse=True)

    return {
        "start": to_iso_date(start),
        "end": to_iso_date(end),
        "income": amount_str(income),
        "expenses": amount_str(spent),
        "net_income": amount_str(income - spent),
        "net_income_display": round_currency(income - spent),
        "expenses_by_category": [
            {"category": k, "amount": amount_str(v)} for k, v in sorted(by_category.items())
        ],
        "transactions": transactions,
    }
