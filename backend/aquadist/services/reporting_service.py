# Overview: Read models for the dashboard and sales reports; aggregates orders, items and routes.

from __future__ import annotations

from collections import OrderedDict
from datetime import date, timedelta

from ..money import ZERO, amount_str, round_currency
from ..time_utils import to_iso_date
from . import inventory_service
from .datastore import DataStore, get_store
from .order_service import day_bounds


GROUPINGS = ("day", "week", "month")


class ReportError(Exception):
    """Raised when report parameters are invalid."""
    pass


def _sales_between(store: DataStore, start: date, end: date) -> list:
    lo, hi = day_bounds(start, end)
    return store.orders.find(
        {"created_at__gte": lo, "created_at__lt": hi, "status__ne": "cancelled"},
        order_by=["created_at", "id"],
    )


def _sum_totals(orders) -> object:
    return sum((o.total_amount for o in orders), ZERO)


def _top_products(store: DataStore, orders, limit: int) -> list[dict]:
    order_ids = [o.id for o in orders]
    if not order_ids:
        return []
    totals: dict[int, dict] = {}
    for item in store.order_items.find({"order_id": order_ids}):
        row = totals.setdefault(item.product_id, {
            "product_id": item.product_id,
            "name": item.product.name if item.product else "",
            "quantity": 0,
            "amount": ZERO,
        })
        row["quantity"] += item.quantity
        row["amount"] += item.total_price
    rows = sorted(totals.values(), key=lambda r: (-r["quantity"], -r["amount"], r["name"]))[:limit]
    return [{**r, "amount": amount_str(r["amount"])} for r in rows]


def dashboard(today: date | None = None, *, store: DataStore | None = None) -> dict:
    """Today's and this month's sales, customer count, pending deliveries, stock alerts."""
    store = get_store(store)
    today = today or date.today()
    month_start = today.replace(day=1)

    daily = _sales_between(store, today, today)
    monthly = _sales_between(store, month_start, today)

    recent = store.orders.find({"status__ne": "cancelled"}, order_by=["-created_at", "-id"], limit=5)

    return {
        "date": to_iso_date(today),
        "daily_sales": amount_str(_sum_totals(daily)),
        "daily_sales_display": round_currency(_sum_totals(daily)),
        "daily_sales_count": len(daily),
        "monthly_income": amount_str(_sum_totals(monthly)),
        "monthly_income_display": round_currency(_sum_totals(monthly)),
        "active_customers": store.customers.count(),
        "pending_deliveries": store.delivery_routes.count({
            "route_date": today,
            "delivery_status": "pending",
            "status__ne": "cancelled",
        }),
        "alerts": {
            "low_stock": inventory_service.low_stock_items(store=store),
            "pending_payments": store.orders.count({"payment_status": "pending", "status": "confirmed"}),
        },
        "recent_sales": [
            {
                "id": o.id,
                "created_at": o.to_dict()["created_at"],
                "customer": o.customer.full_name if o.customer else "",
                "total": amount_str(o.total_amount),
                "total_display": round_currency(o.total_amount),
            }
            for o in recent
        ],
        "top_products": _top_products(store, monthly, 5),
    }


def _period_key(d: date, group_by: str) -> str:
    if group_by == "day":
        return d.isoformat()
    if group_by == "week":
        # Weeks start on Sunday
        return (d - timedelta(days=(d.weekday() + 1) % 7)).isoformat()
    return f"{d.year:04d}-{d.month:02d}"


def sales_report(start: date, end: date, group_by: str = "day", *, store: DataStore | None = None) -> dict:
    if group_by not in GROUPINGS:
        raise ReportError("group_by must be day, week, or month")
    if start > end:
        raise ReportError("start must be on or before end")

    store = get_store(store)
    orders = _sales_between(store, start, end)

    periods: "OrderedDict[str, dict]" = OrderedDict()
    customers: dict[int, dict] = {}
    for order in orders:
        key = _period_key(order.created_at.date(), group_by)
        bucket = periods.setdefault(key, {"period": key, "total": ZERO, "count": 0})
        bucket["total"] += order.total_amount
        bucket["count"] += 1

        c = customers.setdefault(order.customer_id, {
            "customer_id": order.customer_id,
            "customer_name": order.customer.full_name if order.customer else "",
            "total_orders": 0,
            "total_amount": ZERO,
        })
        c["total_orders"] += 1
        c["total_amount"] += order.total_amount

    top_customers = sorted(customers.values(), key=lambda r: -r["total_amount"])[:10]

    routes = store.delivery_routes.find({"route_date__gte": start, "route_date__lte": end})
    completed = sum(1 for r in routes if r.delivery_status == "completed")
    pending = sum(1 for r in routes if r.delivery_status == "pending")

    return {
        "start": to_iso_date(start),
        "end": to_iso_date(end),
        "group_by": group_by,
        "sales_by_period": [
            {**b, "total": amount_str(b["total"])} for b in sorted(periods.values(), key=lambda b: b["period"])
        ],
        "top_products": _top_products(store, orders, 10),
        "top_customers": [{**c, "total_amount": amount_str(c["total_amount"])} for c in top_customers],
        "delivery_metrics": {
            "total_deliveries": len(routes),
            "completed_deliveries": completed,
            "pending_deliveries": pending,
            "completion_rate": round(completed * 100 / len(routes), 2) if routes else 0,
        },
    }
