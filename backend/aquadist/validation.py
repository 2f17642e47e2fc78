from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import Boolean, Date, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .money import to_decimal
from .time_utils import parse_iso_date, parse_iso_datetime
from .models.catalog import PRODUCT_CATEGORIES
from .models.customers import CUSTOMER_CATEGORIES
from .models.finances import EXPENSE_CATEGORIES


# Maximum unit price: 999,999,999 CLP net
MAX_PRICE = Decimal("999999999")

# Chilean RUT: 12.345.678-9 or 12345678-9 (check digit 0-9 or K)
TAX_ID_PATTERN = re.compile(r"^(\d{1,2}\.\d{3}\.\d{3}-[\dkK]|\d{7,8}-[\dkK])$")


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate product code)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped or "e" in stripped.lower() or "." in stripped:
                raise ValidationError(f"{col.key} must be a plain integer")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer")
        raise ValidationError(f"{col.key} must be an integer")

    # Money columns; floats are accepted but routed through str() to avoid binary noise
    if isinstance(coltype, Numeric):
        if isinstance(value, bool):
            raise ValidationError(f"{col.key} must be a number")
        try:
            return to_decimal(value)
        except ValueError:
            raise ValidationError(f"{col.key} must be a number")

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in {"true", "1", "yes"}:
            return True
        if isinstance(value, str) and value.strip().lower() in {"false", "0", "no"}:
            return False
        raise ValidationError(f"{col.key} must be a boolean")

    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    if isinstance(coltype, Date):
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                d = parse_iso_date(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 date")
            if d is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 date")
            return d
        raise ValidationError(f"{col.key} must be a date")

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def require_positive_int(value: Any, field: str, *, allow_zero: bool = False) -> int:
    """Strict integer check for request fields that are not model columns."""
    if isinstance(value, bool) or not isinstance(value, int):
        text = value.strip() if isinstance(value, str) else ""
        if not (text.isascii() and text.lstrip("-").isdigit()):
            raise ValidationError(f"{field} must be an integer")
        try:
            value = int(text)
        except ValueError:
            raise ValidationError(f"{field} must be an integer") from None
    if value < 0 or (value == 0 and not allow_zero):
        raise ValidationError(f"{field} must be {'>= 0' if allow_zero else '> 0'}")
    return value


def is_valid_tax_id(tax_id: str | None) -> bool:
    return bool(tax_id) and TAX_ID_PATTERN.match(tax_id) is not None


def enforce_rules_product(patch: dict) -> None:
    if "price" in patch and patch["price"] is not None:
        price = patch["price"]
        if price < 0:
            raise ValidationError("price must be >= 0")
        if price > MAX_PRICE:
            raise ValidationError(f"price cannot exceed {MAX_PRICE}")

    if "category" in patch and patch["category"] not in PRODUCT_CATEGORIES:
        raise ValidationError(f"category must be one of: {', '.join(PRODUCT_CATEGORIES)}")


def enforce_rules_customer(patch: dict, current=None) -> None:
    """
    Business customers require a valid tax id; personal customers may omit it.
    Bottle counters and credit_limit cannot be negative.
    An empty tax id is normalized to None in place. `current` is the stored
    Customer on updates, so a partial patch is checked against the merged record.
    """
    category = patch.get("category") or (current.category if current is not None else "personal")
    if category not in CUSTOMER_CATEGORIES:
        raise ValidationError(f"category must be one of: {', '.join(CUSTOMER_CATEGORIES)}")

    if "tax_id" in patch and not patch["tax_id"]:
        patch["tax_id"] = None

    if "tax_id" in patch:
        tax_id = patch["tax_id"]
    else:
        tax_id = current.tax_id if current is not None else None

    if tax_id is not None and not is_valid_tax_id(tax_id):
        raise ValidationError("Invalid tax id. Expected format: 12.345.678-9 or 12345678-9")

    if category == "business" and tax_id is None:
        raise ValidationError("Business customers require a tax id")

    for counter in ("bottles_owned", "bottles_lent"):
        if counter in patch and patch[counter] is not None and patch[counter] < 0:
            raise ValidationError(f"{counter} must be >= 0")

    if "credit_limit" in patch and patch["credit_limit"] is not None and patch["credit_limit"] < 0:
        raise ValidationError("credit_limit must be >= 0")


def enforce_rules_expense(patch: dict) -> None:
    if "amount" in patch and patch["amount"] is not None and patch["amount"] <= 0:
        raise ValidationError("amount must be > 0")
    if "category" in patch and patch["category"] not in EXPENSE_CATEGORIES:
        raise ValidationError(f"category must be one of: {', '.join(EXPENSE_CATEGORIES)}")
