# Overview: Bulk customer import from spreadsheet rows; every row is checked before anything is written.
"""
Customer Import Contract (authoritative)

Input: the rows of a spreadsheet's first sheet, one dict per row keyed by
column header. "rut" is read as tax_id and "type" as category; any type
other than "business" imports as "personal".

Codes are assigned, never read from the rows: CLI001, CLI002, ... continuing
after the highest existing CLI code. Padding is three digits minimum.

All-or-nothing:
- every row is normalized and validated first
- any row error rejects the batch with CustomerImportError, whose details
  list {row, errors} per failing row (row numbers start at 1)
- otherwise all rows are inserted inside ONE DataStore transaction
"""
from __future__ import annotations

import re
from decimal import Decimal
from typing import Any

from ..errors import DomainError
from ..models import Customer
from ..money import to_decimal
from ..validation import ValidationError, enforce_rules_customer
from .datastore import DataStore, get_store

CODE_PREFIX = "CLI"
CODE_PATTERN = re.compile(r"^CLI(\d+)$")
MAX_ROWS = 1000
REQUIRED_FIELDS = ("full_name", "street", "number", "district", "city")


class CustomerImportError(DomainError):
    """One or more rows failed validation; nothing was imported."""
    status_code = 400


def _to_int(value: Any) -> int:
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise ValueError("not a number")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    text = str(value).strip()
    if not text:
        return 0
    return int(float(text))


def _to_amount(value: Any) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, str):
        value = value.strip().replace("$", "").replace(",", "") or "0"
    amount = to_decimal(value)
    if not amount.is_finite():
        raise ValueError("not a finite number")
    return amount


def _to_text(value: Any) -> str | None:
    if value is None:
        return None
    # Spreadsheet readers hand back numeric cells (street numbers, phones) as floats
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text if text else None


class CustomersImportSchema:
    def normalize_row(self, raw_row: dict[str, Any]) -> tuple[dict[str, Any], list[str]]:
        errors: list[str] = []
        category = _to_text(raw_row.get("type")) or _to_text(raw_row.get("category"))
        row = {
            "full_name": _to_text(raw_row.get("full_name")),
            "tax_id": _to_text(raw_row.get("rut")) or _to_text(raw_row.get("tax_id")),
            "category": "business" if (category or "").lower() == "business" else "personal",
            "street": _to_text(raw_row.get("street")),
            "number": _to_text(raw_row.get("number")),
            "district": _to_text(raw_row.get("district")),
            "city": _to_text(raw_row.get("city")),
            "reference": _to_text(raw_row.get("reference")),
            "phone": _to_text(raw_row.get("phone")),
            "email": _to_text(raw_row.get("email")),
            "contact": _to_text(raw_row.get("contact")),
            "comments": _to_text(raw_row.get("comments")),
        }
        for counter in ("bottles_owned", "bottles_lent"):
            try:
                row[counter] = _to_int(raw_row.get(counter))
            except (TypeError, ValueError, OverflowError):
                errors.append(f"{counter} must be an integer")
        try:
            row["credit_limit"] = _to_amount(raw_row.get("credit_limit"))
        except ValueError:
            errors.append("credit_limit must be a number")
        return row, errors

    def validate_row(self, normalized_row: dict[str, Any]) -> list[str]:
        errors = [f"{name} is required" for name in REQUIRED_FIELDS if not normalized_row.get(name)]

        columns = Customer.__table__.columns
        for key, value in normalized_row.items():
            length = getattr(columns[key].type, "length", None)
            if length and isinstance(value, str) and len(value) > length:
                errors.append(f"{key} exceeds max length {length}")

        try:
            enforce_rules_customer(normalized_row)
        except ValidationError as e:
            errors.append(str(e))
        return errors


def next_customer_code(store: DataStore | None = None) -> str:
    """The CLI code after the highest one on file (CLI001 for an empty table)."""
    return _format_code(_highest_code_number(get_store(store)) + 1)


def _highest_code_number(store: DataStore) -> int:
    numbers = [
        int(match.group(1))
        for customer in store.customers.find({"code__ilike": CODE_PREFIX})
        if (match := CODE_PATTERN.match(customer.code))
    ]
    return max(numbers, default=0)


def _format_code(number: int) -> str:
    return f"{CODE_PREFIX}{number:03d}"


def import_customers(rows, *, store: DataStore | None = None) -> list:
    """Validate all rows, then insert them together with sequential codes."""
    store = get_store(store)
    if not isinstance(rows, list) or not rows:
        raise ValidationError("rows must be a non-empty list")
    if len(rows) > MAX_ROWS:
        raise ValidationError(f"At most {MAX_ROWS} rows can be imported at once")

    schema = CustomersImportSchema()
    prepared: list[dict[str, Any]] = []
    failures: list[dict[str, Any]] = []
    for idx, raw_row in enumerate(rows, start=1):
        if not isinstance(raw_row, dict):
            failures.append({"row": idx, "errors": ["row must be an object"]})
            continue
        normalized, errors = schema.normalize_row(raw_row)
        errors.extend(schema.validate_row(normalized))
        if errors:
            failures.append({"row": idx, "errors": errors})
        else:
            prepared.append(normalized)

    if failures:
        raise CustomerImportError(
            f"{len(failures)} of {len(rows)} rows are invalid; nothing was imported",
            details={"rows": failures},
        )

    with store.transaction():
        start = _highest_code_number(store) + 1
        for offset, record in enumerate(prepared):
            record["code"] = _format_code(start + offset)
        customers = store.customers.insert_many(prepared)
    return customers
