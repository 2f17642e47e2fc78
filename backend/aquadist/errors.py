# Overview: Domain error taxonomy shared by services and routes.
"""
Every domain error carries a human-readable message plus a `details` dict
that routes return verbatim as JSON. ValidationError and ConflictError
(input problems) live in validation.py.
"""
from __future__ import annotations


class DomainError(Exception):
    """Base class for errors surfaced to the UI layer."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InsufficientStockError(DomainError):
    """Requested quantity exceeds on-hand stock. Raised before any write."""
    status_code = 409

    def __init__(self, product_id: int, product_name: str | None, requested: int, available: int):
        self.product_id = product_id
        self.product_name = product_name
        self.requested = requested
        self.available = available
        label = product_name or f"product {product_id}"
        super().__init__(
            f"Insufficient stock for {label}: requested {requested}, available {available}",
            details={
                "product_id": product_id,
                "product_name": product_name,
                "requested": requested,
                "available": available,
            },
        )


class NegativeStockError(DomainError):
    """An inventory write would leave on-hand quantity below zero."""
    status_code = 409

    def __init__(self, product_id: int, current: int, delta: int):
        self.product_id = product_id
        self.current = current
        self.delta = delta
        super().__init__(
            f"Movement of {delta} would make stock negative for product {product_id} (on hand {current})",
            details={"product_id": product_id, "current_quantity": current, "quantity_delta": delta},
        )


class PersistenceError(DomainError):
    """Failure from the data store, tagged with the step that failed."""
    status_code = 503

    def __init__(self, step: str, message: str, *, retryable: bool = False):
        self.step = step
        self.retryable = retryable
        super().__init__(f"{step} failed: {message}", details={"step": step})


class NotFoundError(DomainError):
    status_code = 404
