# Overview: Capability checks evaluated once at the domain boundary.
"""
can(actor, action, resource=None)

- Fail closed: unknown actors, inactive actors and unknown capability
  codes are denied.
- admin holds every capability.
- Other roles hold their DEFAULT_ROLE_PERMISSIONS set.
- Ownership-scoped actions (EDIT_SALE, CANCEL_SALE, EDIT_ROUTE) also need
  resource.created_by_user_id == actor.id when a resource is given.
"""
from __future__ import annotations

from flask import current_app

from ..permissions import DEFAULT_ROLE_PERMISSIONS, OWNERSHIP_SCOPED_PERMISSIONS, validate_permission_code


class PermissionDeniedError(Exception):
    """Raised when the actor lacks the required capability."""

    def __init__(self, action: str, message: str | None = None):
        self.action = action
        super().__init__(message or f"Missing capability {action}")


def get_role_permissions(role: str | None) -> set[str]:
    return set(DEFAULT_ROLE_PERMISSIONS.get(role or "", ()))


def can(actor, action: str, resource=None) -> bool:
    if actor is None or not getattr(actor, "is_active", False):
        return False
    if not validate_permission_code(action):
        return False
    if actor.role == "admin":
        return True
    if action not in get_role_permissions(actor.role):
        return False
    if action in OWNERSHIP_SCOPED_PERMISSIONS and resource is not None:
        return getattr(resource, "created_by_user_id", None) == actor.id
    return True


def require(actor, action: str, resource=None) -> None:
    if can(actor, action, resource):
        return
    current_app.logger.warning(
        "Permission denied: user=%s role=%s action=%s resource=%s",
        getattr(actor, "id", None), getattr(actor, "role", None), action,
        getattr(resource, "id", None),
    )
    if resource is not None and action in OWNERSHIP_SCOPED_PERMISSIONS and action in get_role_permissions(getattr(actor, "role", None)):
        raise PermissionDeniedError(action, f"{action} is limited to records you created")
    raise PermissionDeniedError(action)
