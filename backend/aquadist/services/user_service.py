# Overview: Service-layer operations for back-office user records.

from __future__ import annotations

from ..errors import NotFoundError
from ..permissions import ROLES
from ..validation import ConflictError, ValidationError
from .datastore import DataStore, get_store


def _check_role(role: str) -> None:
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}")


def _normalize_email(email) -> str:
    email = (email or "").strip().lower()
    if "@" not in email:
        raise ValidationError("A valid email is required")
    return email


def get_user(user_id: int, *, store: DataStore | None = None):
    user = get_store(store).users.get(user_id)
    if user is None:
        raise NotFoundError("User not found", details={"user_id": user_id})
    return user


def list_users(active: bool | None = None, *, store: DataStore | None = None) -> list:
    filters = {"is_active": active} if active is not None else None
    return get_store(store).users.find(filters, order_by=["full_name", "id"])


def create_user(
    email: str,
    full_name: str,
    role: str = "seller",
    phone: str | None = None,
    *,
    store: DataStore | None = None,
):
    store = get_store(store)
    email = _normalize_email(email)
    full_name = (full_name or "").strip()
    if not full_name:
        raise ValidationError("full_name is required")
    _check_role(role)

    with store.transaction():
        if store.users.first({"email": email}) is not None:
            raise ConflictError("A user with this email already exists.")
        user = store.users.insert({
            "email": email,
            "full_name": full_name,
            "role": role,
            "phone": phone,
            "is_active": True,
        })
    return user


def update_user(user_id: int, *, changes: dict, actor=None, store: DataStore | None = None):
    """Change role, activation, name or phone. Admins cannot demote or deactivate themselves."""
    store = get_store(store)
    allowed = {"role", "is_active", "full_name", "phone"}
    unknown = set(changes) - allowed
    if unknown:
        raise ValidationError(f"Field not allowed: {sorted(unknown)[0]}")
    if "role" in changes:
        _check_role(changes["role"])
    if "is_active" in changes and not isinstance(changes["is_active"], bool):
        raise ValidationError("is_active must be a boolean")

    with store.transaction():
        get_user(user_id, store=store)
        if actor is not None and actor.id == user_id:
            if changes.get("is_active") is False or changes.get("role", actor.role) != actor.role:
                raise ValidationError("You cannot change your own role or deactivate yourself")
        user = store.users.update(user_id, changes)
    return user

