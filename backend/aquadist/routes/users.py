# backend/aquadist/routes/users.py
"""
User routes.

- GET /api/users/me returns the acting user with its capability list.
- Listing, creating and updating users requires MANAGE_USERS.
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..permissions import get_all_permission_codes
from ..services import user_service, permission_service
from ..decorators import require_auth, require_permission, error_response, DOMAIN_ERRORS

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("/me")
@require_auth
def me():
    user = g.current_user
    capabilities = [code for code in get_all_permission_codes() if permission_service.can(user, code)]
    return {"user": user.to_dict(), "capabilities": capabilities}, 200


@users_bp.get("")
@require_auth
@require_permission("MANAGE_USERS")
def list_users():
    users = user_service.list_users()
    return {"items": [u.to_dict() for u in users], "count": len(users)}


@users_bp.post("")
@require_auth
@require_permission("MANAGE_USERS")
def create_user():
    data = request.get_json(silent=True) or {}
    try:
        user = user_service.create_user(
            data.get("email"),
            data.get("full_name"),
            role=data.get("role", "seller"),
            phone=data.get("phone"),
        )
        current_app.logger.info("User %s created with role %s by %s", user.id, user.role, g.current_user.id)
        return user.to_dict(), 201
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.patch("/<int:user_id>")
@require_auth
@require_permission("MANAGE_USERS")
def update_user(user_id: int):
    """Body: any of role, is_active, full_name, phone."""
    data = request.get_json(silent=True) or {}
    try:
        user = user_service.update_user(user_id, changes=data, actor=g.current_user)
        return user.to_dict(), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update user")
        return jsonify({"error": "Internal server error"}), 500
