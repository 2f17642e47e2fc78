# Overview: Request identity and capability decorators for API routes.

from functools import wraps

from flask import request, jsonify, g, current_app

from .errors import DomainError
from .validation import ValidationError, ConflictError
from .services import permission_service
from .services.datastore import DataStore
from .services.permission_service import PermissionDeniedError


# Exceptions routes turn into JSON errors via error_response()
DOMAIN_ERRORS = (DomainError, ValidationError, ConflictError, PermissionDeniedError)


def _is_authenticated() -> bool:
    return getattr(g, "current_user", None) is not None


def require_auth(f):
    """
    Resolve the acting user from the identity header.

    The upstream identity service authenticates the request and forwards the
    user id in ACTOR_HEADER (default X-Actor-Id). Sets g.current_user.

    Returns 401 if the header is missing or malformed, the user does not
    exist, or the account is deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = request.headers.get(current_app.config["ACTOR_HEADER"], "").strip()
        if not raw:
            return jsonify({"error": "Authentication required"}), 401
        if not (raw.isascii() and raw.isdigit()):
            return jsonify({"error": "Invalid actor id"}), 401

        user = DataStore().users.get(int(raw))
        if user is None or not user.is_active:
            return jsonify({"error": "Unknown or inactive user"}), 401

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """Require a capability held by the actor's role (ownership is checked in the route)."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            try:
                permission_service.require(g.current_user, permission_code)
            except PermissionDeniedError as e:
                return jsonify({
                    "error": "Permission denied",
                    "required_permission": permission_code,
                    "message": str(e),
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def error_response(e: Exception):
    """Translate a domain exception into the JSON error body and status code."""
    if isinstance(e, PermissionDeniedError):
        return jsonify({"error": "Permission denied", "required_permission": e.action, "message": str(e)}), 403
    if isinstance(e, ValidationError):
        return jsonify({"error": str(e)}), 400
    if isinstance(e, ConflictError):
        return jsonify({"error": str(e)}), 409
    if isinstance(e, DomainError):
        if e.status_code >= 500:
            current_app.logger.error("Persistence failure: %s", e.message)
        return jsonify({"error": e.message, "details": e.details}), e.status_code
    raise e
