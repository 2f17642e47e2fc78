# Overview: Default capability sets per role.

from .helpers import get_all_permission_codes

ROLES = ("admin", "seller", "delivery", "collector")

DEFAULT_ROLE_PERMISSIONS = {
    # Admin gets ALL capabilities
    "admin": get_all_permission_codes(),
    "seller": [
        "VIEW_CATALOG",
        "VIEW_CUSTOMERS",
        "MANAGE_CUSTOMERS",
        "VIEW_SALES",
        "CREATE_SALE",
        "EDIT_SALE",
        "CANCEL_SALE",
        "VIEW_ROUTES",
        "VIEW_INVENTORY",
    ],
    "delivery": [
        "VIEW_CATALOG",
        "VIEW_CUSTOMERS",
        "VIEW_ROUTES",
        "MANAGE_ROUTES",
        "EDIT_ROUTE",
        "COMPLETE_ROUTES",
        "VIEW_INVENTORY",
        "CREATE_SALE",
    ],
    "collector": [
        "VIEW_CUSTOMERS",
        "VIEW_SALES",
        "VIEW_ROUTES",
        "VIEW_FINANCES",
    ],
}

# Actions that, below admin, only apply to resources the actor created
OWNERSHIP_SCOPED_PERMISSIONS = {"EDIT_SALE", "CANCEL_SALE", "EDIT_ROUTE"}
