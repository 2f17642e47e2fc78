# Overview: Capability system package.
# Re-exports all public APIs so callers import from `aquadist.permissions`.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    CATALOG_PERMISSIONS,
    CUSTOMER_PERMISSIONS,
    SALES_PERMISSIONS,
    ROUTE_PERMISSIONS,
    INVENTORY_PERMISSIONS,
    FINANCE_PERMISSIONS,
    USER_PERMISSIONS,
)
from .roles import ROLES, DEFAULT_ROLE_PERMISSIONS, OWNERSHIP_SCOPED_PERMISSIONS
from .helpers import (
    get_all_permission_codes,
    get_permissions_by_category,
    get_permission_definition,
    validate_permission_code,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "CATALOG_PERMISSIONS",
    "CUSTOMER_PERMISSIONS",
    "SALES_PERMISSIONS",
    "ROUTE_PERMISSIONS",
    "INVENTORY_PERMISSIONS",
    "FINANCE_PERMISSIONS",
    "USER_PERMISSIONS",
    "ROLES",
    "DEFAULT_ROLE_PERMISSIONS",
    "OWNERSHIP_SCOPED_PERMISSIONS",
    "get_all_permission_codes",
    "get_permissions_by_category",
    "get_permission_definition",
    "validate_permission_code",
]
