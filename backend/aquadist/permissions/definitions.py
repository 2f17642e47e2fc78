# Overview: All capability definitions organized by category.
# Each capability is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- CATALOG --

CATALOG_PERMISSIONS = [
    (
        "VIEW_CATALOG",
        "View Catalog",
        "List products and prices",
        PermissionCategory.CATALOG,
    ),
    (
        "MANAGE_PRODUCTS",
        "Manage Products",
        "Create, edit, deactivate and delete products",
        PermissionCategory.CATALOG,
    ),
]


# -- CUSTOMERS --

CUSTOMER_PERMISSIONS = [
    (
        "VIEW_CUSTOMERS",
        "View Customers",
        "Search and view customer records",
        PermissionCategory.CUSTOMERS,
    ),
    (
        "MANAGE_CUSTOMERS",
        "Manage Customers",
        "Create and edit customer records",
        PermissionCategory.CUSTOMERS,
    ),
    (
        "DELETE_CUSTOMERS",
        "Delete Customers",
        "Delete customer records",
        PermissionCategory.CUSTOMERS,
    ),
]


# -- SALES --

SALES_PERMISSIONS = [
    (
        "VIEW_SALES",
        "View Sales",
        "List and view sales",
        PermissionCategory.SALES,
    ),
    (
        "CREATE_SALE",
        "Create Sale",
        "Finalize counter and mobile sales",
        PermissionCategory.SALES,
    ),
    (
        "EDIT_SALE",
        "Edit Sale",
        "Replace the items of a confirmed sale (own sales unless admin)",
        PermissionCategory.SALES,
    ),
    (
        "CANCEL_SALE",
        "Cancel Sale",
        "Cancel a sale and return its stock (own sales unless admin)",
        PermissionCategory.SALES,
    ),
    (
        "DELETE_SALE",
        "Delete Sale",
        "Delete a sale and its items",
        PermissionCategory.SALES,
    ),
]


# -- ROUTES --

ROUTE_PERMISSIONS = [
    (
        "VIEW_ROUTES",
        "View Routes",
        "View the delivery route for a date",
        PermissionCategory.ROUTES,
    ),
    (
        "MANAGE_ROUTES",
        "Manage Routes",
        "Schedule deliveries on a route",
        PermissionCategory.ROUTES,
    ),
    (
        "EDIT_ROUTE",
        "Edit Route",
        "Replace the items of a scheduled delivery (own deliveries unless admin)",
        PermissionCategory.ROUTES,
    ),
    (
        "COMPLETE_ROUTES",
        "Complete Routes",
        "Mark deliveries completed or cancelled",
        PermissionCategory.ROUTES,
    ),
]


# -- INVENTORY --

INVENTORY_PERMISSIONS = [
    (
        "VIEW_INVENTORY",
        "View Inventory",
        "View stock levels and movements",
        PermissionCategory.INVENTORY,
    ),
    (
        "ADJUST_INVENTORY",
        "Adjust Inventory",
        "Record manual stock movements and alert thresholds",
        PermissionCategory.INVENTORY,
    ),
]


# -- FINANCES --

FINANCE_PERMISSIONS = [
    (
        "VIEW_FINANCES",
        "View Finances",
        "View income, expenses and the dashboard",
        PermissionCategory.FINANCES,
    ),
    (
        "MANAGE_EXPENSES",
        "Manage Expenses",
        "Record operating expenses",
        PermissionCategory.FINANCES,
    ),
]


# -- USERS --

USER_PERMISSIONS = [
    (
        "MANAGE_USERS",
        "Manage Users",
        "Create users, change roles, activate and deactivate accounts",
        PermissionCategory.USERS,
    ),
]


PERMISSION_DEFINITIONS = (
    CATALOG_PERMISSIONS
    + CUSTOMER_PERMISSIONS
    + SALES_PERMISSIONS
    + ROUTE_PERMISSIONS
    + INVENTORY_PERMISSIONS
    + FINANCE_PERMISSIONS
    + USER_PERMISSIONS
)
