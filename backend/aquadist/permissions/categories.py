# Overview: Capability category constants for grouping related capabilities.


class PermissionCategory:
    """Capability categories for organization and UI display."""
    CATALOG = "CATALOG"
    CUSTOMERS = "CUSTOMERS"
    SALES = "SALES"
    ROUTES = "ROUTES"
    INVENTORY = "INVENTORY"
    FINANCES = "FINANCES"
    USERS = "USERS"
