from .auth import User
from .catalog import Product
from .customers import Customer
from .inventory import InventoryItem, InventoryMovement, InventoryAlert
from .sales import Order, OrderItem
from .delivery import DeliveryRoute, DeliveryRouteItem
from .finances import Expense

__all__ = [
    'User',
    'Product',
    'Customer',
    'InventoryItem', 'InventoryMovement', 'InventoryAlert',
    'Order', 'OrderItem',
    'DeliveryRoute', 'DeliveryRouteItem',
    'Expense',
]
