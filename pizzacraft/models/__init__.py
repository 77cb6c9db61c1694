# pizzacraft/models/__init__.py
from .catalog import CatalogItem, IngredientCategory
from .order import (
    Order,
    OrderItem,
    OrderSequence,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    PizzaSize,
)
from .user import User, UserRole

# Export all models
__all__ = [
    "CatalogItem",
    "IngredientCategory",
    "Order",
    "OrderItem",
    "OrderSequence",
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
    "PizzaSize",
    "User",
    "UserRole",
]
