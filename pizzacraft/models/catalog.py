from enum import Enum
from tortoise import fields, models
import uuid


class IngredientCategory(str, Enum):
    BASE = "base"
    SAUCE = "sauce"
    CHEESE = "cheese"
    VEGETABLE = "vegetable"
    MEAT = "meat"


TOPPING_CATEGORIES = (IngredientCategory.VEGETABLE, IngredientCategory.MEAT)


class CatalogItem(models.Model):
    """A single orderable ingredient. Stock is only ever decremented by orders."""
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    category = fields.CharEnumField(IngredientCategory)
    name = fields.CharField(max_length=255)
    description = fields.TextField(default="")
    price = fields.DecimalField(max_digits=12, decimal_places=2)
    stock = fields.IntField(default=0)
    threshold = fields.IntField(default=10)  # For low stock alert
    unit = fields.CharField(max_length=32, default="servings")
    is_active = fields.BooleanField(default=True)
    image_url = fields.CharField(max_length=512, null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "catalog_items"
        indexes = [
            ("category", "is_active"),  # Builder menu queries
            ("stock", "threshold"),     # Low stock sweeps
        ]

    def __str__(self):
        return f"{self.name} ({self.category.value})"
