import logging
from collections import defaultdict
from typing import Dict, List, Optional
from uuid import UUID

from tortoise.expressions import F
from tortoise.transactions import in_transaction

from pizzacraft.core.exceptions import InsufficientStockError, NotFoundError, ValidationError
from pizzacraft.models.catalog import CatalogItem, IngredientCategory
from pizzacraft.schemas.catalog import CatalogItemRequest, CatalogItemUpdate

log = logging.getLogger(__name__)


async def list_items(category: Optional[IngredientCategory] = None,
                     active: Optional[bool] = None) -> List[CatalogItem]:
    query = CatalogItem.all()
    if category is not None:
        query = query.filter(category=category)
    if active is not None:
        query = query.filter(is_active=active)
    return await query.order_by("category", "name")


async def categorized_items() -> Dict[str, List[CatalogItem]]:
    """Orderable ingredients (active, in stock) grouped by category for the pizza builder."""
    items = await CatalogItem.filter(is_active=True, stock__gt=0).order_by("category", "name")
    grouped = defaultdict(list)
    for item in items:
        grouped[item.category.value].append(item)
    return dict(grouped)


async def low_stock_items() -> List[CatalogItem]:
    """Active items whose stock is at or below their own threshold."""
    items = await CatalogItem.filter(is_active=True).order_by("category", "name")
    return [item for item in items if item.stock <= item.threshold]


async def critical_stock_items(level: int) -> List[CatalogItem]:
    return await CatalogItem.filter(is_active=True, stock__lte=level).order_by("category", "name")


async def get_item(item_id: UUID) -> CatalogItem:
    item = await CatalogItem.get_or_none(id=item_id)
    if not item:
        raise NotFoundError("Inventory item not found")
    return item


async def create_item(data: CatalogItemRequest) -> CatalogItem:
    item = await CatalogItem.create(**data.model_dump())
    log.info(f"Catalog item created: {item.name} ({item.category.value}), stock {item.stock}")
    return item


async def update_item(item_id: UUID, data: CatalogItemUpdate) -> CatalogItem:
    item = await get_item(item_id)
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("No fields to update")
    for field, value in changes.items():
        if value is None and field != "image_url":
            raise ValidationError(f"{field} cannot be null")
        setattr(item, field, value)
    await item.save()
    log.info(f"Catalog item {item.id} updated: {sorted(changes)}")
    return item


async def delete_item(item_id: UUID) -> None:
    deleted = await CatalogItem.filter(id=item_id).delete()
    if not deleted:
        raise NotFoundError("Inventory item not found")
    log.info(f"Catalog item {item_id} deleted")


async def decrement_stock(requirements: Dict[UUID, int], conn) -> None:
    """
    Decrements every required ingredient with a conditional update
    (``stock = stock - n WHERE stock >= n``), so concurrent orders can never
    oversell. Raises on the first shortfall; callers run this inside a
    transaction so earlier decrements are rolled back with it.
    """
    # Stable lock order across concurrent transactions
    for item_id in sorted(requirements, key=str):
        quantity = requirements[item_id]
        updated = await CatalogItem.filter(id=item_id, stock__gte=quantity).using_db(conn).update(
            stock=F("stock") - quantity
        )
        if updated:
            continue

        item = await CatalogItem.get_or_none(id=item_id).using_db(conn)
        if not item:
            raise NotFoundError(f"Inventory item {item_id} not found")
        log.warning(f"Insufficient stock for {item.name}. Available: {item.stock}, Required: {quantity}")
        raise InsufficientStockError(item.name, item.stock, quantity)


async def restore_stock(requirements: Dict[UUID, int], conn) -> None:
    """Adds quantities back. Items deleted since the order are skipped."""
    for item_id in sorted(requirements, key=str):
        quantity = requirements[item_id]
        updated = await CatalogItem.filter(id=item_id).using_db(conn).update(stock=F("stock") + quantity)
        if not updated:
            log.warning(f"Cannot restore stock for missing inventory item {item_id}")


async def apply_stock_decrements(items: List[dict]) -> None:
    """Admin endpoint: all-or-nothing decrement of ``[{"id", "quantity"}]``."""
    requirements: Dict[UUID, int] = defaultdict(int)
    for entry in items:
        requirements[entry["id"]] += entry["quantity"]

    async with in_transaction() as conn:
        await decrement_stock(requirements, conn)
    log.info(f"Stock levels updated for {len(requirements)} items")


# Initial catalog for a fresh store (prices in INR, added on top of the base pizza price)
SEED_INVENTORY = [
    # Pizza Bases
    {"name": "Classic Thin Crust", "category": IngredientCategory.BASE, "description": "Light, crispy, and traditional", "price": 0, "stock": 50, "threshold": 20, "unit": "pieces"},
    {"name": "Thick Crust", "category": IngredientCategory.BASE, "description": "Fluffy and filling base", "price": 150, "stock": 40, "threshold": 15, "unit": "pieces"},
    {"name": "Stuffed Crust", "category": IngredientCategory.BASE, "description": "Cheese-filled crust edges", "price": 300, "stock": 30, "threshold": 10, "unit": "pieces"},
    {"name": "Gluten-Free", "category": IngredientCategory.BASE, "description": "Made with alternative flour", "price": 200, "stock": 25, "threshold": 10, "unit": "pieces"},
    {"name": "Whole Wheat", "category": IngredientCategory.BASE, "description": "Healthy whole grain option", "price": 80, "stock": 35, "threshold": 15, "unit": "pieces"},
    # Sauces
    {"name": "Classic Tomato", "category": IngredientCategory.SAUCE, "description": "Traditional pizza sauce", "price": 0, "stock": 100, "threshold": 30, "unit": "servings"},
    {"name": "BBQ Sauce", "category": IngredientCategory.SAUCE, "description": "Sweet and tangy BBQ", "price": 80, "stock": 80, "threshold": 25, "unit": "servings"},
    {"name": "White Sauce", "category": IngredientCategory.SAUCE, "description": "Creamy garlic alfredo", "price": 120, "stock": 70, "threshold": 20, "unit": "servings"},
    {"name": "Pesto", "category": IngredientCategory.SAUCE, "description": "Fresh basil pesto", "price": 150, "stock": 60, "threshold": 15, "unit": "servings"},
    {"name": "Buffalo Sauce", "category": IngredientCategory.SAUCE, "description": "Spicy buffalo wing sauce", "price": 120, "stock": 50, "threshold": 15, "unit": "servings"},
    # Cheeses
    {"name": "Mozzarella", "category": IngredientCategory.CHEESE, "description": "Classic stretchy cheese", "price": 0, "stock": 200, "threshold": 50, "unit": "servings"},
    {"name": "Cheddar", "category": IngredientCategory.CHEESE, "description": "Sharp and flavorful", "price": 80, "stock": 150, "threshold": 40, "unit": "servings"},
    {"name": "Parmesan", "category": IngredientCategory.CHEESE, "description": "Aged and nutty", "price": 150, "stock": 100, "threshold": 30, "unit": "servings"},
    {"name": "Four Cheese Blend", "category": IngredientCategory.CHEESE, "description": "Mozzarella, cheddar, parmesan, provolone", "price": 250, "stock": 80, "threshold": 25, "unit": "servings"},
    {"name": "Vegan Cheese", "category": IngredientCategory.CHEESE, "description": "Plant-based alternative", "price": 180, "stock": 60, "threshold": 20, "unit": "servings"},
    # Vegetables
    {"name": "Mushrooms", "category": IngredientCategory.VEGETABLE, "description": "Fresh button mushrooms", "price": 80, "stock": 120, "threshold": 30, "unit": "servings"},
    {"name": "Bell Peppers", "category": IngredientCategory.VEGETABLE, "description": "Colorful bell peppers", "price": 70, "stock": 100, "threshold": 25, "unit": "servings"},
    {"name": "Red Onions", "category": IngredientCategory.VEGETABLE, "description": "Sweet red onions", "price": 40, "stock": 150, "threshold": 40, "unit": "servings"},
    {"name": "Black Olives", "category": IngredientCategory.VEGETABLE, "description": "Mediterranean olives", "price": 120, "stock": 90, "threshold": 25, "unit": "servings"},
    {"name": "Tomatoes", "category": IngredientCategory.VEGETABLE, "description": "Fresh cherry tomatoes", "price": 60, "stock": 80, "threshold": 20, "unit": "servings"},
    {"name": "Spinach", "category": IngredientCategory.VEGETABLE, "description": "Fresh baby spinach", "price": 80, "stock": 70, "threshold": 20, "unit": "servings"},
    {"name": "Jalapeños", "category": IngredientCategory.VEGETABLE, "description": "Spicy jalapeño peppers", "price": 90, "stock": 60, "threshold": 15, "unit": "servings"},
    {"name": "Corn", "category": IngredientCategory.VEGETABLE, "description": "Sweet corn kernels", "price": 50, "stock": 80, "threshold": 20, "unit": "servings"},
    # Meat
    {"name": "Pepperoni", "category": IngredientCategory.MEAT, "description": "Classic spicy pepperoni", "price": 150, "stock": 100, "threshold": 25, "unit": "servings"},
    {"name": "Italian Sausage", "category": IngredientCategory.MEAT, "description": "Seasoned pork sausage", "price": 200, "stock": 80, "threshold": 20, "unit": "servings"},
    {"name": "Grilled Chicken", "category": IngredientCategory.MEAT, "description": "Tender grilled chicken", "price": 250, "stock": 70, "threshold": 20, "unit": "servings"},
    {"name": "Ham", "category": IngredientCategory.MEAT, "description": "Smoked ham slices", "price": 180, "stock": 60, "threshold": 15, "unit": "servings"},
    {"name": "Bacon", "category": IngredientCategory.MEAT, "description": "Crispy bacon strips", "price": 220, "stock": 50, "threshold": 15, "unit": "servings"},
    {"name": "Ground Beef", "category": IngredientCategory.MEAT, "description": "Seasoned ground beef", "price": 200, "stock": 60, "threshold": 15, "unit": "servings"},
]


async def seed_inventory() -> int:
    """Loads SEED_INVENTORY into an empty catalog. Returns the number of items created."""
    if await CatalogItem.all().count() > 0:
        raise ValidationError("Inventory already contains items")
    await CatalogItem.bulk_create([CatalogItem(**data) for data in SEED_INVENTORY])
    log.info(f"Inventory seeded with {len(SEED_INVENTORY)} items")
    return len(SEED_INVENTORY)
