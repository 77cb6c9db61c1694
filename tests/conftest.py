import pytest
import pytest_asyncio
from decimal import Decimal

from pizzacraft.core.db import close_db, init_db
from pizzacraft.core.security import hash_password
from pizzacraft.models.catalog import CatalogItem, IngredientCategory
from pizzacraft.models.user import User, UserRole
from pizzacraft.schemas.order import Address, CustomerInfoInput, PizzaSelection



@pytest_asyncio.fixture
async def db():
    """Fresh in-memory database per test."""
    await init_db("sqlite://:memory:")
    yield
    await close_db()


@pytest_asyncio.fixture
async def customer(db):
    return await User.create(
        first_name="Asha",
        last_name="Rao",
        email="asha@example.com",
        phone="9876543210",
        password_hash=hash_password("secret123"),
    )


@pytest_asyncio.fixture
async def admin(db):
    return await User.create(
        first_name="Store",
        last_name="Admin",
        email="admin@example.com",
        phone="9000000000",
        password_hash=hash_password("admin-pass"),
        role=UserRole.ADMIN,
    )


@pytest_asyncio.fixture
async def catalog(db):
    """One ingredient per slot, keyed by short name."""
    specs = {
        "base": (IngredientCategory.BASE, "Classic Thin Crust", "0", 50, 20),
        "thick": (IngredientCategory.BASE, "Thick Crust", "150", 40, 15),
        "sauce": (IngredientCategory.SAUCE, "Classic Tomato", "0", 100, 30),
        "cheese": (IngredientCategory.CHEESE, "Mozzarella", "0", 200, 50),
        "mushroom": (IngredientCategory.VEGETABLE, "Mushrooms", "80", 120, 30),
        "pepperoni": (IngredientCategory.MEAT, "Pepperoni", "150", 100, 25),
    }
    items = {}
    for key, (category, name, price, stock, threshold) in specs.items():
        items[key] = await CatalogItem.create(
            category=category, name=name, price=Decimal(price), stock=stock, threshold=threshold, unit="servings"
        )
    return items


@pytest.fixture
def address():
    return Address(street="12 MG Road", city="Bengaluru", state="KA", zip_code="560001")


@pytest.fixture
def checkout(address):
    return CustomerInfoInput(address=address)


@pytest.fixture
def make_pizza(catalog):
    def build(quantity=1, size="medium", toppings=(), base="base"):
        return PizzaSelection(
            base_id=catalog[base].id,
            sauce_id=catalog["sauce"].id,
            cheese_id=catalog["cheese"].id,
            topping_ids=[catalog[name].id for name in toppings],
            size=size,
            quantity=quantity,
        )
    return build
