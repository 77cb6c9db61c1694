# scripts/seed_data.py
import asyncio
import logging
import os

from pizzacraft.core.config import ADMIN_EMAIL
from pizzacraft.core.db import close_db, init_db
from pizzacraft.core.exceptions import ValidationError
from pizzacraft.core.security import hash_password
from pizzacraft.models.user import User, UserRole
from pizzacraft.services.inventory_service import seed_inventory

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
log = logging.getLogger(__name__)

# Demo credentials; override in any shared environment
ADMIN_PASSWORD = os.getenv("SEED_ADMIN_PASSWORD", "pizzacraft2024")


async def seed():
    try:
        count = await seed_inventory()
        log.info(f"Inventory seeded with {count} items.")
    except ValidationError as e:
        log.info(f"Skipping inventory: {e.message}")

    admin, created = await User.get_or_create(
        email=ADMIN_EMAIL,
        defaults={
            "first_name": "PizzaCraft",
            "last_name": "Admin",
            "phone": "0000000000",
            "password_hash": hash_password(ADMIN_PASSWORD),
            "role": UserRole.ADMIN,
            "is_email_verified": True,
        },
    )
    log.info(f"Admin user {'created' if created else 'already exists'}: {admin.email}")


async def main():
    await init_db()
    try:
        await seed()
    finally:
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())
