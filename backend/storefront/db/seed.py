import asyncio
import random
from sqlalchemy import select
from storefront.db.database import Database
from storefront.models import Product, Order


# Sample products
PRODUCTS_DATA = [
    ("Pen", 2),
    ("Notebook", 5),
    ("Backpack", 45),
    ("Desk Lamp", 30),
    ("Coffee Mug", 12),
    ("Headphones", 120),
]


async def seed_database(db: Database | None = None):
    db = db or Database()
    await db.create_tables()

    async with db.session() as session:
        # Check if data exists
        result = await session.execute(select(Product).limit(1))
        if result.scalar():
            print("Database already seeded")
            return

        products = []
        for name, price in PRODUCTS_DATA:
            product = Product(name=name, price=price)
            products.append(product)
            session.add(product)

        await session.flush()  # Get IDs

        for product in products:
            for _ in range(random.randint(0, 3)):
                session.add(Order(product_id=product.id, quantity=random.randint(1, 5)))

        await session.commit()
        print("Database seeded successfully!")


async def main():
    db = Database()
    try:
        await seed_database(db)
    finally:
        await db.disconnect()


if __name__ == "__main__":
    asyncio.run(main())
