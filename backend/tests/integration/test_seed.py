import pytest
from sqlalchemy import func, select

from storefront.db.seed import PRODUCTS_DATA, seed_database
from storefront.models import Product


class TestSeed:
    """Tests for the sample data script."""

    @pytest.mark.asyncio
    async def test_seed_inserts_products_once(self, database):
        """Seeding twice inserts the sample products once."""
        await seed_database(database)
        await seed_database(database)

        async with database.session() as session:
            count = await session.scalar(select(func.count()).select_from(Product))
        assert count == len(PRODUCTS_DATA)

    @pytest.mark.asyncio
    async def test_seeded_data_is_served(self, database, rpc):
        """Seeded products and orders are served over RPC."""
        await seed_database(database)

        products = (await rpc.query("product.getAll"))["products"]
        assert [p["name"] for p in products] == [name for name, _ in PRODUCTS_DATA]
        for order in (await rpc.query("order.getAll"))["orders"]:
            assert order["productId"] in {p["id"] for p in products}
