import pytest

from storefront.main import app


@pytest.fixture
async def product_id(rpc):
    data = await rpc.mutate("product.create", {"name": "Pen", "price": 2})
    return data["id"]


async def place(rpc, product_id: int, quantity: int = 1) -> int:
    data = await rpc.mutate("order.create", {"productId": product_id, "quantity": quantity})
    assert data["success"] is True, data
    return data["id"]


class TestCreateOrder:
    """Tests for order.create."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, rpc, product_id):
        """Created order is returned by getById."""
        order_id = await place(rpc, product_id, quantity=3)

        data = await rpc.query("order.getById", {"id": order_id})

        assert data["success"] is True
        order = data["order"]
        assert order["id"] == order_id
        assert order["productId"] == product_id
        assert order["quantity"] == 3
        assert order["createdAt"] is not None

    @pytest.mark.asyncio
    async def test_ids_are_unique(self, rpc, product_id):
        """Every create returns a new id."""
        ids = {await place(rpc, product_id) for _ in range(3)}

        assert len(ids) == 3
        assert len((await rpc.query("order.getAll"))["orders"]) == 3

    @pytest.mark.asyncio
    async def test_quantity_below_one_rejected(self, rpc, product_id):
        """Quantity below 1 returns 400 and inserts nothing."""
        response = await rpc.post("order.create", {"productId": product_id, "quantity": 0})

        assert response.status_code == 400
        assert response.json()["error"]["data"]["issues"][0]["path"] == ["quantity"]
        assert (await rpc.query("order.getAll"))["orders"] == []

    @pytest.mark.asyncio
    async def test_unknown_product_rejected(self, rpc):
        """An order for a missing product is rejected."""
        data = await rpc.mutate("order.create", {"productId": 999, "quantity": 1})

        assert data == {"success": False, "error": "not_found", "message": "Product not found"}
        assert (await rpc.query("order.getAll"))["orders"] == []


class TestReadOrder:
    """Tests for order.getAll and order.getById."""

    @pytest.mark.asyncio
    async def test_get_all_empty(self, rpc):
        """getAll on an empty table returns an empty list."""
        assert await rpc.query("order.getAll") == {"success": True, "orders": []}

    @pytest.mark.asyncio
    async def test_existing_order_is_found(self, rpc, product_id):
        """An existing order is reported as found."""
        order_id = await place(rpc, product_id)

        assert (await rpc.query("order.getById", {"id": order_id}))["success"] is True

    @pytest.mark.asyncio
    async def test_not_found(self, rpc):
        """Missing id reports Order not found."""
        data = await rpc.query("order.getById", {"id": 999})

        assert data == {"success": False, "error": "not_found", "message": "Order not found"}


class TestUpdateOrder:
    """Tests for order.update."""

    @pytest.mark.asyncio
    async def test_update_quantity(self, rpc, product_id):
        """Quantity changes and the product reference is kept."""
        order_id = await place(rpc, product_id, quantity=1)

        data = await rpc.mutate("order.update", {"id": order_id, "quantity": 4})

        assert data == {"success": True, "message": "Order updated successfully"}
        order = (await rpc.query("order.getById", {"id": order_id}))["order"]
        assert order["quantity"] == 4
        assert order["productId"] == product_id

    @pytest.mark.asyncio
    async def test_update_missing(self, rpc):
        """Missing id reports Order not found."""
        data = await rpc.mutate("order.update", {"id": 999, "quantity": 2})

        assert data["message"] == "Order not found"

    @pytest.mark.asyncio
    async def test_update_without_fields_rejected(self, rpc, product_id):
        """An update with nothing to change returns 400."""
        order_id = await place(rpc, product_id)

        response = await rpc.post("order.update", {"id": order_id})

        assert response.status_code == 400


class TestDeleteOrder:
    """Tests for order.delete."""

    @pytest.mark.asyncio
    async def test_delete_then_not_found(self, rpc, product_id):
        """Deleted order is no longer found."""
        order_id = await place(rpc, product_id)

        data = await rpc.mutate("order.delete", {"id": order_id})

        assert data == {"success": True, "message": "Order deleted successfully"}
        assert (await rpc.query("order.getById", {"id": order_id}))["message"] == "Order not found"

    @pytest.mark.asyncio
    async def test_delete_missing(self, rpc):
        """Missing id reports Order not found."""
        data = await rpc.mutate("order.delete", {"id": 999})

        assert data == {"success": False, "error": "not_found", "message": "Order not found"}

    @pytest.mark.asyncio
    async def test_product_deletable_after_orders_removed(self, rpc, product_id):
        """Removing the orders unblocks the product delete."""
        order_id = await place(rpc, product_id)
        await rpc.mutate("order.delete", {"id": order_id})

        data = await rpc.mutate("product.delete", {"id": product_id})

        assert data["success"] is True


class TestImagePolicy:
    """Tests that the image failure policy only concerns products."""

    @pytest.mark.asyncio
    async def test_create_order_under_fail_policy(self, rpc, product_id):
        """Orders are placed normally when the policy is fail."""
        app.state.image_failure_policy = "fail"

        order_id = await place(rpc, product_id, quantity=2)

        assert (await rpc.query("order.getById", {"id": order_id}))["order"]["quantity"] == 2
