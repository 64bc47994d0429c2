import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from storefront.errors import ErrorType
from storefront.models import Order, Product
from storefront.rpc.context import Context
from storefront.rpc.router import RPCRouter
from storefront.schemas.envelope import Failure, Message
from storefront.schemas.order import (
    OrderCreate,
    OrderCreated,
    OrderFound,
    OrderId,
    OrderList,
    OrderOut,
    OrderUpdate,
)

logger = logging.getLogger(__name__)

router = RPCRouter()

ORDER_NOT_FOUND = "Order not found"


async def find_order(ctx: Context, order_id: int) -> Order | None:
    return await ctx.session.scalar(select(Order).where(Order.id == order_id))


@router.mutation("create", input=OrderCreate)
async def create_order(ctx: Context, input: OrderCreate) -> OrderCreated | Failure:
    """Place an order for an existing product."""
    try:
        product_id = await ctx.session.scalar(select(Product.id).where(Product.id == input.product_id))
        if product_id is None:
            return Failure.not_found("Product not found")

        order = Order(product_id=input.product_id, quantity=input.quantity)
        ctx.session.add(order)
        await ctx.session.commit()
        logger.info(f"Added order {order.id} for product {order.product_id}")
        return OrderCreated(id=order.id)
    except IntegrityError as e:
        # Product removed between the check and the insert
        logger.error(f"Error adding order: {e}")
        return Failure(error=ErrorType.CONFLICT, message="Product not found")
    except SQLAlchemyError as e:
        logger.error(f"Error adding order: {e}")
        return Failure.database_error()


@router.query("getAll")
async def get_all_orders(ctx: Context) -> OrderList | Failure:
    """List every order."""
    try:
        result = await ctx.session.scalars(select(Order).order_by(Order.id))
        return OrderList(orders=[OrderOut.model_validate(o) for o in result.all()])
    except SQLAlchemyError as e:
        logger.error(f"Error fetching orders: {e}")
        return Failure(error=ErrorType.DATABASE_ERROR, message="Failed to retrieve orders")


@router.query("getById", input=OrderId)
async def get_order(ctx: Context, input: OrderId) -> OrderFound | Failure:
    """Fetch one order by id."""
    try:
        order = await find_order(ctx, input.id)
    except SQLAlchemyError as e:
        logger.error(f"Error fetching order {input.id}: {e}")
        return Failure.database_error()

    if order is None:
        return Failure.not_found(ORDER_NOT_FOUND)
    return OrderFound(order=OrderOut.model_validate(order))


@router.mutation("update", input=OrderUpdate)
async def update_order(ctx: Context, input: OrderUpdate) -> Message | Failure:
    """Change the quantity of an order."""
    try:
        order = await find_order(ctx, input.id)
        if order is None:
            return Failure.not_found(ORDER_NOT_FOUND)

        order.quantity = input.quantity
        await ctx.session.commit()
        logger.info(f"Updated order {input.id}")
        return Message(message="Order updated successfully")
    except SQLAlchemyError as e:
        logger.error(f"Error updating order {input.id}: {e}")
        return Failure.database_error()


@router.mutation("delete", input=OrderId)
async def delete_order(ctx: Context, input: OrderId) -> Message | Failure:
    """Remove an order."""
    try:
        order = await find_order(ctx, input.id)
        if order is None:
            return Failure.not_found(ORDER_NOT_FOUND)

        await ctx.session.execute(delete(Order).where(Order.id == input.id))
        await ctx.session.commit()
        logger.info(f"Deleted order {input.id}")
        return Message(message="Order deleted successfully")
    except SQLAlchemyError as e:
        logger.error(f"Error deleting order {input.id}: {e}")
        return Failure.database_error()
