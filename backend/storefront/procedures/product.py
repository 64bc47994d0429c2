import logging

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from storefront.errors import ErrorType
from storefront.exceptions import AppException
from storefront.models import Order, Product
from storefront.rpc.context import Context
from storefront.rpc.router import RPCRouter
from storefront.schemas.envelope import Failure, Message
from storefront.schemas.product import (
    ConfirmDeleteAll,
    ProductCreate,
    ProductCreated,
    ProductFound,
    ProductId,
    ProductList,
    ProductOut,
    ProductUpdate,
)

logger = logging.getLogger(__name__)

router = RPCRouter()

PRODUCT_NOT_FOUND = "Product not found"


async def save_image(ctx: Context, url: str) -> str | None:
    """Run the image save step under the configured failure policy.

    Returns the local URL, or None when saving failed and the policy is "null".

    Raises:
        AppException: IMAGE_ERROR when saving failed and the policy is "fail"
    """
    try:
        return await ctx.images.fetch_and_save(url)
    except AppException:
        if ctx.image_failure_policy == "fail":
            raise
        logger.info(f"Continuing without image for {url}")
        return None


async def discard_unreferenced_images(ctx: Context, image_urls: set[str]):
    """Delete stored images that no product points at anymore.

    Runs after the owning change is committed, so failures are logged only.
    """
    for image_url in image_urls:
        if not image_url:
            continue
        try:
            count = await ctx.session.scalar(
                select(func.count()).select_from(Product).where(Product.image_url == image_url)
            )
        except SQLAlchemyError as e:
            logger.error(f"Error checking references to {image_url}: {e}")
            continue
        if not count:
            await ctx.images.discard(image_url)


async def restore_image_if_missing(ctx: Context, product: Product, source_url: str):
    """Re-store a shared image file removed by a delete that raced this commit.

    A delete counts references before this product's row is visible, so it can
    unlink a content-addressed file this product has just started using.
    """
    path = ctx.images.local_path(product.image_url)
    if path is None or path.exists():
        return

    logger.info(f"Image {path.name} vanished before product {product.id} was saved, fetching again")
    try:
        image_url = await ctx.images.fetch_and_save(source_url)
    except AppException:
        image_url = None

    if image_url != product.image_url:
        try:
            product.image_url = image_url
            await ctx.session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Error restoring image of product {product.id}: {e}")


@router.mutation("create", input=ProductCreate)
async def create_product(ctx: Context, input: ProductCreate) -> ProductCreated | Failure:
    """Add a product, storing a local copy of its image."""
    try:
        image_url = await save_image(ctx, str(input.image_url)) if input.image_url else None
    except AppException as e:
        return Failure(error=e.error_type, message=e.message)

    try:
        product = Product(name=input.name, price=input.price, image_url=image_url)
        ctx.session.add(product)
        await ctx.session.commit()
        logger.info(f"Added product {product.id}: {product.name}")
    except SQLAlchemyError as e:
        logger.error(f"Error adding product: {e}")
        return Failure.database_error()

    if image_url:
        await restore_image_if_missing(ctx, product, str(input.image_url))
    return ProductCreated(message="Product added successfully", id=product.id)


@router.query("getAll")
async def get_all_products(ctx: Context) -> ProductList | Failure:
    """List every product."""
    try:
        result = await ctx.session.scalars(select(Product).order_by(Product.id))
        products = [ProductOut.model_validate(p) for p in result.all()]
        return ProductList(products=products)
    except SQLAlchemyError as e:
        logger.error(f"Error fetching products: {e}")
        return Failure(error=ErrorType.DATABASE_ERROR, message="Failed to retrieve products")


@router.query("getById", input=ProductId)
async def get_product(ctx: Context, input: ProductId) -> ProductFound | Failure:
    """Fetch one product by id."""
    try:
        product = await ctx.session.scalar(select(Product).where(Product.id == input.id))
    except SQLAlchemyError as e:
        logger.error(f"Error fetching product {input.id}: {e}")
        return Failure.database_error()

    if product is None:
        return Failure.not_found(PRODUCT_NOT_FOUND)
    return ProductFound(product=ProductOut.model_validate(product))


@router.mutation("update", input=ProductUpdate)
async def update_product(ctx: Context, input: ProductUpdate) -> Message | Failure:
    """Change only the supplied fields of a product."""
    try:
        product = await ctx.session.scalar(select(Product).where(Product.id == input.id))
    except SQLAlchemyError as e:
        logger.error(f"Error updating product {input.id}: {e}")
        return Failure.database_error()

    if product is None:
        return Failure.not_found(PRODUCT_NOT_FOUND)

    changes = input.changes()
    previous_image = product.image_url
    source_url = str(changes["image_url"]) if changes.get("image_url") is not None else None
    if source_url:
        try:
            image_url = await save_image(ctx, source_url)
        except AppException as e:
            return Failure(error=e.error_type, message=e.message)
        if image_url is None:
            # Keep the current image when the new one could not be saved
            del changes["image_url"]
            if not changes:
                return Failure(error=ErrorType.IMAGE_ERROR, message="Failed to save the image.")
        else:
            changes["image_url"] = image_url

    try:
        for field, value in changes.items():
            setattr(product, field, value)
        await ctx.session.commit()
        logger.info(f"Updated product {input.id}: {sorted(changes)}")
    except SQLAlchemyError as e:
        logger.error(f"Error updating product {input.id}: {e}")
        return Failure.database_error()

    if "image_url" in changes:
        if source_url and changes["image_url"]:
            await restore_image_if_missing(ctx, product, source_url)
        if previous_image != product.image_url:
            await discard_unreferenced_images(ctx, {previous_image})
    return Message(message="Product updated successfully")


@router.mutation("delete", input=ProductId)
async def delete_product(ctx: Context, input: ProductId) -> Message | Failure:
    """Remove a product that no order references."""
    try:
        product = await ctx.session.scalar(select(Product).where(Product.id == input.id))
        if product is None:
            return Failure.not_found(PRODUCT_NOT_FOUND)

        order_count = await ctx.session.scalar(
            select(func.count()).select_from(Order).where(Order.product_id == input.id)
        )
        if order_count:
            return Failure(error=ErrorType.CONFLICT, message="Product has existing orders")

        image_url = product.image_url
        await ctx.session.execute(delete(Product).where(Product.id == input.id))
        await ctx.session.commit()
        logger.info(f"Deleted product {input.id}")
    except IntegrityError as e:
        # An order was added between the check and the delete
        logger.error(f"Error deleting product {input.id}: {e}")
        return Failure(error=ErrorType.CONFLICT, message="Product has existing orders")
    except SQLAlchemyError as e:
        logger.error(f"Error deleting product {input.id}: {e}")
        return Failure.database_error()

    await discard_unreferenced_images(ctx, {image_url})
    return Message(message="Product deleted successfully")


@router.mutation("deleteAll", input=ConfirmDeleteAll)
async def delete_all_products(ctx: Context, input: ConfirmDeleteAll) -> Message | Failure:
    """Remove every order and every product. Requires confirm=true."""
    try:
        image_urls = set(await ctx.session.scalars(
            select(Product.image_url).where(Product.image_url.is_not(None))
        ))
        orders = await ctx.session.execute(delete(Order))
        products = await ctx.session.execute(delete(Product))
        await ctx.session.commit()
        logger.info(f"Deleted {products.rowcount} products and {orders.rowcount} orders")
    except SQLAlchemyError as e:
        logger.error(f"Error deleting all products: {e}")
        return Failure.database_error()

    for image_url in image_urls:
        await ctx.images.discard(image_url)
    return Message(message="All products and related orders deleted successfully")
