from storefront.models.product import Product
from storefront.models.order import Order

__all__ = ["Product", "Order"]
