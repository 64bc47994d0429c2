from storefront.rpc.router import RPCRouter
from storefront.procedures import order, product

app_router = RPCRouter()
app_router.merge("product", product.router)
app_router.merge("order", order.router)

__all__ = ["app_router"]
