"""Commerce service routers package."""

from services.commerce_service.routers.admin_catalog import router as admin_catalog_router
from services.commerce_service.routers.admin_orders import router as admin_orders_router
from services.commerce_service.routers.cart import router as cart_router
from services.commerce_service.routers.catalog import router as catalog_router
from services.commerce_service.routers.delivery import router as delivery_router
from services.commerce_service.routers.orders import router as orders_router
from services.commerce_service.routers.webhooks import router as webhooks_router

__all__ = [
    "admin_catalog_router",
    "admin_orders_router",
    "cart_router",
    "catalog_router",
    "delivery_router",
    "orders_router",
    "webhooks_router",
]
