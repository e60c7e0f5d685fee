"""FastAPI application for the Commerce Service."""

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from libs.common.config import get_settings
from libs.common.error_handler import add_exception_handlers
from libs.common.logging import get_logger
from libs.common.middleware import add_observability_middleware
from libs.db.session import get_async_db
from services.commerce_service.errors import CommerceError
from services.commerce_service.routers import (
    admin_catalog_router,
    admin_orders_router,
    cart_router,
    catalog_router,
    delivery_router,
    orders_router,
    webhooks_router,
)
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


async def commerce_error_handler(request: Request, exc: CommerceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", exc.code, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app() -> FastAPI:
    """Create and configure the Commerce Service FastAPI app."""
    settings = get_settings()
    app = FastAPI(
        title="Commerce Service",
        version="0.1.0",
        description="Catalog, cart, checkout, payments and order lifecycle.",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add observability (structured logging + request tracing)
    add_observability_middleware(app)

    add_exception_handlers(app)
    app.add_exception_handler(CommerceError, commerce_error_handler)

    @app.get("/health", tags=["system"])
    async def health_check(db: AsyncSession = Depends(get_async_db)) -> dict[str, str]:
        """Health check endpoint."""
        try:
            await db.execute(text("SELECT 1"))
            database = "ok"
        except SQLAlchemyError:
            logger.warning("Health check could not reach the database")
            database = "unavailable"
        return {
            "status": "ok" if database == "ok" else "degraded",
            "service": "commerce",
            "database": database,
        }

    app.include_router(catalog_router)
    app.include_router(cart_router)
    # Admin order routes first so /orders/admin/* never hits a customer pattern
    app.include_router(admin_orders_router)
    app.include_router(orders_router)
    app.include_router(webhooks_router)
    app.include_router(delivery_router)
    app.include_router(admin_catalog_router)

    return app


app = create_app()
