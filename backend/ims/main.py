"""
Inventory lifecycle backend.

ARCHITECTURE:
- FastAPI routers under /api: thin request/response mapping
- Services: sale, borrowing, asset and inventory operations, each one
  database transaction built on the lifecycle transition primitive
- SQLAlchemy: the relational store is the source of truth and serializes
  concurrent claims on the same item

Every item status change goes through ims.services.lifecycle.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ims import __version__
from ims.api.routes import assets, auth, borrowings, catalog, customers, inventory_items, sales, users
from ims.core.config import settings
from ims.core.exceptions import register_exception_handlers
from ims.db.init_db import init_db
from ims.db.session import Database

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(database: Optional[Database] = None) -> FastAPI:
    """
    Build the application.

    Tests pass their own `database`; otherwise one is created from
    DATABASE_URL at startup and disposed at shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db = database or Database(settings.DATABASE_URL)
        app.state.database = db
        logger.info("Initializing database...")
        init_db(db)
        logger.info("Database initialized")

        yield

        if database is None:
            db.dispose()

    app = FastAPI(
        title="Inventory Lifecycle API",
        description="Sales, borrowings and asset assignments over one inventory.",
        version=__version__,
        lifespan=lifespan,
    )
    if database is not None:
        # Usable before startup (TestClient without a `with` block)
        app.state.database = database

    # SECURITY: Restrict CORS to specific methods and headers (not wildcards)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Accept", "Origin"],
        max_age=600,
    )

    @app.middleware("http")
    async def add_security_headers(request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response

    register_exception_handlers(app)

    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(users.router, prefix="/api/users", tags=["users"])
    app.include_router(customers.router, prefix="/api/customers", tags=["customers"])
    app.include_router(catalog.categories_router, prefix="/api/categories", tags=["catalog"])
    app.include_router(catalog.brands_router, prefix="/api/brands", tags=["catalog"])
    app.include_router(catalog.product_models_router, prefix="/api/product-models", tags=["catalog"])
    app.include_router(inventory_items.router, prefix="/api/inventory-items", tags=["inventory"])
    app.include_router(assets.router, prefix="/api/assets", tags=["assets"])
    app.include_router(assets.assignments_router, prefix="/api/asset-assignments", tags=["assets"])
    app.include_router(sales.router, prefix="/api/sales", tags=["sales"])
    app.include_router(borrowings.router, prefix="/api/borrowings", tags=["borrowings"])

    @app.get("/health")
    def health():
        return {"status": "ok", "version": __version__}

    return app


app = create_app()
