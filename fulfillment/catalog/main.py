"""
Catalog Service — FastAPI エントリーポイント

商品在庫を管理する。商品の参照 API と、Cart Service が在庫の引き当て・解除に
使うアトミックな在庫調整 API を提供する。
"""

import logging
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Body, Depends, FastAPI
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from ..common.config import Settings
from ..common.db import create_engine, create_tables, get_session, make_session_factory
from ..common.envelope import ApiResponse
from ..common.errors import ProductNotFound, register_exception_handlers, require_positive
from ..common.log import configure_logging
from . import commands, queries
from .tables import metadata

logger = logging.getLogger(__name__)

Session = Annotated[AsyncSession, Depends(get_session)]


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(app.state.settings.log_level)
    await create_tables(app.state.engine, metadata)
    yield
    await app.state.engine.dispose()


def create_app(settings: Settings | None = None, *, engine: AsyncEngine | None = None) -> FastAPI:
    settings = settings or Settings.from_env("catalog")
    engine = engine or create_engine(settings.database_url)

    app = FastAPI(title="Catalog Service", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)
    register_exception_handlers(app)

    @app.get("/product")
    async def list_products(session: Session):
        products = await queries.list_products(session)
        message = "Products retrieved successfully" if products else "No products found"
        return ApiResponse.success(message, products)

    @app.get("/product/{product_id}")
    async def get_product(product_id: int, session: Session):
        require_positive(product_id, "Product ID")
        product = await queries.get_product(session, product_id)
        if not product:
            raise ProductNotFound(product_id)
        return ApiResponse.success("Product retrieved successfully", product)

    @app.put("/product/update/stock/{product_id}")
    async def update_stock(product_id: int, session: Session, quantity: int = Body()):
        """在庫を quantity だけ減らす(カートへの引き当て)"""
        logger.info("Update stock request for product ID: %s with quantity: %s", product_id, quantity)
        product = await commands.decrement_stock(session, product_id, quantity)
        return ApiResponse.success("Stock updated successfully", product)

    @app.put("/product/restore/stock/{product_id}")
    async def restore_stock(product_id: int, session: Session, quantity: int = Body()):
        """在庫を quantity だけ戻す(引き当ての解除)"""
        logger.info("Restore stock request for product ID: %s with quantity: %s", product_id, quantity)
        product = await commands.restore_stock(session, product_id, quantity)
        return ApiResponse.success("Stock restored successfully", product)

    @app.get("/health")
    async def health():
        return {"status": "ok", "service": "catalog-service"}

    return app


app = create_app()
