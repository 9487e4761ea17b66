"""
Cart Service — FastAPI エントリーポイント

ユーザーごとに 1 つのショッピングカートを持つ。呼び出し元はゲートウェイの
ID ヘッダーで識別する。商品の追加・削除に合わせて Catalog Service の在庫を
引き当て・解除する。

┌────────┐  add/remove  ┌──────────────┐  decrement / restore  ┌─────────────────┐
│ client │ ───────────▶ │ Cart Service │ ────────────────────▶ │ Catalog Service │
└────────┘              └──────┬───────┘                       └─────────────────┘
                               │ ユーザー参照
                               ▼
                        ┌──────────────┐
                        │ User Service │
                        └──────────────┘
"""

import logging
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from ..common.config import Settings
from ..common.context import RequestContext, request_context
from ..common.db import create_engine, create_tables, get_session, make_session_factory
from ..common.envelope import ApiResponse
from ..common.errors import register_exception_handlers
from ..common.log import configure_logging
from ..common.users import UserClient
from . import commands
from .clients import CatalogClient
from .tables import metadata

logger = logging.getLogger(__name__)

Session = Annotated[AsyncSession, Depends(get_session)]
Context = Annotated[RequestContext, Depends(request_context)]


class AddToCartRequest(BaseModel):
    product_id: int
    quantity: int


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(app.state.settings.log_level)
    await create_tables(app.state.engine, metadata)
    yield
    await app.state.catalog.aclose()
    await app.state.users.aclose()
    await app.state.engine.dispose()


def create_app(
    settings: Settings | None = None,
    *,
    engine: AsyncEngine | None = None,
    catalog: CatalogClient | None = None,
    users: UserClient | None = None,
) -> FastAPI:
    settings = settings or Settings.from_env("cart")
    engine = engine or create_engine(settings.database_url)

    app = FastAPI(title="Cart Service", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)
    app.state.catalog = catalog or CatalogClient.from_url(
        settings.catalog_service_url, settings.http_timeout
    )
    app.state.users = users or UserClient.from_url(
        settings.user_service_url, settings.http_timeout
    )
    register_exception_handlers(app)

    @app.post("/shopping/add-to-cart")
    async def add_to_cart(req: AddToCartRequest, request: Request, session: Session, ctx: Context):
        logger.info("Add to cart request - User ID: %s, Product ID: %s, Quantity: %s",
                    ctx.user_id, req.product_id, req.quantity)
        cart = await commands.add_to_cart(
            session, request.app.state.catalog, request.app.state.users,
            ctx, req.product_id, req.quantity,
        )
        return ApiResponse.success("Product added to cart successfully", cart.to_dict())

    @app.delete("/shopping/remove-from-cart/{product_id}")
    async def remove_from_cart(product_id: int, request: Request, session: Session, ctx: Context):
        cart = await commands.remove_from_cart(session, request.app.state.catalog, ctx, product_id)
        return ApiResponse.success("Product removed from cart successfully", cart.to_dict())

    @app.get("/shopping/send-cart")
    async def send_cart(session: Session, ctx: Context):
        cart = await commands.send_cart(session, ctx)
        return ApiResponse.success("Cart retrieved successfully", cart.to_dict())

    @app.post("/shopping/clear-cart")
    async def clear_cart(request: Request, session: Session, ctx: Context):
        cart = await commands.clear_cart(session, request.app.state.catalog, ctx)
        return ApiResponse.success("Cart cleared successfully", cart.to_dict())

    @app.post("/shopping/checkout-cart")
    async def checkout_cart(session: Session, ctx: Context):
        """内部用: 注文の保存後に Order Service から呼ばれる"""
        cart = await commands.checkout_cart(session, ctx)
        return ApiResponse.success("Cart checked out successfully", cart.to_dict())

    @app.get("/health")
    async def health():
        return {"status": "ok", "service": "cart-service"}

    return app


app = create_app()
