"""
Order Service — FastAPI エントリーポイント

注文台帳。注文は呼び出し元のカートから作成され、その後 Payment Service によって
PENDING → PROCESSING → COMPLETED と遷移する。
"""

import logging
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from ..common.config import Settings
from ..common.context import RequestContext, request_context
from ..common.db import create_engine, create_tables, get_session, make_session_factory
from ..common.envelope import ApiResponse
from ..common.errors import register_exception_handlers
from ..common.log import configure_logging
from ..common.users import UserClient
from . import commands, queries
from .clients import CartClient
from .tables import metadata

logger = logging.getLogger(__name__)

Session = Annotated[AsyncSession, Depends(get_session)]
Context = Annotated[RequestContext, Depends(request_context)]


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(app.state.settings.log_level)
    await create_tables(app.state.engine, metadata)
    yield
    await app.state.carts.aclose()
    await app.state.users.aclose()
    await app.state.engine.dispose()


def _listing(orders: list, empty_message: str) -> ApiResponse:
    if not orders:
        return ApiResponse.success(empty_message, [])
    return ApiResponse.success("Orders retrieved successfully", [o.summary() for o in orders])


def create_app(
    settings: Settings | None = None,
    *,
    engine: AsyncEngine | None = None,
    carts: CartClient | None = None,
    users: UserClient | None = None,
) -> FastAPI:
    settings = settings or Settings.from_env("order")
    engine = engine or create_engine(settings.database_url)

    app = FastAPI(title="Order Service", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)
    app.state.carts = carts or CartClient.from_url(
        settings.cart_service_url, settings.http_timeout
    )
    app.state.users = users or UserClient.from_url(
        settings.user_service_url, settings.http_timeout
    )
    register_exception_handlers(app)

    @app.post("/orders/create", status_code=201)
    async def create_order(request: Request, session: Session, ctx: Context):
        logger.info("Order creation request received for user ID: %s", ctx.user_id)
        order = await commands.create_order(
            session, request.app.state.carts, request.app.state.users, ctx
        )
        return ApiResponse.success("Order created successfully", order.to_dict())

    # 固定パスは /orders/{order_id} より先に宣言する
    @app.get("/orders/all")
    async def all_orders(session: Session):
        return _listing(await queries.list_orders(session), "No orders found")

    @app.get("/orders/my-orders")
    async def my_orders(session: Session, ctx: Context):
        orders = await commands.orders_by_email(session, ctx.email)
        return _listing(orders, "No orders found")

    @app.get("/orders/user/{email}")
    async def orders_by_user(email: str, session: Session):
        orders = await commands.orders_by_email(session, email)
        return _listing(orders, f"No orders found for user: {email}")

    @app.get("/orders/bring/{order_id}")
    async def bring_order(order_id: int, session: Session):
        order = await commands.bring_order(session, order_id)
        return ApiResponse.success("Order status updated to PROCESSING", order.to_dict())

    @app.post("/orders/complete/{order_id}")
    async def complete_order(order_id: int, session: Session):
        order = await commands.complete_order(session, order_id)
        return ApiResponse.success("Order completed successfully", order.to_dict())

    @app.get("/orders/{order_id}")
    async def get_order(order_id: int, session: Session):
        order = await commands.get_order(session, order_id)
        return ApiResponse.success("Order retrieved successfully", order.to_dict())

    @app.get("/health")
    async def health():
        return {"status": "ok", "service": "order-service"}

    return app


app = create_app()
