"""
Payment Service — FastAPI エントリーポイント

支払いを記録し、Order Service で注文を完了にして、通知ストリームに支払いを発行する。
"""

import logging
from contextlib import asynccontextmanager
from typing import Annotated

import redis.asyncio as aioredis
from fastapi import Depends, FastAPI, Query, Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from ..common.config import Settings
from ..common.context import RequestContext, request_context
from ..common.db import create_engine, create_tables, get_session, make_session_factory
from ..common.envelope import ApiResponse
from ..common.errors import InvalidRequestError, register_exception_handlers
from ..common.log import configure_logging
from . import commands
from .clients import OrderClient
from .producer import NotificationDispatcher, NotificationProducer
from .tables import metadata

logger = logging.getLogger(__name__)

Session = Annotated[AsyncSession, Depends(get_session)]
Context = Annotated[RequestContext, Depends(request_context)]


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(app.state.settings.log_level)
    await create_tables(app.state.engine, metadata)
    yield
    await app.state.dispatcher.drain()
    await app.state.dispatcher.producer.aclose()
    await app.state.orders.aclose()
    await app.state.engine.dispose()


def parse_amount(raw: str) -> float:
    """小数点は "." と "," のどちらも受け付ける (例: 19.98 / 19,98)"""
    try:
        return float(raw.strip().replace(",", "."))
    except ValueError:
        raise InvalidRequestError("Invalid amount format") from None


def create_app(
    settings: Settings | None = None,
    *,
    engine: AsyncEngine | None = None,
    orders: OrderClient | None = None,
    dispatcher: NotificationDispatcher | None = None,
) -> FastAPI:
    settings = settings or Settings.from_env("payment")
    engine = engine or create_engine(settings.database_url)

    app = FastAPI(title="Payment Service", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)
    app.state.orders = orders or OrderClient.from_url(
        settings.order_service_url, settings.http_timeout
    )
    app.state.dispatcher = dispatcher or NotificationDispatcher(
        NotificationProducer(
            aioredis.from_url(settings.redis_url, decode_responses=True),
            settings.notification_stream,
        )
    )
    register_exception_handlers(app)

    @app.get("/payment/{order_id}")
    async def view_payment(order_id: int, request: Request, ctx: Context):
        logger.info("View payment request received for order ID: %s", order_id)
        order = await commands.view_order(request.app.state.orders, ctx, order_id)
        return ApiResponse.success("Order details loaded successfully", order.model_dump(mode="json"))

    @app.post("/payment/create")
    async def create_payment(
        request: Request,
        session: Session,
        ctx: Context,
        order_id: Annotated[int, Query(alias="orderid")],
        method: str,
        amount: str,
        currency: str,
        description: str | None = None,
    ):
        logger.info("Create payment request received - Order ID: %s, Method: %s, Amount: %s, Currency: %s",
                    order_id, method, amount, currency)
        payment = await commands.create_payment(
            session,
            request.app.state.orders,
            request.app.state.dispatcher,
            ctx,
            order_id=order_id,
            amount=parse_amount(amount),
            currency=currency,
            method=method,
            description=description,
        )
        return ApiResponse.success("Payment processed successfully", payment.to_dict())

    @app.get("/health")
    async def health():
        return {"status": "ok", "service": "payment-service"}

    return app


app = create_app()
