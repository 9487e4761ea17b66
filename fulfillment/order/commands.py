"""
Order Service — コマンドハンドラ

create_order は呼び出し元のカートを PENDING の注文に変換する:

  1. Cart Service からカートを取得 (存在しない・空なら拒否)
  2. User Service から顧客プロフィールを取得
  3. 明細を計算して注文を保存 (ローカルトランザクション、未コミット)
  4. Cart Service でカートをチェックアウトしてからコミット

ここでは在庫に触れない。在庫は商品がカートに入った時点で引き当て済みで、
注文はその引き当てを消費済み在庫として引き継ぐ。チェックアウト呼び出しが
失敗したら注文の INSERT をロールバックし、カートは元のまま残る。

bring_order / complete_order は状態を無条件に上書きする。
"""

import logging

from sqlalchemy import insert, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..common.context import RequestContext
from ..common.errors import (
    FulfillmentError,
    InvalidRequestError,
    OrderCreationError,
    OrderNotFound,
    UserNotFound,
    require_positive,
)
from ..common.users import UserClient
from . import queries
from .aggregate import OrderAggregate
from .clients import CartClient
from .tables import order_items, orders

logger = logging.getLogger(__name__)


async def create_order(
    session: AsyncSession,
    carts: CartClient,
    users: UserClient,
    ctx: RequestContext,
) -> OrderAggregate:
    user_id = require_positive(ctx.user_id, "User ID")
    logger.info("Processing order creation for user ID: %s", user_id)

    cart = await carts.send_cart(ctx)
    if cart is None or not cart.items:
        logger.warning("Order creation failed: Cart is empty for user ID: %s", user_id)
        raise OrderCreationError("Cannot create order: Cart is empty")

    try:
        user = await users.get_user(ctx, user_id)
    except UserNotFound as e:
        raise OrderCreationError("Cannot create order: User not found") from e

    order = OrderAggregate.from_cart(user, cart)
    order.id = await _insert(session, order)

    try:
        await carts.checkout_cart(ctx)
    except FulfillmentError:
        await session.rollback()
        logger.error("Order creation aborted: cart checkout failed for user ID: %s", user_id)
        raise

    await session.commit()
    logger.info("Order successfully created with ID: %s for user ID: %s, total amount: %s",
                order.id, user_id, order.total_amount)
    return order


async def get_order(session: AsyncSession, order_id: int) -> OrderAggregate:
    require_positive(order_id, "Order ID")
    order = await queries.load_order(session, order_id)
    if order is None:
        logger.warning("Order not found with ID: %s", order_id)
        raise OrderNotFound(order_id)
    return order


async def bring_order(session: AsyncSession, order_id: int) -> OrderAggregate:
    """支払い用に注文を取得する。注文は PROCESSING に遷移する"""
    order = await get_order(session, order_id)
    order.bring()
    await _save_status(session, order)
    logger.info("Order ID: %s status updated to PROCESSING", order_id)
    return order


async def complete_order(session: AsyncSession, order_id: int) -> OrderAggregate:
    order = await get_order(session, order_id)
    order.complete()
    await _save_status(session, order)
    logger.info("Order ID: %s status updated to COMPLETED", order_id)
    return order


async def orders_by_email(session: AsyncSession, email: str | None) -> list[OrderAggregate]:
    if not email or not email.strip():
        raise InvalidRequestError("Email cannot be null or empty")
    return await queries.list_orders_by_email(session, email)


async def _insert(session: AsyncSession, order: OrderAggregate) -> int:
    result = await session.execute(
        insert(orders).values(
            user_id=order.user_id,
            name=order.name,
            last_name=order.last_name,
            email=order.email,
            address=order.address,
            phone=order.phone,
            role=order.role,
            total_amount=order.total_amount,
            status=order.status.value,
            order_date=order.order_date,
        )
    )
    order_id = result.inserted_primary_key[0]
    await session.execute(
        insert(order_items),
        [{"order_id": order_id, **line.to_dict()} for line in order.items],
    )
    return order_id


async def _save_status(session: AsyncSession, order: OrderAggregate) -> None:
    await session.execute(
        update(orders).where(orders.c.id == order.id).values(status=order.status.value)
    )
    await session.commit()
