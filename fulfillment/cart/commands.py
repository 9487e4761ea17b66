"""
Cart Service — コマンドハンドラ

引き当てモデル: 商品がカートに入った時点で Catalog から在庫を取り、
カートから出た時点(削除・クリア)で戻す。在庫の取得は必須なので、
減算に失敗したら何も書き込まずに追加を中断する。在庫の戻しは補償トランザクション:
Catalog に到達できなくても明細は削除し、失敗はログに残すだけ。

  add_to_cart       商品取得 ─▶ 在庫確認 ─▶ ユーザー取得 ─▶ 明細マージ
                    ─▶ 在庫減算 (必須) ─▶ カート保存
  remove_from_cart  在庫戻し (ベストエフォート) ─▶ 明細削除 ─▶ カート保存
  clear_cart        明細ごとに在庫戻し (ベストエフォート) ─▶ 空にする ─▶ 保存
  checkout_cart     空にする ─▶ 保存  (在庫は注文で消費済みのまま)
"""

import logging

from sqlalchemy import delete, insert, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..common.context import RequestContext
from ..common.errors import (
    CartNotFound,
    CartOperationError,
    CartPersistenceError,
    InsufficientStock,
    InvalidRequestError,
    require_positive,
)
from ..common.users import UserClient
from . import queries
from .aggregate import CartAggregate
from .clients import CatalogClient
from .tables import cart_items, carts

logger = logging.getLogger(__name__)


async def add_to_cart(
    session: AsyncSession,
    catalog: CatalogClient,
    users: UserClient,
    ctx: RequestContext,
    product_id: int,
    quantity: int,
) -> CartAggregate:
    user_id = require_positive(ctx.user_id, "User ID")
    require_positive(product_id, "Product ID")
    if quantity is None or quantity <= 0:
        raise InvalidRequestError("Quantity must be a positive number")

    product = await catalog.fetch_product(ctx, product_id)
    if product.stock is None:
        raise CartOperationError(f"Stock information unavailable for product '{product.name}'")
    if product.stock < quantity:
        raise InsufficientStock(
            f"Insufficient stock for product '{product.name}'. "
            f"Available: {product.stock}, Requested: {quantity}"
        )

    user = await users.get_user(ctx, user_id)

    cart = await queries.load_cart(session, user_id)
    if cart is None:
        logger.debug("Creating new cart for user ID: %s", user_id)
        cart = CartAggregate(user_id=user.id, email=user.email)
    cart.add_item(product.id, product.name, quantity, product.price)

    # ここまで書き込みなし → 失敗してもカートと在庫は変わらない
    await catalog.decrement_stock(ctx, product_id, quantity)

    await _save(session, cart)
    logger.info(
        "Product added to cart - User ID: %s, Product: %s, Quantity: %s, New Total: %s",
        user_id, product.name, quantity, cart.total,
    )
    return cart


async def remove_from_cart(
    session: AsyncSession,
    catalog: CatalogClient,
    ctx: RequestContext,
    product_id: int,
) -> CartAggregate:
    user_id = require_positive(ctx.user_id, "User ID")
    cart = await _require_cart(session, user_id)

    line = cart.find(product_id)
    if line is None:
        raise CartOperationError(f"Product with ID {product_id} is not in the cart")

    await catalog.restore_stock(ctx, product_id, line.quantity)
    cart.remove_item(line)

    await _save(session, cart)
    logger.info("Product removed from cart - User ID: %s, Product ID: %s, New Total: %s",
                user_id, product_id, cart.total)
    return cart


async def clear_cart(
    session: AsyncSession,
    catalog: CatalogClient,
    ctx: RequestContext,
) -> CartAggregate:
    user_id = require_positive(ctx.user_id, "User ID")
    cart = await _require_cart(session, user_id)

    for line in cart.items:
        await catalog.restore_stock(ctx, line.product_id, line.quantity)
    removed = cart.clear()

    await _save(session, cart)
    logger.info("Cart cleared - User ID: %s, Items removed: %s", user_id, len(removed))
    return cart


async def checkout_cart(session: AsyncSession, ctx: RequestContext) -> CartAggregate:
    """注文作成後にカートを空にする(在庫は消費済みのまま戻さない)"""
    user_id = require_positive(ctx.user_id, "User ID")
    cart = await _require_cart(session, user_id)
    removed = cart.clear()

    await _save(session, cart)
    logger.info("Cart checked out - User ID: %s, Items ordered: %s", user_id, len(removed))
    return cart


async def send_cart(session: AsyncSession, ctx: RequestContext) -> CartAggregate:
    user_id = require_positive(ctx.user_id, "User ID")
    return await _require_cart(session, user_id)


async def _require_cart(session: AsyncSession, user_id: int) -> CartAggregate:
    cart = await queries.load_cart(session, user_id)
    if cart is None:
        raise CartNotFound(user_id)
    return cart


async def _save(session: AsyncSession, cart: CartAggregate) -> None:
    """カート全体(本体行と明細)を 1 つのローカルトランザクションで書き込む"""
    try:
        if cart.id is None:
            result = await session.execute(
                insert(carts).values(user_id=cart.user_id, email=cart.email, total=cart.total)
            )
            cart.id = result.inserted_primary_key[0]
        else:
            await session.execute(
                update(carts).where(carts.c.id == cart.id).values(total=cart.total)
            )
            await session.execute(delete(cart_items).where(cart_items.c.cart_id == cart.id))

        if cart.items:
            await session.execute(
                insert(cart_items),
                [{"cart_id": cart.id, **line.to_dict()} for line in cart.items],
            )
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error("Failed to save cart for user ID: %s", cart.user_id, exc_info=True)
        raise CartPersistenceError(f"Failed to save cart for user ID: {cart.user_id}") from e
