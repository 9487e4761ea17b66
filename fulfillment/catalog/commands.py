"""
Catalog Service — 在庫台帳コマンド

Catalog は商品ごとの在庫数を持つ。カートは在庫を減らして引き当て、
戻すことで引き当てを解除する。どちらも条件付き UPDATE 1 文で行うため、
同時に複数のカートが操作しても在庫がマイナスになることはない。
"""

import logging

from sqlalchemy import insert, text
from sqlalchemy.ext.asyncio import AsyncSession

from ..common.errors import InsufficientStock, InvalidRequestError, ProductNotFound, require_positive
from . import queries
from .tables import products

logger = logging.getLogger(__name__)


def _validate(product_id: int, quantity: int) -> None:
    require_positive(product_id, "Product ID")
    if quantity is None or quantity < 0:
        raise InvalidRequestError("Invalid quantity value")


async def decrement_stock(session: AsyncSession, product_id: int, quantity: int) -> dict:
    """在庫引き当てコマンド(部分的な引き当てはしない)"""
    _validate(product_id, quantity)

    result = await session.execute(
        text("""
            UPDATE products
            SET stock = stock - :qty
            WHERE id = :id AND stock >= :qty
        """),
        {"qty": quantity, "id": product_id},
    )
    if result.rowcount == 0:
        await session.rollback()
        product = await queries.get_product(session, product_id)
        if product is None:
            raise ProductNotFound(product_id)
        logger.warning(
            "Insufficient stock for product ID: %s. Available: %s, Requested: %s",
            product_id, product["stock"], quantity,
        )
        raise InsufficientStock(
            f"Insufficient stock for product '{product['name']}'. "
            f"Available: {product['stock']}, Requested: {quantity}"
        )

    product = await queries.get_product(session, product_id)
    await session.commit()
    logger.info("Stock decremented for product ID: %s by %s, new stock: %s",
                product_id, quantity, product["stock"])
    return product


async def restore_stock(session: AsyncSession, product_id: int, quantity: int) -> dict:
    """在庫戻しコマンド(カート削除時の補償トランザクション)"""
    _validate(product_id, quantity)

    result = await session.execute(
        text("UPDATE products SET stock = stock + :qty WHERE id = :id"),
        {"qty": quantity, "id": product_id},
    )
    if result.rowcount == 0:
        await session.rollback()
        raise ProductNotFound(product_id)

    product = await queries.get_product(session, product_id)
    await session.commit()
    logger.info("Stock restored for product ID: %s by %s, new stock: %s",
                product_id, quantity, product["stock"])
    return product


async def add_product(
    session: AsyncSession,
    name: str,
    price: float,
    stock: int,
    description: str | None = None,
    category: str | None = None,
) -> dict:
    """商品の初期登録。カタログの保守は運用者が行い、HTTP には公開しない"""
    if stock < 0:
        raise InvalidRequestError("Product stock must be a non-negative value")
    result = await session.execute(
        insert(products).values(
            name=name,
            description=description,
            price=price,
            category=category,
            stock=stock,
        )
    )
    product_id = result.inserted_primary_key[0]
    await session.commit()
    return await queries.get_product(session, product_id)
