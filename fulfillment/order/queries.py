"""
Order Service — クエリ (読み取り側)
"""

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..common.status import OrderStatus
from .aggregate import OrderAggregate, OrderLine
from .tables import order_items, orders


async def load_order(session: AsyncSession, order_id: int) -> OrderAggregate | None:
    result = await session.execute(select(orders).where(orders.c.id == order_id))
    row = result.fetchone()
    if not row:
        return None
    return await _with_items(session, row)


async def list_orders_by_email(session: AsyncSession, email: str) -> list[OrderAggregate]:
    result = await session.execute(
        select(orders).where(orders.c.email == email).order_by(orders.c.order_date.desc())
    )
    return [await _with_items(session, row) for row in result.fetchall()]


async def list_orders(session: AsyncSession) -> list[OrderAggregate]:
    result = await session.execute(select(orders).order_by(orders.c.order_date.desc()))
    return [await _with_items(session, row) for row in result.fetchall()]


def _as_utc(value: datetime) -> datetime:
    # SQLite はオフセットを保持しない → 保存値は UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


async def _with_items(session: AsyncSession, row) -> OrderAggregate:
    lines = await session.execute(
        select(order_items).where(order_items.c.order_id == row.id).order_by(order_items.c.id)
    )
    return OrderAggregate(
        id=row.id,
        user_id=row.user_id,
        name=row.name,
        last_name=row.last_name,
        email=row.email,
        address=row.address,
        phone=row.phone,
        role=row.role,
        total_amount=row.total_amount,
        status=OrderStatus(row.status),
        order_date=_as_utc(row.order_date),
        items=[
            OrderLine(
                product_id=line.product_id,
                product_name=line.product_name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                total_price=line.total_price,
            )
            for line in lines.fetchall()
        ],
    )
