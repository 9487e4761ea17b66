"""
Cart Service — クエリ (読み取り側)
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .aggregate import CartAggregate, CartLine
from .tables import cart_items, carts


async def load_cart(session: AsyncSession, user_id: int) -> CartAggregate | None:
    """カート本体行と明細(挿入順)からユーザーのカートを再構築する"""
    result = await session.execute(select(carts).where(carts.c.user_id == user_id))
    row = result.fetchone()
    if not row:
        return None

    lines = await session.execute(
        select(cart_items).where(cart_items.c.cart_id == row.id).order_by(cart_items.c.id)
    )
    return CartAggregate(
        id=row.id,
        user_id=row.user_id,
        email=row.email,
        total=row.total,
        items=[
            CartLine(
                product_id=line.product_id,
                product_name=line.product_name,
                quantity=line.quantity,
                unit_price=line.unit_price,
            )
            for line in lines.fetchall()
        ],
    )
