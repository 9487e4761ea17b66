"""
Payment Service — コマンドハンドラ

create_payment は複数サービスにまたがる唯一の書き込み Saga:

  1. 支払いレコードを組み立てる (常に SUCCESS。金額は注文合計と照合しない)
  2. Order Service で注文を完了にする              (必須)
  3. 支払いをローカルに保存する
  4. 通知をディスパッチャに渡す                    (fire-and-forget)

ステップ 2 は必ずステップ 3・4 より先に行う。失敗したら何も保存・発行しない。
ステップ 3 が失敗すると、注文は支払いレコードなしで COMPLETED のまま残り、
呼び出し元には PaymentPersistenceError を返す。通知はステップ 2 が返した
スナップショットから作る (bring で読み直すと PROCESSING に戻ってしまうため)。
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..common.context import RequestContext
from ..common.errors import InvalidRequestError, PaymentPersistenceError, require_positive
from ..common.messages import PaymentNotification
from .clients import OrderClient, OrderSnapshot
from .producer import NotificationDispatcher
from .tables import payments

logger = logging.getLogger(__name__)

PAYMENT_SUCCESS = "SUCCESS"


@dataclass
class Payment:
    order_id: int
    total: float
    currency: str
    method: str
    description: str | None = None
    status: str = PAYMENT_SUCCESS
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: int | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "total": self.total,
            "currency": self.currency,
            "method": self.method,
            "description": self.description,
            "status": self.status,
            "created_at": self.created_at.isoformat(),
        }


def _require_text(value: str | None, message: str) -> str:
    if value is None or not value.strip():
        raise InvalidRequestError(message)
    return value.strip()


async def view_order(orders: OrderClient, ctx: RequestContext, order_id: int) -> OrderSnapshot:
    """支払い画面用の注文詳細。注文は PROCESSING に遷移する"""
    require_positive(order_id, "Order ID")
    logger.debug("Fetching order details for order ID: %s", order_id)
    return await orders.bring_order(ctx, order_id)


async def create_payment(
    session: AsyncSession,
    orders: OrderClient,
    dispatcher: NotificationDispatcher,
    ctx: RequestContext,
    order_id: int,
    amount: float,
    currency: str,
    method: str,
    description: str | None = None,
) -> Payment:
    require_positive(order_id, "Order ID")
    method = _require_text(method, "Payment method is required")
    currency = _require_text(currency, "Currency is required")
    if amount is None or not math.isfinite(amount):
        raise InvalidRequestError("Invalid amount format")
    if amount <= 0:
        raise InvalidRequestError("Amount must be a positive value")

    payment = Payment(
        order_id=order_id,
        total=amount,
        currency=currency,
        method=method,
        description=description,
    )
    logger.info("Processing payment for order ID: %s, amount: %s %s", order_id, amount, currency)

    order = await orders.complete_order(ctx, order_id)
    logger.info("Order ID: %s marked as COMPLETED", order_id)

    try:
        result = await session.execute(
            insert(payments).values(
                order_id=payment.order_id,
                total=payment.total,
                currency=payment.currency,
                method=payment.method,
                description=payment.description,
                status=payment.status,
                created_at=payment.created_at,
            )
        )
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error("Failed to save payment for completed order ID: %s", order_id, exc_info=True)
        raise PaymentPersistenceError(f"Failed to save payment for order ID: {order_id}") from e
    payment.id = result.inserted_primary_key[0]
    logger.info("Payment ID: %s saved for order ID: %s", payment.id, order_id)

    dispatcher.dispatch(build_notification(order, payment))
    return payment


def build_notification(order: OrderSnapshot, payment: Payment) -> PaymentNotification:
    user_name = " ".join(part for part in (order.name, order.last_name) if part)
    return PaymentNotification(
        order_id=order.order_id,
        user_name=user_name or None,
        user_email=order.email,
        user_address=order.address,
        user_phone=order.phone,
        order_status=order.status,
        order_date=order.order_date,
        total_amount=payment.total,
    )
