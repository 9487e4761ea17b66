"""
Payment Service — Order Service クライアント
"""

import logging
from datetime import datetime

from pydantic import BaseModel, Field, ValidationError

from ..common.context import RequestContext
from ..common.errors import OrderNotFound, PaymentProcessingError, RemoteCallFailure, RemoteNotFound
from ..common.remote import RemoteService

logger = logging.getLogger(__name__)


class OrderItemSnapshot(BaseModel):
    product_id: int
    product_name: str
    quantity: int
    unit_price: float
    total_price: float


class OrderSnapshot(BaseModel):
    order_id: int
    user_id: int | None = None
    name: str | None = None
    last_name: str | None = None
    email: str | None = None
    address: str | None = None
    phone: str | None = None
    role: str | None = None
    items: list[OrderItemSnapshot] = Field(default_factory=list)
    total_amount: float = 0.0
    status: str | None = None
    order_date: datetime | None = None


class OrderClient(RemoteService):
    service_name = "order service"

    async def bring_order(self, ctx: RequestContext, order_id: int) -> OrderSnapshot:
        """支払い用に注文を取得する。副作用として注文は PROCESSING になる"""
        try:
            data = await self.required("GET", f"/orders/bring/{order_id}", ctx)
        except RemoteNotFound as e:
            raise OrderNotFound(order_id) from e
        except RemoteCallFailure as e:
            raise PaymentProcessingError(f"Failed to retrieve order details: {e}") from e
        return _snapshot(data, "Failed to retrieve order details")

    async def complete_order(self, ctx: RequestContext, order_id: int) -> OrderSnapshot:
        try:
            data = await self.required("POST", f"/orders/complete/{order_id}", ctx)
        except RemoteNotFound as e:
            logger.error("Order not found while completing - Order ID: %s", order_id)
            raise OrderNotFound(order_id) from e
        except RemoteCallFailure as e:
            logger.error("Failed to complete order via order service - Order ID: %s", order_id)
            raise PaymentProcessingError(f"Failed to complete order: {e}") from e
        return _snapshot(data, "Failed to complete order")


def _snapshot(data, failure: str) -> OrderSnapshot:
    if data is None:
        raise PaymentProcessingError(f"{failure}: order service returned no order")
    try:
        return OrderSnapshot.model_validate(data)
    except ValidationError as e:
        raise PaymentProcessingError(f"{failure}: invalid order in response") from e
