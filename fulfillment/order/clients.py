"""
Order Service — Cart Service クライアント
"""

from pydantic import BaseModel, Field

from ..common.context import RequestContext
from ..common.errors import RemoteNotFound
from ..common.remote import RemoteService


class CartLineSnapshot(BaseModel):
    product_id: int
    product_name: str
    quantity: int
    unit_price: float


class CartSnapshot(BaseModel):
    cart_id: int | None = None
    user_id: int
    email: str | None = None
    total: float = 0.0
    items: list[CartLineSnapshot] = Field(default_factory=list)


class CartClient(RemoteService):
    service_name = "cart service"

    async def send_cart(self, ctx: RequestContext) -> CartSnapshot | None:
        """呼び出し元のカート。まだカートがなければ None"""
        try:
            data = await self.required("GET", "/shopping/send-cart", ctx)
        except RemoteNotFound:
            return None
        if data is None:
            return None
        return CartSnapshot.model_validate(data)

    async def checkout_cart(self, ctx: RequestContext) -> None:
        await self.required("POST", "/shopping/checkout-cart", ctx)
