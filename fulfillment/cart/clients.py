"""
Cart Service — Catalog Service クライアント
"""

import logging

from pydantic import BaseModel

from ..common.context import RequestContext
from ..common.errors import (
    CartOperationError,
    ProductNotFound,
    RemoteCallFailure,
    RemoteNotFound,
    StockUpdateError,
)
from ..common.remote import RemoteService

logger = logging.getLogger(__name__)


class ProductSnapshot(BaseModel):
    id: int
    name: str
    description: str | None = None
    price: float
    category: str | None = None
    stock: int | None = None


class CatalogClient(RemoteService):
    service_name = "catalog service"

    async def fetch_product(self, ctx: RequestContext, product_id: int) -> ProductSnapshot:
        try:
            data = await self.required("GET", f"/product/{product_id}", ctx)
        except RemoteNotFound as e:
            raise ProductNotFound(product_id) from e
        if data is None:
            raise ProductNotFound(product_id)
        return ProductSnapshot.model_validate(data)

    async def decrement_stock(self, ctx: RequestContext, product_id: int, quantity: int) -> ProductSnapshot:
        """
        在庫引き当て。必須の呼び出しなので、失敗したら呼び出し元は処理を中断する。

        Catalog が拒否した場合(商品なし・在庫不足)は CartOperationError、
        Catalog に到達できない・障害の場合は StockUpdateError になる。
        """
        try:
            data = await self.required(
                "PUT", f"/product/update/stock/{product_id}", ctx, json=quantity
            )
        except RemoteNotFound as e:
            raise CartOperationError(f"Failed to update product stock: {e}") from e
        except RemoteCallFailure as e:
            if e.remote_status is not None and 400 <= e.remote_status < 500:
                raise CartOperationError(f"Failed to update product stock: {e}") from e
            raise StockUpdateError(f"Failed to update product stock: {e}") from e
        return ProductSnapshot.model_validate(data)

    async def restore_stock(self, ctx: RequestContext, product_id: int, quantity: int) -> bool:
        """引き当て解除(ベストエフォート)。失敗時は例外ではなく False を返す"""
        data = await self.best_effort(
            "PUT", f"/product/restore/stock/{product_id}", ctx, json=quantity
        )
        if data is None:
            logger.error("Failed to restore stock for product ID: %s, quantity: %s", product_id, quantity)
            return False
        return True
