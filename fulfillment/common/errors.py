"""
共通 — エラー分類

    NotFoundError          404  商品 / ユーザー / カート / 注文が存在しない
    OperationConflictError 409  在庫不足、カートにない商品、空のカート
    RemoteCallFailure      502  連携先に到達できない、またはエラーを返した
    PersistenceFailure     500  リモート側の副作用の後でローカル書き込みに失敗
    InvalidRequestError    400  不正な ID や金額

``register_exception_handlers`` が各 FastAPI アプリに登録するハンドラが、
すべてのエラーを ERROR エンベロープとして返す。
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .envelope import ApiResponse

logger = logging.getLogger(__name__)


class FulfillmentError(Exception):
    status_code = 500


class InvalidRequestError(FulfillmentError):
    status_code = 400


class NotFoundError(FulfillmentError):
    status_code = 404


class OperationConflictError(FulfillmentError):
    status_code = 409


class RemoteCallFailure(FulfillmentError):
    """連携先に到達できない、または失敗を返した"""

    status_code = 502

    def __init__(self, message: str, remote_status: int | None = None):
        super().__init__(message)
        self.remote_status = remote_status


class PersistenceFailure(FulfillmentError):
    status_code = 500


class RemoteNotFound(NotFoundError):
    """連携先が 404 を返した"""


class ProductNotFound(NotFoundError):
    def __init__(self, product_id: int):
        super().__init__(f"Product not found with ID: {product_id}")
        self.product_id = product_id


class UserNotFound(NotFoundError):
    def __init__(self, user_id: int):
        super().__init__(f"User not found with ID: {user_id}")
        self.user_id = user_id


class CartNotFound(NotFoundError):
    def __init__(self, user_id: int):
        super().__init__(f"Cart not found for user ID: {user_id}")
        self.user_id = user_id


class OrderNotFound(NotFoundError):
    def __init__(self, order_id: int):
        super().__init__(f"Order not found with ID: {order_id}")
        self.order_id = order_id


class InsufficientStock(OperationConflictError):
    pass


class CartOperationError(OperationConflictError):
    pass


class OrderCreationError(OperationConflictError):
    pass


class StockUpdateError(RemoteCallFailure):
    pass


class PaymentProcessingError(RemoteCallFailure):
    pass


class CartPersistenceError(PersistenceFailure):
    pass


class PaymentPersistenceError(PersistenceFailure):
    pass


def require_positive(value: int | None, label: str) -> int:
    if value is None:
        raise InvalidRequestError(f"{label} cannot be null")
    if value <= 0:
        raise InvalidRequestError(f"{label} must be a positive number")
    return value


async def _handle_fulfillment_error(request: Request, exc: FulfillmentError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content=ApiResponse.error(str(exc)).model_dump(),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FulfillmentError, _handle_fulfillment_error)
