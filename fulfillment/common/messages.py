"""
共通 — 支払い通知メッセージ

Payment Service が支払い完了ごとに 1 件発行し、Notification Service が消費する。
配信は at-least-once で、消費側での重複排除は行わない。
"""

from datetime import datetime

from pydantic import BaseModel


class PaymentNotification(BaseModel):
    order_id: int | None = None
    user_name: str | None = None
    user_email: str | None = None
    user_address: str | None = None
    user_phone: str | None = None
    order_status: str | None = None
    order_date: datetime | None = None
    total_amount: float | None = None
