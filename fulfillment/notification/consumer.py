"""
Notification Service — 支払い通知ハンドラ

メッセージは 1 件ずつ独立に処理する:

  1. ペイロードを検証する。不正な形式・注文 ID なしの場合は破棄
  2. 注文ステータスを解釈する (不明・未設定の場合は COMPLETED)
  3. 確認メールを送信する
  4. 顧客に電話番号があれば確認 SMS を送信する

一方のチャネルが失敗してもログに残すだけで、もう一方は止めない。
ここでは例外を送出しない → 結果に関わらずストリームのエントリは ACK される。
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from pydantic import ValidationError

from ..common.messages import PaymentNotification
from ..common.status import OrderStatus
from .channels import EmailPort, SMSPort

logger = logging.getLogger(__name__)

SMS_TEMPLATE = "Your order #%d has been confirmed! Total: $%.2f. Thank you for shopping with us."


@dataclass
class PaymentConfirmation:
    order_id: int
    user_name: str | None
    user_email: str | None
    user_address: str | None
    user_phone: str | None
    order_status: OrderStatus
    order_date: datetime
    total_amount: float

    @classmethod
    def from_message(cls, message: PaymentNotification) -> "PaymentConfirmation":
        return cls(
            order_id=message.order_id,
            user_name=message.user_name,
            user_email=message.user_email,
            user_address=message.user_address,
            user_phone=message.user_phone,
            order_status=OrderStatus.parse(message.order_status),
            order_date=message.order_date or datetime.now(),
            total_amount=message.total_amount or 0.0,
        )

    @property
    def subject(self) -> str:
        return f"Your purchase has been successfully completed - Order #{self.order_id}"

    def email_body(self) -> str:
        return "\n".join([
            f"Hello {self.user_name or 'customer'},",
            "",
            "We are pleased to inform you that your purchase has been successfully processed.",
            "",
            f"Order Number: {self.order_id}",
            f"Order Date: {self.order_date.isoformat()}",
            f"Total Amount Paid: ${self.total_amount:.2f}",
            f"Order Status: {self.order_status.value}",
            "",
            f"Address: {self.user_address or 'N/A'}",
            f"Phone: {self.user_phone or 'N/A'}",
            "",
            "Thank you for shopping with us.",
        ])

    def sms_body(self) -> str:
        return SMS_TEMPLATE % (self.order_id, self.total_amount)


class NotificationConsumer:
    def __init__(self, email: EmailPort, sms: SMSPort):
        self.email = email
        self.sms = sms

    def handle(self, payload: str | bytes) -> PaymentConfirmation | None:
        """生メッセージを 1 件処理し、送信した確認内容を返す(破棄した場合は None)"""
        try:
            message = PaymentNotification.model_validate_json(payload)
        except ValidationError:
            logger.error("Dropping malformed payment notification: %r", payload)
            return None
        if message.order_id is None:
            logger.error("Invalid payment notification: Order ID is null")
            return None

        logger.info("Received payment notification - Order ID: %s, Email: %s",
                    message.order_id, message.user_email)
        confirmation = PaymentConfirmation.from_message(message)
        self._send_email(confirmation)
        self._send_sms(confirmation)
        logger.info("Payment notification processed - Order ID: %s", confirmation.order_id)
        return confirmation

    def _send_email(self, confirmation: PaymentConfirmation) -> None:
        try:
            self.email.send(confirmation.user_email, confirmation.subject, confirmation.email_body())
        except Exception:
            logger.exception("Failed to send email notification - Order ID: %s", confirmation.order_id)

    def _send_sms(self, confirmation: PaymentConfirmation) -> None:
        if not confirmation.user_phone or not confirmation.user_phone.strip():
            logger.debug("Skipping SMS notification - No phone number for order ID: %s",
                         confirmation.order_id)
            return
        try:
            self.sms.send(confirmation.user_phone, confirmation.sms_body())
        except Exception:
            logger.exception("Failed to send SMS notification - Order ID: %s", confirmation.order_id)
