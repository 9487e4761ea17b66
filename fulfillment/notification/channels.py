"""
Notification Service — 通知チャネル

配信は 2 つのポートを経由する。デフォルトのアダプタは送信内容をログに出すだけ。
メール・SMS プロバイダはポートを実装して差し込む。
"""

import logging
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class EmailPort(ABC):
    @abstractmethod
    def send(self, to: str, subject: str, body: str) -> None:
        """メール送信。配信に失敗したら例外を送出する"""


class SMSPort(ABC):
    @abstractmethod
    def send(self, to: str, body: str) -> None:
        """SMS 送信。配信に失敗したら例外を送出する"""


class LoggingEmailAdapter(EmailPort):
    def send(self, to: str, subject: str, body: str) -> None:
        if not to or not to.strip():
            raise ValueError("Recipient email is required")
        logger.info("Email sent - To: %s, Subject: %s", to, subject)


class LoggingSMSAdapter(SMSPort):
    def send(self, to: str, body: str) -> None:
        if not to or not to.strip():
            raise ValueError("Phone number cannot be null or blank")
        if not body or not body.strip():
            raise ValueError("Message body cannot be null or blank")
        logger.info("SMS sent - To: %s, Message: %s", to, body)
