import logging
from enum import Enum

logger = logging.getLogger(__name__)


class OrderStatus(str, Enum):
    """
    注文のライフサイクル: PENDING → PROCESSING → COMPLETED

    失敗・キャンセルの状態は存在しない。
    """

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"

    @classmethod
    def parse(cls, value: str | None) -> "OrderStatus":
        """
        他サービスから受け取ったステータス文字列を解釈する。

        メンバー名と完全一致する値だけを受け付ける。それ以外(値なしを含む)は
        COMPLETED になる。支払い通知が正当に持ちうるステータスは COMPLETED だけ。
        """
        if value is None:
            return cls.COMPLETED
        try:
            return cls(value)
        except ValueError:
            logger.warning("Unknown order status %r, defaulting to COMPLETED", value)
            return cls.COMPLETED
