"""
Payment Service — 通知プロデューサ

完了した支払いは Redis ストリームに発行し、Notification Service が
コンシューマグループ経由で読む。エントリは JSON ペイロードと並べて注文 ID を持つ。
ストリームは 1 本なので注文ごとの順序は保たれる。

発行は支払いのレスポンスをブロックしない。ディスパッチャは各メッセージを
バックグラウンドタスクに渡し、失敗はログに残して破棄する。
"""

import asyncio
import logging

import redis.asyncio as aioredis

from ..common.messages import PaymentNotification

logger = logging.getLogger(__name__)


class NotificationProducer:
    def __init__(self, redis: aioredis.Redis, stream: str):
        self.redis = redis
        self.stream = stream

    async def publish(self, message: PaymentNotification) -> str:
        entry_id = await self.redis.xadd(
            self.stream,
            {"order_id": str(message.order_id), "payload": message.model_dump_json()},
        )
        logger.info("Sent payment notification for order %s as entry %s", message.order_id, entry_id)
        return entry_id

    async def aclose(self) -> None:
        await self.redis.aclose()


class NotificationDispatcher:
    """支払い通知の fire-and-forget 発行"""

    def __init__(self, producer: NotificationProducer):
        self.producer = producer
        self._pending: set[asyncio.Task] = set()

    def dispatch(self, message: PaymentNotification) -> None:
        task = asyncio.create_task(self._publish(message))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _publish(self, message: PaymentNotification) -> None:
        try:
            await self.producer.publish(message)
        except Exception:
            logger.exception("Unable to send payment notification for order %s", message.order_id)

    async def drain(self) -> None:
        """実行中の発行の完了を待つ (シャットダウン時に使用)"""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
