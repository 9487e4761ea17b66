"""
Notification Service — Redis Streams サブスクライバ

コンシューマグループ経由で payment-notifications ストリームを読む。
エントリは処理後にのみ ACK するため、読み取りと ACK の間でクラッシュすると
ペンディングのまま残る。起動時はまず自分のペンディング (id "0") を処理してから
新着 (id ">") を読む。
→ 配信は at-least-once であり、同じメッセージが 2 回処理されることがある。
"""

import asyncio
import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError, ResponseError

from .consumer import NotificationConsumer

logger = logging.getLogger(__name__)


async def ensure_group(redis_conn: aioredis.Redis, stream: str, group: str) -> None:
    try:
        await redis_conn.xgroup_create(stream, group, id="0", mkstream=True)
        logger.info("Created consumer group %s on %s", group, stream)
    except ResponseError as e:
        if "BUSYGROUP" not in str(e):
            raise


async def process_batch(
    redis_conn: aioredis.Redis,
    consumer: NotificationConsumer,
    stream: str,
    group: str,
    name: str,
    last_id: str,
    block_ms: int | None = None,
) -> int:
    """このコンシューマ宛てのバッチを 1 回読み、処理して ACK する。処理件数を返す"""
    response = await redis_conn.xreadgroup(group, name, {stream: last_id}, count=10, block=block_ms)
    handled = 0
    for _, entries in response or []:
        for entry_id, fields in entries:
            consumer.handle((fields or {}).get("payload", ""))
            await redis_conn.xack(stream, group, entry_id)
            handled += 1
    return handled


async def run_subscriber(
    redis_conn: aioredis.Redis,
    consumer: NotificationConsumer,
    stream: str,
    group: str,
    name: str,
    shutdown_event: asyncio.Event,
    retry_delay: float = 1.0,
) -> None:
    """
    shutdown_event がセットされるまで消費を続ける。Redis 接続は呼び出し元が管理する。

    Redis エラーの後はグループを再セットアップし、ペンディングを読み直す。
    ストリームが削除・再作成された場合 (NOGROUP) もこれで復旧する。
    """
    ready = False
    while True:
        try:
            if not ready:
                await ensure_group(redis_conn, stream, group)
                while await process_batch(redis_conn, consumer, stream, group, name, "0"):
                    pass
                ready = True
                logger.info("Subscribed to %s as %s/%s", stream, group, name)
            if shutdown_event.is_set():
                break
            await process_batch(redis_conn, consumer, stream, group, name, ">", block_ms=1000)
        except RedisError:
            logger.exception("Redis error while consuming %s, retrying", stream)
            ready = False
            if shutdown_event.is_set():
                break
            await asyncio.sleep(retry_delay)
