"""
Notification Service — FastAPI エントリーポイント

業務用のエンドポイントは持たない。lifespan で Redis Streams のサブスクライバを
バックグラウンド実行し、HTTP はヘルスチェックのみを返す。

┌─────────────────┐ payment-notifications ┌──────────────────────┐
│ Payment Service │ ─────── Redis ──────▶ │ Notification Service │
│                 │   Streams (group)     │   email / SMS        │
└─────────────────┘                        └──────────────────────┘
"""

import asyncio
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from fastapi import FastAPI

from ..common.config import Settings
from ..common.log import configure_logging
from .channels import EmailPort, LoggingEmailAdapter, LoggingSMSAdapter, SMSPort
from .consumer import NotificationConsumer
from .subscriber import run_subscriber


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    configure_logging(settings.log_level)
    redis_conn = aioredis.from_url(settings.redis_url, decode_responses=True)
    shutdown_event = asyncio.Event()
    subscriber_task = asyncio.create_task(
        run_subscriber(
            redis_conn,
            app.state.consumer,
            settings.notification_stream,
            settings.notification_group,
            settings.notification_consumer,
            shutdown_event,
        )
    )
    yield
    shutdown_event.set()
    subscriber_task.cancel()
    try:
        await subscriber_task
    except asyncio.CancelledError:
        pass
    await redis_conn.aclose()


def create_app(
    settings: Settings | None = None,
    *,
    email: EmailPort | None = None,
    sms: SMSPort | None = None,
) -> FastAPI:
    app = FastAPI(title="Notification Service", lifespan=lifespan)
    app.state.settings = settings or Settings.from_env("notification")
    app.state.consumer = NotificationConsumer(
        email or LoggingEmailAdapter(), sms or LoggingSMSAdapter()
    )

    @app.get("/health")
    async def health():
        return {"status": "ok", "service": "notification-service"}

    return app


app = create_app()
