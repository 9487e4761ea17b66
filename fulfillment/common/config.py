"""
共通 — サービス設定

各サービスは環境変数から設定を読み込む(コンテナのデプロイ時と同じ方式)。
デフォルト値はローカルの SQLite ファイルと localhost の連携先を指すため、
他のサービスを起動しなくても単体で立ち上げられる。
"""

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    service_name: str
    database_url: str
    redis_url: str = "redis://localhost:6379"
    catalog_service_url: str = "http://localhost:8001"
    cart_service_url: str = "http://localhost:8002"
    order_service_url: str = "http://localhost:8003"
    user_service_url: str = "http://localhost:8000"
    http_timeout: float = 10.0
    log_level: str = "INFO"
    notification_stream: str = "payment-notifications"
    notification_group: str = "notification-service-group"
    notification_consumer: str = "notification-service"

    @classmethod
    def from_env(cls, service_name: str) -> "Settings":
        env = os.environ
        return cls(
            service_name=service_name,
            database_url=env.get(
                "DATABASE_URL", f"sqlite+aiosqlite:///./{service_name}.db"
            ),
            redis_url=env.get("REDIS_URL", cls.redis_url),
            catalog_service_url=env.get("CATALOG_SERVICE_URL", cls.catalog_service_url),
            cart_service_url=env.get("CART_SERVICE_URL", cls.cart_service_url),
            order_service_url=env.get("ORDER_SERVICE_URL", cls.order_service_url),
            user_service_url=env.get("USER_SERVICE_URL", cls.user_service_url),
            http_timeout=float(env.get("HTTP_TIMEOUT", cls.http_timeout)),
            log_level=env.get("LOG_LEVEL", cls.log_level),
            notification_stream=env.get("NOTIFICATION_STREAM", cls.notification_stream),
            notification_group=env.get("NOTIFICATION_GROUP", cls.notification_group),
            notification_consumer=env.get(
                "NOTIFICATION_CONSUMER", cls.notification_consumer
            ),
        )
