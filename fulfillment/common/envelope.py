"""
共通 — ステータスエンベロープ

サービス間のレスポンスはすべて
``{"status": "SUCCESS" | "ERROR", "message": ..., "data": ...}`` で包む。
"""

from typing import Any

from pydantic import BaseModel

SUCCESS = "SUCCESS"
ERROR = "ERROR"


class ApiResponse(BaseModel):
    status: str
    message: str = ""
    data: Any = None

    @property
    def is_success(self) -> bool:
        return self.status == SUCCESS

    @classmethod
    def success(cls, message: str, data: Any = None) -> "ApiResponse":
        return cls(status=SUCCESS, message=message, data=data)

    @classmethod
    def error(cls, message: str) -> "ApiResponse":
        return cls(status=ERROR, message=message, data=None)
