"""
共通 — リモート連携先

他サービスへの呼び出しは 2 種類に分かれ、それぞれ専用の入口を持つ。
補償処理の呼び出しが誤って本処理の成功パスに入り込むことはない。

  required()     これが失敗すると操作全体が成立しない呼び出し。
                 失敗はすべて例外になる: 404 は RemoteNotFound、
                 それ以外は RemoteCallFailure。
  best_effort()  補償トランザクション(Compensating Transaction)。
                 失敗はログに残して None を返す。

リトライはしない。どの呼び出しも httpx クライアントのタイムアウト内で 1 回だけ
実行し、呼び出し元の ID ヘッダーを転送する。
"""

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from .context import RequestContext
from .envelope import ApiResponse
from .errors import FulfillmentError, RemoteCallFailure, RemoteNotFound

logger = logging.getLogger(__name__)


class RemoteService:
    service_name = "remote service"

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    @classmethod
    def from_url(cls, base_url: str, timeout: float) -> "RemoteService":
        return cls(httpx.AsyncClient(base_url=base_url, timeout=timeout))

    async def aclose(self) -> None:
        await self.client.aclose()

    async def send(
        self, method: str, url: str, ctx: RequestContext, **kwargs: Any
    ) -> httpx.Response:
        try:
            return await self.client.request(method, url, headers=ctx.headers(), **kwargs)
        except httpx.HTTPError as e:
            raise RemoteCallFailure(f"{self.service_name} unreachable: {e}") from e

    async def required(
        self, method: str, url: str, ctx: RequestContext, **kwargs: Any
    ) -> Any:
        """必須の呼び出しを行い、エンベロープの data を返す"""
        response = await self.send(method, url, ctx, **kwargs)
        envelope = _parse_envelope(response)
        message = envelope.message if envelope else response.text

        if response.status_code == 404:
            raise RemoteNotFound(message or f"{self.service_name}: resource not found")
        if response.is_error or envelope is None or not envelope.is_success:
            raise RemoteCallFailure(
                f"{self.service_name} error: {message or response.reason_phrase}",
                remote_status=response.status_code,
            )
        return envelope.data

    async def best_effort(
        self, method: str, url: str, ctx: RequestContext, **kwargs: Any
    ) -> Any | None:
        """補償処理の呼び出し。失敗は呼び出し元に伝播しない"""
        try:
            return await self.required(method, url, ctx, **kwargs)
        except FulfillmentError as e:
            logger.error("Compensating call %s %s failed: %s", method, url, e)
            return None


def _parse_envelope(response: httpx.Response) -> ApiResponse | None:
    try:
        return ApiResponse.model_validate(response.json())
    except (ValueError, ValidationError):
        return None
