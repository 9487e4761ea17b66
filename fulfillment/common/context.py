"""
共通 — リクエストコンテキスト

呼び出し元の ID はゲートウェイが付与する 3 つのヘッダーで届く。
リクエストごとに明示的な値に変換し、各コマンドと外部呼び出しへ引数で渡す。
モジュールのグローバル状態には保持しない。
"""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Header

USER_ID_HEADER = "X-USER-ID"
USER_EMAIL_HEADER = "X-USER-EMAIL"
USER_ROLE_HEADER = "X-USER-ROLE"


@dataclass(frozen=True)
class RequestContext:
    user_id: int | None = None
    email: str | None = None
    role: str | None = None

    def headers(self) -> dict[str, str]:
        """サービス間呼び出しで転送する ID ヘッダー"""
        headers = {}
        if self.user_id is not None:
            headers[USER_ID_HEADER] = str(self.user_id)
        if self.email:
            headers[USER_EMAIL_HEADER] = self.email
        if self.role:
            headers[USER_ROLE_HEADER] = self.role
        return headers


async def request_context(
    x_user_id: Annotated[int | None, Header()] = None,
    x_user_email: Annotated[str | None, Header()] = None,
    x_user_role: Annotated[str | None, Header()] = None,
) -> RequestContext:
    return RequestContext(user_id=x_user_id, email=x_user_email, role=x_user_role)
