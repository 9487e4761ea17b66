"""
共通 — ユーザー参照

ユーザーサービスは外部システム。エンベロープなしの JSON プロフィールか
404 を返す。
"""

from pydantic import BaseModel, ConfigDict, Field

from .context import RequestContext
from .errors import RemoteCallFailure, UserNotFound
from .remote import RemoteService


class UserProfile(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str = ""
    last_name: str = Field(default="", alias="lastName")
    email: str | None = None
    role: str | None = None
    address: str | None = None
    phone: str | None = None


class UserClient(RemoteService):
    service_name = "user service"

    async def get_user(self, ctx: RequestContext, user_id: int) -> UserProfile:
        response = await self.send("GET", f"/users/client/user/{user_id}", ctx)
        if response.status_code == 404:
            raise UserNotFound(user_id)
        if response.is_error:
            raise RemoteCallFailure(
                f"{self.service_name} error: {response.reason_phrase}",
                remote_status=response.status_code,
            )
        try:
            return UserProfile.model_validate(response.json())
        except ValueError as e:
            raise RemoteCallFailure(f"{self.service_name} returned an invalid profile") from e
