from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class WireModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class LoginRequest(WireModel):
    email: str
    password: str


class SignupRequest(WireModel):
    email: str
    password: str


class RefreshTokenRequest(WireModel):
    refresh_token: str = Field(alias="refreshToken")


class LogoutRequest(WireModel):
    refresh_token: str = Field(alias="refreshToken")


class UploadImageRequest(WireModel):
    image: str


class UpdatePasswordRequest(WireModel):
    current_password: str = Field(alias="currentPassword")
    new_password: str = Field(alias="newPassword")


class UpdateAvatarUrlRequest(WireModel):
    avatar_url: str = Field(alias="avatarUrl")


class UserResponse(WireModel):
    id: str | int
    email: str | None = None
    avatar_url: str | None = Field(default=None, alias="avatarUrl")


class AuthResponse(WireModel):
    access_token: str = Field(alias="accessToken")
    # The refresh endpoint may rotate only the access token.
    refresh_token: str | None = Field(default=None, alias="refreshToken")
    user: UserResponse | None = None


class UploadImageResponse(WireModel):
    url: str


class StoredSession(BaseModel):
    access_token: str | None = None
    refresh_token: str
    user: UserResponse | None = None
