"""User and authentication schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from schoolbook.models.enums import UserRole


class RegisterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=1)
    role: UserRole = UserRole.STUDENT
    section: str = Field(min_length=1, max_length=50)
    telegram_username: str | None = Field(default=None, alias="telegramUsername")
    telegram_id: str | None = Field(default=None, alias="telegramId")

    @field_validator("username", "section")
    @classmethod
    def strip_text(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("must not be blank")
        return stripped


class LoginRequest(BaseModel):
    username: str
    section: str
    password: str


class UserOut(BaseModel):
    """Public view of a user. Never carries the password hash."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    username: str
    role: str
    section: str | None = None
    telegram_username: str | None = Field(default=None, alias="telegramUsername")
    telegram_id: str | None = Field(default=None, alias="telegramId")


class TokenOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(alias="accessToken")
    token_type: str = Field(default="bearer", alias="tokenType")
    user: UserOut


class TelegramContactUpdate(BaseModel):
    """Only the telegram contact of a user is editable after registration."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    telegram_username: str | None = Field(default=None, alias="telegramUsername")
    telegram_id: str | None = Field(default=None, alias="telegramId")

    @field_validator("telegram_username")
    @classmethod
    def drop_at_sign(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip().lstrip("@") or None
