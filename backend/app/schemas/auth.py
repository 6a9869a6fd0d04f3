# app/schemas/auth.py
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from app.schemas.user import UserOut


class RegisterIn(BaseModel):
    email: EmailStr
    name: str | None = Field(default=None, max_length=100)
    password: str = Field(min_length=1, max_length=128)


class LoginIn(BaseModel):
    email: EmailStr
    password: str


class OAuthSignInIn(BaseModel):
    access_token: str = Field(min_length=1)


class RefreshIn(BaseModel):
    refresh_token: str | None = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RefreshOut(BaseModel):
    refresh_token: str
    user: UserOut

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MessageOut(BaseModel):
    message: str


class RevokeSessionsOut(BaseModel):
    user_id: int
    revoked: int
