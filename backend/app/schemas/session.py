from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class SessionError(str, Enum):
    """Public error tags carried on a session payload. Any tag means "not signed in"."""

    SIGN_IN_ERROR = "SignInError"
    REFRESH_TOKEN_MISSING = "RefreshTokenMissing"
    REFRESH_TOKEN_EXPIRED = "RefreshTokenExpired"


class SessionPayload(BaseModel):
    """
    Claims carried inside the signed session token.

    Serialized with camelCase claim names (userId, accessTokenExpires, ...).
    """

    user_id: str | None = None
    name: str | None = None
    email: str | None = None
    picture: str | None = None
    role: str | None = None
    # Epoch seconds; while in the future the payload is trusted without a DB lookup
    access_token_expires: int | None = None
    refresh_token: str | None = None
    error: SessionError | None = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_claims(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")

    def is_fresh(self, now: int) -> bool:
        return self.access_token_expires is not None and now < self.access_token_expires


class SessionUserOut(BaseModel):
    id: str | None = None
    name: str | None = None
    email: str | None = None
    image: str | None = None
    role: str | None = None


class SessionOut(BaseModel):
    user: SessionUserOut
    access_token_expires: int | None = None
    error: SessionError | None = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @classmethod
    def from_payload(cls, payload: SessionPayload) -> SessionOut:
        return cls(
            user=SessionUserOut(
                id=payload.user_id,
                name=payload.name,
                email=payload.email,
                image=payload.picture,
                role=payload.role,
            ),
            access_token_expires=payload.access_token_expires,
            error=payload.error,
        )
