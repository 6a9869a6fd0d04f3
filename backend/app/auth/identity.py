# app/auth/identity.py
"""
Normalized user identity shared by every sign-in path.

Password sign-ins and external provider sign-ins both resolve to a
UserIdentity before the session lifecycle takes over, so downstream code
never has to know which provider produced it.

The identity is INTERNAL ONLY; clients see the session payload instead.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from app.auth.providers import CREDENTIALS

if TYPE_CHECKING:
    from app.models.user import User


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


@dataclass(frozen=True)
class UserIdentity:
    """
    Attributes:
        email: Normalized (trimmed, lowercased) email; the join key with the
               user directory.
        provider: "credentials" | "google" | "github".
        user_id: Internal user id as a string, when already known. External
                 provider identities carry None until synced.
        name: Display name, if any.
        picture: Avatar URL, if any.
        role: "user" | "admin".
        external_subject: Provider-side account id (never used for auth decisions).
        raw_profile: Provider payload kept for debugging/audit only.
    """

    email: str
    provider: str = CREDENTIALS
    user_id: str | None = None
    name: str | None = None
    picture: str | None = None
    role: str = "user"
    external_subject: str | None = None
    raw_profile: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_user(cls, user: User) -> UserIdentity:
        return cls(
            email=normalize_email(user.email),
            provider=user.provider or CREDENTIALS,
            user_id=str(user.id),
            name=user.name,
            picture=user.image,
            role=user.role or "user",
        )

    @classmethod
    def from_provider_profile(
        cls,
        provider: str,
        *,
        email: str | None,
        name: str | None = None,
        picture: str | None = None,
        external_subject: str | None = None,
        raw_profile: dict[str, Any] | None = None,
    ) -> UserIdentity:
        return cls(
            email=normalize_email(email),
            provider=provider,
            name=(name or "").strip() or None,
            picture=picture or None,
            external_subject=str(external_subject) if external_subject is not None else None,
            raw_profile=raw_profile or {},
        )

    def to_debug_dict(self) -> dict[str, Any]:
        """
        Return a safe subset of identity info for logs.

        Does NOT include raw_profile to avoid leaking provider data.
        """
        return {
            "user_id": self.user_id,
            "provider": self.provider,
            "external_subject": self.external_subject,
            "email": self.email,
            "role": self.role,
        }
