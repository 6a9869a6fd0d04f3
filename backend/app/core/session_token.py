# app/core/session_token.py
"""
Signed session token codec.

The session payload travels to the client inside an HS256 JWT. Clients can
read but not alter it: any change to the claims breaks the signature and
decode_session_token() raises SessionTokenError.
"""
from __future__ import annotations

import time
from typing import Any

from jose import JWTError, jwt
from pydantic import ValidationError

from app.core.config import settings
from app.schemas.session import SessionPayload


class SessionTokenError(Exception):
    """Raised when a session token is tampered with, expired, or malformed."""


def _require_session_secret() -> str:
    secret = settings.SESSION_SECRET
    if not secret or not secret.strip():
        raise RuntimeError("SESSION_SECRET must be set (sessions are signed).")
    return secret


def encode_session_token(payload: SessionPayload, *, now: int | None = None) -> str:
    secret = _require_session_secret()
    issued_at = int(now if now is not None else time.time())

    claims: dict[str, Any] = payload.to_claims()
    claims["iat"] = issued_at
    claims["exp"] = issued_at + int(settings.SESSION_MAX_AGE_SECONDS)
    return jwt.encode(claims, secret, algorithm=settings.JWT_ALGORITHM)


def decode_session_token(token: str) -> SessionPayload:
    secret = _require_session_secret()
    if not token:
        raise SessionTokenError("Missing session token")

    try:
        claims = jwt.decode(token, secret, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as exc:
        raise SessionTokenError("Invalid or expired session token") from exc

    claims.pop("iat", None)
    claims.pop("exp", None)
    try:
        return SessionPayload.model_validate(claims)
    except ValidationError as exc:
        raise SessionTokenError("Invalid session claims") from exc
