# app/services/session_lifecycle.py
"""
Session lifecycle state machine.

Every request carrying a session payload goes through advance_session():

- Initial sign-in (identity present): mint a refresh token, store it (clearing
  the user's previous ones) and return a fresh payload. Failure => SignInError.
- Fresh (access expiry in the future): payload returned untouched, no DB access.
- Expired without refresh token => RefreshTokenMissing.
- Expired with refresh token: validate against the store, rotate, re-mint the
  access expiry. Unknown/expired token or any store failure => RefreshTokenExpired.

No exception leaves this module. Callers only ever see a payload, possibly
tagged with a SessionError, plus an internal RefreshDiagnostic for logs.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum

from sqlalchemy.orm import Session

from app.auth.identity import UserIdentity
from app.schemas.session import SessionError, SessionPayload
from app.services.refresh_tokens import (
    RefreshTokenRotationConflict,
    create_refresh_token,
    generate_refresh_token,
    rotate_refresh_token,
    validate_refresh_token,
)
from app.services.users import get_user_by_email

logger = logging.getLogger(__name__)

# Access tokens are never stored; this is the revocation granularity.
ACCESS_TOKEN_TTL_SECONDS = 15 * 60


class RefreshDiagnostic(str, Enum):
    """Internal-only reason behind a public SessionError. Never sent to clients."""

    SIGN_IN_FAILED = "sign_in_failed"
    MISSING = "missing"
    NOT_FOUND = "not_found"
    ROTATION_CONFLICT = "rotation_conflict"
    STORE_ERROR = "store_error"


@dataclass(frozen=True)
class SessionTransition:
    payload: SessionPayload
    diagnostic: RefreshDiagnostic | None = None
    rotated: bool = False

    @property
    def ok(self) -> bool:
        return self.payload.error is None


def _now_seconds() -> int:
    return int(time.time())


def _failed(payload: SessionPayload, error: SessionError, diagnostic: RefreshDiagnostic) -> SessionTransition:
    return SessionTransition(
        payload=payload.model_copy(update={"error": error}),
        diagnostic=diagnostic,
    )


def start_session(
    db: Session,
    identity: UserIdentity,
    *,
    payload: SessionPayload | None = None,
    now: int | None = None,
) -> SessionTransition:
    now = _now_seconds() if now is None else now
    base = payload or SessionPayload()

    try:
        db_user = get_user_by_email(db, identity.email)
        user_id = str(db_user.id) if db_user is not None else identity.user_id
        if not user_id:
            raise LookupError(f"No user record for provider={identity.provider}")

        refresh_token = generate_refresh_token()
        create_refresh_token(db, user_id, refresh_token)
    except Exception:
        logger.exception("Initial sign-in failed: provider=%s", identity.provider)
        db.rollback()
        return _failed(base, SessionError.SIGN_IN_ERROR, RefreshDiagnostic.SIGN_IN_FAILED)

    fresh = base.model_copy(
        update={
            "user_id": user_id,
            "name": identity.name if identity.name is not None else base.name,
            "email": identity.email or base.email,
            "picture": identity.picture if identity.picture is not None else base.picture,
            "role": (db_user.role if db_user is not None else identity.role) or "user",
            "access_token_expires": now + ACCESS_TOKEN_TTL_SECONDS,
            "refresh_token": refresh_token,
            "error": None,
        }
    )
    logger.info("Session started: user_id=%s provider=%s", user_id, identity.provider)
    return SessionTransition(payload=fresh)


def refresh_session(db: Session, payload: SessionPayload, *, now: int | None = None) -> SessionTransition:
    now = _now_seconds() if now is None else now

    if payload.is_fresh(now):
        return SessionTransition(payload=payload)

    if not payload.refresh_token:
        return _failed(payload, SessionError.REFRESH_TOKEN_MISSING, RefreshDiagnostic.MISSING)

    try:
        user_id = validate_refresh_token(db, payload.refresh_token)
        if not user_id:
            return _failed(payload, SessionError.REFRESH_TOKEN_EXPIRED, RefreshDiagnostic.NOT_FOUND)

        new_refresh_token = rotate_refresh_token(db, payload.refresh_token, user_id)
    except RefreshTokenRotationConflict:
        return _failed(payload, SessionError.REFRESH_TOKEN_EXPIRED, RefreshDiagnostic.ROTATION_CONFLICT)
    except Exception:
        logger.exception("Session refresh failed: user_id=%s", payload.user_id)
        db.rollback()
        return _failed(payload, SessionError.REFRESH_TOKEN_EXPIRED, RefreshDiagnostic.STORE_ERROR)

    refreshed = payload.model_copy(
        update={
            "user_id": user_id,
            "access_token_expires": now + ACCESS_TOKEN_TTL_SECONDS,
            "refresh_token": new_refresh_token,
            "error": None,
        }
    )
    return SessionTransition(payload=refreshed, rotated=True)


def advance_session(
    db: Session,
    payload: SessionPayload | None,
    identity: UserIdentity | None = None,
    *,
    now: int | None = None,
) -> SessionTransition:
    if identity is not None:
        return start_session(db, identity, payload=payload, now=now)
    return refresh_session(db, payload or SessionPayload(), now=now)
