from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.durations import DEFAULT_REFRESH_LIFETIME, parse_duration_or
from app.models.refresh_token import RefreshToken

logger = logging.getLogger(__name__)

REFRESH_TOKEN_BYTES = 64


class RefreshTokenRotationConflict(Exception):
    """Raised by strict rotation when the presented token was already consumed."""


# -----------------------------
# Refresh token settings
# -----------------------------
def refresh_token_lifetime() -> timedelta:
    raw = getattr(settings, "JWT_REFRESH_EXPIRES_IN", None)
    lifetime = parse_duration_or(raw, DEFAULT_REFRESH_LIFETIME)
    if lifetime is DEFAULT_REFRESH_LIFETIME:
        logger.warning("Unparseable JWT_REFRESH_EXPIRES_IN=%r; using 7 day default", raw)
    return lifetime


def refresh_token_expiry(now: datetime | None = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    try:
        return now + refresh_token_lifetime()
    except OverflowError:
        # Parses, but lands past datetime.max
        logger.warning(
            "JWT_REFRESH_EXPIRES_IN=%r overflows the calendar; using 7 day default",
            settings.JWT_REFRESH_EXPIRES_IN,
        )
        return now + DEFAULT_REFRESH_LIFETIME


def generate_refresh_token() -> str:
    """
    Opaque, unguessable refresh token (64 random bytes, hex encoded).
    The raw value only ever lives in the client's session payload.
    """
    return secrets.token_hex(REFRESH_TOKEN_BYTES)


def hash_refresh_token(raw_token: str) -> str:
    """
    Store only a hash in DB.
    HMAC keyed by the refresh secret so DB leaks can't be replayed or brute-forced.
    """
    secret = (settings.refresh_token_secret or "").encode("utf-8")
    if not secret:
        raise RuntimeError("REFRESH_TOKEN_SECRET or SESSION_SECRET must be set to hash refresh tokens.")
    return hmac.new(secret, raw_token.encode("utf-8"), hashlib.sha256).hexdigest()


def _user_pk(user_id: int | str) -> int:
    return int(user_id)


# -----------------------------
# Store operations
# -----------------------------
def create_refresh_token(
    db: Session,
    user_id: int | str,
    token: str,
    expires_at: datetime | None = None,
) -> RefreshToken:
    """
    First-issuance path: clears every existing record for the user, then
    stores the new token. Leaves exactly one record for the user.
    """
    pk = _user_pk(user_id)
    db.query(RefreshToken).filter(RefreshToken.user_id == pk).delete(synchronize_session=False)

    rt = RefreshToken(
        user_id=pk,
        token_hash=hash_refresh_token(token),
        expires_at=expires_at or refresh_token_expiry(),
    )
    db.add(rt)
    db.commit()
    return rt


def validate_refresh_token(db: Session, token: str, *, now: datetime | None = None) -> str | None:
    """Return the owning user id if the token is known and not yet expired."""
    if not token:
        return None
    now = now or datetime.now(timezone.utc)
    rt = (
        db.query(RefreshToken)
        .filter(
            RefreshToken.token_hash == hash_refresh_token(token),
            RefreshToken.expires_at > now,
        )
        .first()
    )
    if not rt:
        return None
    return str(rt.user_id)


def rotate_refresh_token(
    db: Session,
    old_token: str,
    user_id: int | str,
    *,
    strict: bool | None = None,
) -> str:
    """
    Delete the presented token, then insert a fresh one for the same user.

    The two steps commit separately: a failure in between leaves the user with
    no valid refresh token (forces sign-in) rather than two.

    With strict rotation a zero-row delete means another request already
    consumed this token, and RefreshTokenRotationConflict is raised instead of
    minting a second live token.
    """
    if strict is None:
        strict = settings.REFRESH_TOKEN_STRICT_ROTATION

    pk = _user_pk(user_id)
    deleted = (
        db.query(RefreshToken)
        .filter(RefreshToken.token_hash == hash_refresh_token(old_token))
        .delete(synchronize_session=False)
    )
    db.commit()

    if deleted == 0 and strict:
        logger.warning("Refresh token rotation conflict: user_id=%s", pk)
        raise RefreshTokenRotationConflict("Refresh token was already rotated")

    new_token = generate_refresh_token()
    db.add(
        RefreshToken(
            user_id=pk,
            token_hash=hash_refresh_token(new_token),
            expires_at=refresh_token_expiry(),
        )
    )
    db.commit()
    logger.info("Rotated refresh token: user_id=%s", pk)
    return new_token


def revoke_refresh_token(db: Session, token: str) -> None:
    if not token:
        return
    db.query(RefreshToken).filter(RefreshToken.token_hash == hash_refresh_token(token)).delete(
        synchronize_session=False
    )
    db.commit()


def revoke_all_refresh_tokens(db: Session, user_id: int | str) -> int:
    pk = _user_pk(user_id)
    count = db.query(RefreshToken).filter(RefreshToken.user_id == pk).delete(synchronize_session=False)
    db.commit()
    logger.info("Revoked all refresh tokens: user_id=%s count=%s", pk, count)
    return int(count or 0)


def purge_expired_refresh_tokens(db: Session, *, now: datetime | None = None) -> int:
    now = now or datetime.now(timezone.utc)
    count = db.query(RefreshToken).filter(RefreshToken.expires_at <= now).delete(synchronize_session=False)
    db.commit()
    return int(count or 0)
