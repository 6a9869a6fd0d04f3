# app/services/identity_sync.py
"""
Provider adapter.

Sits between "someone authenticated" and the session lifecycle:

- credentials: the password was already checked, nothing to sync
- google/github: make sure a local user exists for the email and apply the
  provider transition table (credentials -> external)

A failed sync blocks sign-in; it never produces a half-signed-in session.
"""
from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from app.auth.identity import UserIdentity
from app.auth.providers import CREDENTIALS, PROVIDERS, next_provider
from app.services.session_lifecycle import SessionTransition, start_session
from app.services.users import create_user, get_user_by_email, update_user_provider

logger = logging.getLogger(__name__)


def sync_provider_identity(db: Session, identity: UserIdentity) -> bool:
    """
    Create or upgrade the local user record for an external provider sign-in.

    Returns False (after rolling back) on any storage error.
    """
    if not identity.email:
        logger.warning("Provider sign-in without email: %s", identity.to_debug_dict())
        return False

    try:
        user = get_user_by_email(db, identity.email)
        if user is None:
            create_user(
                db,
                email=identity.email,
                name=identity.name,
                picture=identity.picture,
                provider=identity.provider,
            )
            return True

        target = next_provider(user.provider, identity.provider)
        if target is not None:
            update_user_provider(db, user, target, picture=identity.picture)
        return True
    except Exception:
        logger.exception("Provider identity sync failed: %s", identity.to_debug_dict())
        db.rollback()
        return False


def authorize_sign_in(db: Session, identity: UserIdentity) -> bool:
    try:
        if identity.provider == CREDENTIALS:
            return True
        if identity.provider not in PROVIDERS:
            logger.warning("Sign-in from unknown provider: %s", identity.to_debug_dict())
            return False
        return sync_provider_identity(db, identity)
    except Exception:
        logger.exception("Sign-in authorization failed")
        return False


def sign_in(db: Session, identity: UserIdentity, *, now: int | None = None) -> SessionTransition | None:
    """Authorize then start a session. None means the sign-in was blocked."""
    if not authorize_sign_in(db, identity):
        return None
    return start_session(db, identity, now=now)
