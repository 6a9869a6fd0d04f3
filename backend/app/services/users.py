# app/services/users.py
"""
User directory helpers.

Responsibilities:
- Lookup by email (normalized) or id
- Provisioning users for password registration and first provider sign-in
- Provider upgrades and role changes
"""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.auth.identity import normalize_email
from app.auth.providers import CREDENTIALS, PROVIDERS
from app.models.user import User

logger = logging.getLogger(__name__)

ROLES = frozenset(["user", "admin"])


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    """Look up a user by email address."""
    normalized = normalize_email(email)
    if not normalized:
        return None
    return db.query(User).filter(User.email == normalized).first()


def get_user_by_id(db: Session, user_id: int | str) -> Optional[User]:
    try:
        pk = int(user_id)
    except (TypeError, ValueError):
        return None
    return db.query(User).filter(User.id == pk).first()


def create_user(
    db: Session,
    *,
    email: str,
    name: str | None = None,
    picture: str | None = None,
    provider: str = CREDENTIALS,
    password_hash: str | None = None,
) -> User:
    """
    Create a new user record.

    Raises:
        ValueError: If email is empty or the provider is unknown
    """
    normalized_email = normalize_email(email)
    if not normalized_email:
        raise ValueError("email is required")
    if provider not in PROVIDERS:
        raise ValueError(f"unknown provider: {provider}")

    user = User(
        email=normalized_email,
        name=(name or "").strip() or None,
        image=picture or None,
        provider=provider,
        password_hash=password_hash,
        role="user",
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info("Provisioned user: id=%s provider=%s", user.id, provider)
    return user


def update_user_provider(
    db: Session,
    user: User,
    provider: str,
    *,
    picture: str | None = None,
) -> User:
    if provider not in PROVIDERS:
        raise ValueError(f"unknown provider: {provider}")

    previous = user.provider
    user.provider = provider
    if picture:
        user.image = picture
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info("Upgraded user provider: id=%s %s -> %s", user.id, previous, provider)
    return user


def set_user_role(db: Session, user: User, role: str) -> User:
    if role not in ROLES:
        raise ValueError(f"unknown role: {role}")
    user.role = role
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def promote_user_to_admin(db: Session, email: str) -> User:
    """
    Raises:
        LookupError: If no user has this email
    """
    user = get_user_by_email(db, email)
    if user is None:
        raise LookupError(f"no user with email {normalize_email(email)!r}")
    if not user.is_admin:
        set_user_role(db, user, "admin")
        logger.info("Promoted user to admin: id=%s", user.id)
    return user
