from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from app.auth.identity import UserIdentity, normalize_email
from app.core.security import verify_password
from app.services.users import get_user_by_email

logger = logging.getLogger(__name__)


def verify_credentials(db: Session, email: str | None, password: str | None) -> UserIdentity | None:
    """
    Check an email + password pair.

    Returns the normalized identity on a match and None otherwise. Unknown
    email, provider-only account and wrong password all produce the same None
    so callers cannot tell them apart. Storage or hash-format errors are
    logged and also produce None.
    """
    normalized = normalize_email(email)
    if not normalized or not password:
        return None

    try:
        user = get_user_by_email(db, normalized)
        if user is None or not user.password_hash:
            return None
        if not verify_password(password, user.password_hash):
            return None
    except Exception:
        logger.exception("Credential verification failed")
        return None

    return UserIdentity.from_user(user)
