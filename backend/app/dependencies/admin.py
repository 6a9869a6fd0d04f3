from __future__ import annotations

from fastapi import Depends, HTTPException, status

from app.dependencies.auth import get_current_user
from app.models.user import User


def require_admin_user(current_user: User = Depends(get_current_user)) -> User:
    """
    Ensure the authenticated user has admin privileges.

    The role is read from the user record, not the session payload, so a
    demotion takes effect on the next request.
    """
    if not current_user.is_admin:
        raise HTTPException(status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return current_user
