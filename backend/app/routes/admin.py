from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.dependencies.admin import require_admin_user
from app.models.user import User
from app.schemas.auth import RevokeSessionsOut
from app.services.refresh_tokens import revoke_all_refresh_tokens
from app.services.users import get_user_by_id

logger = logging.getLogger(__name__)


router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/users/{user_id}/revoke-sessions", response_model=RevokeSessionsOut)
def revoke_user_sessions(
    user_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin_user),
):
    """
    Sign a user out everywhere. Sessions already holding a fresh access
    expiry stay valid until it passes.
    """
    user = get_user_by_id(db, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    revoked = revoke_all_refresh_tokens(db, user.id)
    logger.info("Admin revoked sessions: admin_id=%s user_id=%s count=%s", admin.id, user.id, revoked)
    return {"user_id": user.id, "revoked": revoked}
