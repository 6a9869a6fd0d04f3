from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.core.security import hash_password
from app.dependencies.auth import get_current_user
from app.models.user import User
from app.schemas.auth import MessageOut
from app.schemas.user import ChangePasswordIn, UserOut
from app.services.credentials import verify_credentials
from app.services.refresh_tokens import revoke_all_refresh_tokens
from app.services.session_cookie import clear_session_cookie

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserOut)
def get_me(user: User = Depends(get_current_user)) -> User:
    return user


@router.post("/me/change-password", response_model=MessageOut)
def change_password(
    payload: ChangePasswordIn,
    response: Response,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if not user.password_hash:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Account signs in through an external provider",
        )

    if verify_credentials(db, user.email, payload.current_password) is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")

    if payload.current_password == payload.new_password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="New password must be different from current password",
        )

    min_len = int(settings.PASSWORD_MIN_LENGTH)
    if len(payload.new_password) < min_len:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Password must be at least {min_len} characters",
        )

    user.password_hash = hash_password(payload.new_password)
    db.add(user)
    db.commit()

    # Every other device has to sign in again with the new password
    revoke_all_refresh_tokens(db, user.id)
    clear_session_cookie(response)
    return {"message": "Password updated"}
