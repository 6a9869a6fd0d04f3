# app/routes/auth.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.auth.providers import CREDENTIALS
from app.core.config import settings
from app.core.database import get_db
from app.core.security import hash_password
from app.core.session_token import SessionTokenError, decode_session_token, encode_session_token
from app.dependencies.auth import get_current_user, get_session_transition
from app.models.user import User
from app.schemas.auth import LoginIn, MessageOut, OAuthSignInIn, RefreshIn, RefreshOut, RegisterIn
from app.schemas.session import SessionOut
from app.schemas.user import UserOut
from app.services.credentials import verify_credentials
from app.services.identity_sync import sign_in
from app.services.oauth_profiles import ProviderRequestError, UnsupportedProviderError, fetch_provider_identity
from app.services.refresh_tokens import (
    RefreshTokenRotationConflict,
    revoke_all_refresh_tokens,
    revoke_refresh_token,
    rotate_refresh_token,
    validate_refresh_token,
)
from app.services.session_cookie import clear_session_cookie, read_session_cookie, set_session_cookie
from app.services.session_lifecycle import SessionTransition
from app.services.users import create_user, get_user_by_email, get_user_by_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


# -----------------------------
# Helpers
# -----------------------------
def _establish_session(response: Response, transition: SessionTransition | None) -> SessionOut:
    if transition is None or not transition.ok:
        raise HTTPException(status_code=401, detail="Sign in failed")

    set_session_cookie(response, encode_session_token(transition.payload))
    return SessionOut.from_payload(transition.payload)


# -----------------------------
# Routes
# -----------------------------
@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterIn, db: Session = Depends(get_db)):
    min_len = int(settings.PASSWORD_MIN_LENGTH)
    if len(payload.password) < min_len:
        raise HTTPException(status_code=400, detail=f"Password must be at least {min_len} characters")

    if get_user_by_email(db, payload.email):
        raise HTTPException(status_code=409, detail="Email already registered")

    try:
        user = create_user(
            db,
            email=payload.email,
            name=payload.name,
            provider=CREDENTIALS,
            password_hash=hash_password(payload.password),
        )
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email
        db.rollback()
        raise HTTPException(status_code=409, detail="Email already registered")

    return user


@router.post("/login", response_model=SessionOut)
def login(payload: LoginIn, response: Response, db: Session = Depends(get_db)):
    identity = verify_credentials(db, payload.email, payload.password)
    if identity is None:
        # Same message for unknown email and wrong password
        raise HTTPException(status_code=401, detail="Invalid email or password")

    return _establish_session(response, sign_in(db, identity))


@router.post("/oauth/{provider}", response_model=SessionOut)
def oauth_sign_in(provider: str, payload: OAuthSignInIn, response: Response, db: Session = Depends(get_db)):
    try:
        identity = fetch_provider_identity(provider, payload.access_token)
    except UnsupportedProviderError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ProviderRequestError as e:
        logger.info("Provider profile fetch failed: provider=%s reason=%s", provider, e)
        raise HTTPException(status_code=401, detail="Provider sign in failed")

    return _establish_session(response, sign_in(db, identity))


@router.get("/session", response_model=SessionOut)
def get_session(transition: SessionTransition = Depends(get_session_transition)):
    """
    Current session view. An error tag in the response means the client must
    sign in again.
    """
    return SessionOut.from_payload(transition.payload)


@router.post("/refresh", response_model=RefreshOut)
def refresh(payload: RefreshIn, db: Session = Depends(get_db)):
    """
    Rotate a refresh token for clients that don't use the session cookie:
      - validate
      - delete old, issue new
      - return new token + user
    """
    raw = (payload.refresh_token or "").strip()
    if not raw:
        raise HTTPException(status_code=400, detail="Missing refresh token")

    user_id = validate_refresh_token(db, raw)
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid or expired refresh token")

    user = get_user_by_id(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    try:
        new_refresh_token = rotate_refresh_token(db, raw, user.id)
    except RefreshTokenRotationConflict:
        raise HTTPException(status_code=401, detail="Invalid or expired refresh token")

    return {"refresh_token": new_refresh_token, "user": user}


@router.post("/logout", response_model=MessageOut)
def logout(request: Request, response: Response, db: Session = Depends(get_db)):
    """
    Logout by revoking the refresh token carried in the session (if any) and clearing the cookie.
    """
    raw = read_session_cookie(request)
    if raw:
        try:
            session = decode_session_token(raw)
        except SessionTokenError:
            session = None
        if session is not None and session.refresh_token:
            revoke_refresh_token(db, session.refresh_token)

    clear_session_cookie(response)
    return {"message": "Logged out"}


@router.post("/logout-all", response_model=MessageOut)
def logout_all(response: Response, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    revoke_all_refresh_tokens(db, current_user.id)
    clear_session_cookie(response)
    return {"message": "Logged out from all sessions"}
