# app/dependencies/auth.py
from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.session_token import SessionTokenError, decode_session_token, encode_session_token
from app.models.user import User
from app.schemas.session import SessionPayload
from app.services.session_cookie import read_session_cookie, set_session_cookie, stash_session_cookie
from app.services.session_lifecycle import RefreshDiagnostic, SessionTransition, advance_session
from app.services.users import get_user_by_id

logger = logging.getLogger(__name__)


def _unauthorized(detail: str = "Not signed in") -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def get_session_transition(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> SessionTransition:
    """
    Validates:
      - session cookie present
      - signature + exp
    Then advances the session (refresh/rotate when the access expiry passed)
    and writes the resulting payload back to the cookie, error tag included,
    unless another request already won the rotation race.
    """
    raw = read_session_cookie(request)
    if not raw:
        raise _unauthorized("Missing session cookie")

    try:
        payload = decode_session_token(raw)
    except SessionTokenError:
        raise _unauthorized("Invalid or expired session")

    transition = advance_session(db, payload)
    if transition.diagnostic is not None:
        logger.info(
            "Session refresh failed: user_id=%s error=%s diagnostic=%s",
            payload.user_id,
            transition.payload.error.value if transition.payload.error else None,
            transition.diagnostic.value,
        )

    if transition.diagnostic is RefreshDiagnostic.ROTATION_CONFLICT:
        # The winning request has already set a good cookie
        return transition

    if transition.payload is not payload:
        session_token = encode_session_token(transition.payload)
        set_session_cookie(response, session_token)
        stash_session_cookie(request, session_token)
    return transition


def get_session_payload(transition: SessionTransition = Depends(get_session_transition)) -> SessionPayload:
    # Any error tag means "not signed in"; no partial trust.
    if not transition.ok:
        raise _unauthorized("Session expired")
    return transition.payload


def get_current_user(
    payload: SessionPayload = Depends(get_session_payload),
    db: Session = Depends(get_db),
) -> User:
    user = get_user_by_id(db, payload.user_id) if payload.user_id else None
    if not user:
        raise _unauthorized("User not found")
    return user
