from __future__ import annotations

from fastapi import Request, Response

from app.core.config import settings


# -----------------------------
# Cookie helpers
# -----------------------------
def cookie_name() -> str:
    return str(getattr(settings, "SESSION_COOKIE_NAME", "session_token")).strip() or "session_token"


def cookie_path() -> str:
    return str(getattr(settings, "SESSION_COOKIE_PATH", "/")).strip() or "/"


def cookie_secure() -> bool:
    # Prod => HTTPS => Secure cookies. Dev http://localhost => must be False.
    return settings.is_prod


def cookie_samesite() -> str:
    """
    "lax" for same-site dev
    "none" ONLY if you truly need cross-site cookies (requires HTTPS + Secure=True)
    """
    v = str(getattr(settings, "SESSION_COOKIE_SAMESITE", "lax")).lower().strip()
    if v not in {"lax", "strict", "none"}:
        return "lax"
    return v


def set_session_cookie(resp: Response, session_token: str) -> None:
    resp.set_cookie(
        key=cookie_name(),
        value=session_token,
        httponly=True,
        secure=cookie_secure(),
        samesite=cookie_samesite(),
        max_age=int(settings.SESSION_MAX_AGE_SECONDS),
        path=cookie_path(),
    )


def clear_session_cookie(resp: Response) -> None:
    resp.delete_cookie(
        key=cookie_name(),
        path=cookie_path(),
    )


def read_session_cookie(req: Request) -> str | None:
    val = req.cookies.get(cookie_name())
    if not val:
        return None
    val = val.strip()
    return val or None


# -----------------------------
# Cookies set by dependencies
# -----------------------------
def stash_session_cookie(req: Request, session_token: str) -> None:
    """
    Remember a cookie value written by a dependency. FastAPI drops the injected
    Response when the endpoint raises, so error handlers re-apply it from here.
    """
    req.state.session_cookie = session_token


def apply_stashed_session_cookie(req: Request, resp: Response) -> None:
    session_token = getattr(req.state, "session_cookie", None)
    if session_token:
        set_session_cookie(resp, session_token)
