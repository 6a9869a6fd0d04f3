import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings, require_session_secret
from app.core.database import database
from app.routes.admin import router as admin_router
from app.routes.auth import router as auth_router
from app.routes.users import router as users_router
from app.services.session_cookie import apply_stashed_session_cookie

logger = logging.getLogger(__name__)

require_session_secret()


@asynccontextmanager
async def lifespan(app: FastAPI):  # noqa: ARG001
    # Tests (and embedding apps) may hand us an already-initialized database.
    owns_database = not database.is_initialized
    if owns_database:
        database.init(settings.database_url)
    if settings.DB_AUTO_CREATE:
        database.create_all()
    logger.info(
        "Startup config: ENV=%s strict_rotation=%s refresh_lifetime=%s",
        settings.ENV,
        settings.REFRESH_TOKEN_STRICT_ROTATION,
        settings.JWT_REFRESH_EXPIRES_IN,
    )
    try:
        yield
    finally:
        if owns_database:
            database.dispose()


app = FastAPI(title="Community Platform Auth", lifespan=lifespan)

_ERROR_CODE_BY_STATUS: dict[int, str] = {
    400: "VALIDATION_ERROR",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    500: "INTERNAL_ERROR",
}


def _error_code(status_code: int) -> str:
    return _ERROR_CODE_BY_STATUS.get(int(status_code), "HTTP_ERROR")


@app.exception_handler(HTTPException)
def http_exception_handler(request: Request, exc: HTTPException):
    detail = exc.detail
    message: str
    details: dict | None = None

    if isinstance(detail, str):
        message = detail
    elif isinstance(detail, dict):
        msg = detail.get("message")
        message = msg if isinstance(msg, str) and msg else "Request failed"
        det = detail.get("details")
        details = det if isinstance(det, dict) else None
    else:
        message = str(detail) if detail is not None else "Request failed"

    payload: dict = {"error": _error_code(exc.status_code), "message": message}
    if details:
        payload["details"] = details
    response = JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))
    # A rotated session cookie must reach the client even when the endpoint failed
    apply_stashed_session_cookie(request, response)
    return response


@app.exception_handler(RequestValidationError)
def validation_exception_handler(request: Request, exc: RequestValidationError):
    response = JSONResponse(
        status_code=422,
        content={
            "error": "VALIDATION_ERROR",
            "message": "Invalid request payload",
            "details": {"errors": exc.errors()},
        },
    )
    apply_stashed_session_cookie(request, response)
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(users_router)
app.include_router(admin_router)


@app.get("/health")
def health_check():
    return {"status": "ok"}
