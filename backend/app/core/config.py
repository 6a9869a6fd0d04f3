# app/core/config.py
import os

from dotenv import load_dotenv


def str_to_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def parse_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [v.strip() for v in value.split(",") if v.strip()]


def merge_unique(items: list[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for v in items:
        if v in seen:
            continue
        seen.add(v)
        out.append(v)
    return out


class Settings:
    def __init__(self) -> None:
        # Only load .env for local/dev. In prod, env vars come from the service config.
        self.ENV = os.getenv("ENV", "dev").strip().lower()  # dev | test | prod
        if self.ENV != "prod":
            load_dotenv()

        # ----------------------------
        # Database
        # ----------------------------
        default_db = "" if self.ENV == "prod" else "sqlite:///./community.db"
        self.DATABASE_URL = os.getenv("DATABASE_URL", default_db).strip()
        self.DB_AUTO_CREATE = str_to_bool(os.getenv("DB_AUTO_CREATE"), default=self.ENV != "prod")

        # ----------------------------
        # Password policy
        # ----------------------------
        self.PASSWORD_MIN_LENGTH = int(os.getenv("PASSWORD_MIN_LENGTH", "8"))

        # ----------------------------
        # CORS
        # ----------------------------
        dev_defaults = [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]

        cors_from_env = parse_csv(os.getenv("CORS_ORIGINS"))
        if self.ENV == "prod":
            self.CORS_ORIGINS = merge_unique(cors_from_env)
        else:
            self.CORS_ORIGINS = merge_unique(cors_from_env + dev_defaults)

        # ----------------------------
        # Session token (signed cookie)
        # ----------------------------
        self.SESSION_SECRET = os.getenv("SESSION_SECRET", "")
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.SESSION_MAX_AGE_SECONDS = int(os.getenv("SESSION_MAX_AGE_SECONDS", str(7 * 24 * 60 * 60)))
        self.SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "session_token")
        self.SESSION_COOKIE_SAMESITE = os.getenv("SESSION_COOKIE_SAMESITE", "lax")
        self.SESSION_COOKIE_PATH = os.getenv("SESSION_COOKIE_PATH", "/")

        # ----------------------------
        # Refresh tokens
        # ----------------------------
        # Keyed hash for stored refresh tokens; falls back to the session secret.
        self.REFRESH_TOKEN_SECRET = os.getenv("REFRESH_TOKEN_SECRET", "")
        self.JWT_REFRESH_EXPIRES_IN = os.getenv("JWT_REFRESH_EXPIRES_IN", "7d")
        self.REFRESH_TOKEN_STRICT_ROTATION = str_to_bool(
            os.getenv("REFRESH_TOKEN_STRICT_ROTATION"), default=False
        )

        # ----------------------------
        # External identity providers
        # ----------------------------
        self.OAUTH_HTTP_TIMEOUT = float(os.getenv("OAUTH_HTTP_TIMEOUT", "10"))

        # Final: fail fast in prod
        self._validate_prod()

    def _validate_prod(self) -> None:
        if self.ENV != "prod":
            return

        missing: list[str] = []

        if not self.SESSION_SECRET:
            missing.append("SESSION_SECRET")
        if not self.REFRESH_TOKEN_SECRET:
            missing.append("REFRESH_TOKEN_SECRET")
        if not self.DATABASE_URL:
            missing.append("DATABASE_URL")

        if not self.CORS_ORIGINS:
            missing.append("CORS_ORIGINS")

        cors_joined = ",".join(self.CORS_ORIGINS)
        if "localhost" in cors_joined or "127.0.0.1" in cors_joined:
            raise RuntimeError("CORS_ORIGINS contains localhost/dev origins in prod")

        if self.DATABASE_URL.startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must not point at SQLite in prod")

        if missing:
            raise RuntimeError(f"Missing required prod env vars: {', '.join(missing)}")

    @property
    def is_prod(self) -> bool:
        return self.ENV == "prod"

    @property
    def database_url(self) -> str:
        url = self.DATABASE_URL
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql+psycopg2://", 1)
        return url

    @property
    def refresh_token_secret(self) -> str:
        return self.REFRESH_TOKEN_SECRET or self.SESSION_SECRET


settings = Settings()


def require_session_secret() -> None:
    if not settings.SESSION_SECRET:
        raise RuntimeError("SESSION_SECRET must be set")
