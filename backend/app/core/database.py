from __future__ import annotations

import logging
from typing import Any, Generator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from app.core.base import Base

logger = logging.getLogger(__name__)


class DatabaseNotInitializedError(RuntimeError):
    """Raised when a session is requested before Database.init() ran."""


class Database:
    """
    Process-wide handle on the engine + session factory.

    Owned by the application lifespan: init() on startup, dispose() on shutdown.
    """

    def __init__(self) -> None:
        self._engine: Engine | None = None
        self._sessionmaker: sessionmaker | None = None

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise DatabaseNotInitializedError("Database.init() has not been called")
        return self._engine

    def init(self, url: str, **engine_kwargs: Any) -> None:
        if self._engine is not None:
            return
        if not url:
            raise DatabaseNotInitializedError("DATABASE_URL must be set")

        if url.startswith("sqlite"):
            engine_kwargs.setdefault("connect_args", {"check_same_thread": False})
        else:
            engine_kwargs.setdefault("pool_pre_ping", True)  # checks stale connections

        self._engine = create_engine(url, **engine_kwargs)
        self._sessionmaker = sessionmaker(autocommit=False, autoflush=False, bind=self._engine)
        logger.info("Database engine initialized: backend=%s", self._engine.url.get_backend_name())

    def session(self) -> Session:
        if self._sessionmaker is None:
            raise DatabaseNotInitializedError("Database.init() has not been called")
        return self._sessionmaker()

    def create_all(self) -> None:
        # Import models so they register with SQLAlchemy metadata.
        from app.models.refresh_token import RefreshToken  # noqa: F401
        from app.models.user import User  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def ping(self) -> None:
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    def dispose(self) -> None:
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        self._sessionmaker = None
        logger.info("Database engine disposed")


database = Database()


def get_db() -> Generator[Session, None, None]:
    db = database.session()
    try:
        yield db
    finally:
        db.close()
