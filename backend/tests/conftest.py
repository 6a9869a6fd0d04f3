import os

# Settings are read at import time; set test values before importing app.*.
os.environ.setdefault("SESSION_SECRET", "test_session_secret")
os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("DB_AUTO_CREATE", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from app.core.base import Base
from app.core import config as app_config
from app.core.database import database, get_db
from app.core.security import hash_password

# Import models so they register with SQLAlchemy metadata.
from app.models.user import User
from app.models.refresh_token import RefreshToken  # noqa: F401

TEST_PASSWORD = "test_password_123"


@pytest.fixture(scope="session")
def db_engine():
    # In-memory SQLite for fast, isolated tests. The app lifespan sees an
    # initialized database and leaves it alone.
    database.init("sqlite+pysqlite:///:memory:", poolclass=StaticPool)
    database.create_all()
    yield database.engine
    database.dispose()


@pytest.fixture()
def db_session(db_engine):
    # Important: because we use an in-memory SQLite DB with StaticPool, the DB
    # persists across tests. Reset schema per test to avoid cross-test coupling.
    Base.metadata.drop_all(bind=db_engine)
    Base.metadata.create_all(bind=db_engine)

    db = database.session()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def _reset_mutable_settings():
    """
    Tests sometimes tweak global settings (app_config.settings.*). Because that object is
    process-global, we must restore values after each test to avoid cross-test coupling.
    """
    keys = [
        "PASSWORD_MIN_LENGTH",
        "JWT_REFRESH_EXPIRES_IN",
        "REFRESH_TOKEN_STRICT_ROTATION",
        "REFRESH_TOKEN_SECRET",
        "SESSION_MAX_AGE_SECONDS",
    ]
    original = {k: getattr(app_config.settings, k) for k in keys}
    try:
        yield
    finally:
        for k, v in original.items():
            setattr(app_config.settings, k, v)


@pytest.fixture()
def app(db_session):
    import app.main as main

    fastapi_app = main.app

    def override_get_db():
        yield db_session

    fastapi_app.dependency_overrides[get_db] = override_get_db
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture()
def users(db_session):
    """
    A password user and a second password user who is an admin.
    """
    user_a = User(
        email="test@example.com",
        name="Test User",
        password_hash=hash_password(TEST_PASSWORD),
        provider="credentials",
        role="user",
    )
    admin = User(
        email="admin@example.com",
        name="Admin User",
        password_hash=hash_password(TEST_PASSWORD),
        provider="credentials",
        role="admin",
    )
    db_session.add_all([user_a, admin])
    db_session.commit()
    db_session.refresh(user_a)
    db_session.refresh(admin)
    return user_a, admin


@pytest.fixture()
def client(app, users):
    """
    Anonymous client; sign in through /auth/login to get a session cookie.
    """
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def signed_in_client(client):
    res = client.post("/auth/login", json={"email": "test@example.com", "password": TEST_PASSWORD})
    assert res.status_code == 200
    return client
