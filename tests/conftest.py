"""Shared fixtures: in-memory DB and an app client with dependency overrides."""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from apps.dashboard.main import app
from apps.dashboard.deps import get_db, get_login_rate_limiter
from apps.dashboard.database import get_test_engine, Base
from apps.dashboard.config import get_settings
from apps.dashboard.services.rate_limiter import LoginRateLimiter


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings_env(monkeypatch):
    """Set env vars and drop the cached Settings so the next get_settings() sees them."""
    def _set(**values):
        for k, v in values.items():
            monkeypatch.setenv(k.upper(), str(v))
        get_settings.cache_clear()
    return _set


@pytest.fixture
def test_db_session():
    engine = get_test_engine()
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture
def limiter():
    return LoginRateLimiter(window_seconds=15 * 60, max_attempts=10)


@pytest.fixture
def client(test_db_session, limiter):
    def _get_db():
        try:
            yield test_db_session
        finally:
            pass

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_login_rate_limiter] = lambda: limiter
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_db, None)
        app.dependency_overrides.pop(get_login_rate_limiter, None)
