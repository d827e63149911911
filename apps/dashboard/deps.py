"""FastAPI dependencies."""
from typing import Generator

from fastapi import Request
from sqlalchemy.orm import Session

from apps.dashboard.database import get_session_factory
from apps.dashboard.services.rate_limiter import LoginRateLimiter


def get_db() -> Generator[Session, None, None]:
    factory = get_session_factory()
    sess = factory()
    try:
        yield sess
    finally:
        sess.close()


def get_login_rate_limiter(request: Request) -> LoginRateLimiter:
    return request.app.state.login_rate_limiter
