"""Bootstrap of the global superadmin account."""
from __future__ import annotations

import logging
import secrets

from sqlalchemy import select
from sqlalchemy.orm import Session

from apps.dashboard.auth import hash_password
from apps.dashboard.config import get_settings
from apps.dashboard.models.admin import AdminUser, ROLE_SUPERADMIN

logger = logging.getLogger(__name__)


def ensure_superadmin(db: Session) -> tuple[AdminUser, str | None]:
    """Create the configured superadmin if missing.

    Returns the account and, only when a password had to be generated, the
    plain password so the operator can record it once.
    """
    s = get_settings()
    username = s.superadmin_username.strip()
    existing = db.execute(select(AdminUser).where(AdminUser.username == username)).scalar_one_or_none()
    if existing:
        return existing, None
    password = s.superadmin_password.strip()
    generated = None
    if not password:
        generated = password = secrets.token_urlsafe(12)
    admin = AdminUser(
        username=username,
        name=s.superadmin_name.strip() or username,
        password_hash=hash_password(password),
        role=ROLE_SUPERADMIN,
        village_id=None,
        is_active=True,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    logger.info("superadmin created username=%s", username)
    return admin, generated
