"""Issuing and revoking admin sessions."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from apps.dashboard.auth import TokenPayload, create_access_token
from apps.dashboard.config import get_settings
from apps.dashboard.database import get_session_factory
from apps.dashboard.models.admin import AdminSession, AdminUser

logger = logging.getLogger(__name__)


def token_payload_for(admin: AdminUser) -> TokenPayload:
    return TokenPayload(admin_id=admin.id, username=admin.username, name=admin.name, role=admin.role)


def issue_session(db: Session, admin: AdminUser, now: datetime | None = None) -> AdminSession:
    """Sign a token for the admin and persist it with a fixed expiry. Caller commits."""
    s = get_settings()
    issued_at = now or datetime.utcnow()
    token = create_access_token(token_payload_for(admin))
    session = AdminSession(
        admin_id=admin.id,
        token=token,
        created_at=issued_at,
        expires_at=issued_at + timedelta(hours=s.session_expire_hours),
    )
    db.add(session)
    return session


def revoke_session(db: Session, token: str) -> AdminSession | None:
    """Delete the session row for the token. Returns the removed row, if any."""
    row = db.execute(select(AdminSession).where(AdminSession.token == token)).scalar_one_or_none()
    if row is None:
        return None
    db.delete(row)
    db.commit()
    return row


def revoke_other_sessions(db: Session, admin_id: str, keep_token: str | None = None) -> int:
    stmt = delete(AdminSession).where(AdminSession.admin_id == admin_id)
    if keep_token:
        stmt = stmt.where(AdminSession.token != keep_token)
    result = db.execute(stmt)
    db.commit()
    return int(result.rowcount or 0)


def purge_expired_sessions(db: Session, now: datetime | None = None) -> int:
    result = db.execute(delete(AdminSession).where(AdminSession.expires_at < (now or datetime.utcnow())))
    db.commit()
    removed = int(result.rowcount or 0)
    if removed:
        logger.info("admin_sessions purged expired=%s", removed)
    return removed


def purge_expired_sessions_once() -> int:
    factory = get_session_factory()
    with factory() as db:
        return purge_expired_sessions(db)
