"""Admin authentication: signed tokens, password hashing, session resolution."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

import bcrypt
from jose import JWTError, jwt
from fastapi import Depends, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from apps.dashboard.config import get_settings, require_jwt_secret
from apps.dashboard.deps import get_db
from apps.dashboard.models.admin import AdminSession, ROLE_SUPERADMIN
from apps.dashboard.rbac import can_access

logger = logging.getLogger(__name__)

TOKEN_COOKIE = "token"

# bcrypt limit; pass as bytes to avoid passlib's internal 72-byte test crash
_MAX_PW_BYTES = 72


def _to_bytes(s: str) -> bytes:
    b = s.encode("utf-8")
    return b[: _MAX_PW_BYTES] if len(b) > _MAX_PW_BYTES else b


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(_to_bytes(plain), hashed.encode() if isinstance(hashed, str) else hashed)
    except Exception:
        return False


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_to_bytes(password), bcrypt.gensalt(rounds=10)).decode()


@dataclass(frozen=True)
class TokenPayload:
    admin_id: str
    username: str
    name: str
    role: str


@dataclass(frozen=True)
class AdminSessionInfo:
    id: str
    admin_id: str
    username: str
    name: str
    role: str
    village_id: str | None
    token: str

    @property
    def is_superadmin(self) -> bool:
        return self.role == ROLE_SUPERADMIN


def create_access_token(payload: TokenPayload, expires_delta: Optional[timedelta] = None) -> str:
    s = get_settings()
    now = datetime.utcnow()
    exp = expires_delta or timedelta(hours=s.jwt_expire_hours)
    to_encode = {
        "adminId": payload.admin_id,
        "username": payload.username,
        "name": payload.name,
        "role": payload.role,
        # two logins in the same second must still yield distinct session tokens
        "jti": uuid.uuid4().hex,
        "iat": now,
        "exp": now + exp,
    }
    return jwt.encode(to_encode, require_jwt_secret(s), algorithm=s.jwt_algorithm)


def verify_token(token: str | None) -> TokenPayload | None:
    """Signature and expiry check only; never consults the session store."""
    if not token:
        return None
    s = get_settings()
    secret = require_jwt_secret(s)
    try:
        claims = jwt.decode(token, secret, algorithms=[s.jwt_algorithm])
    except JWTError:
        return None
    admin_id = claims.get("adminId")
    username = claims.get("username")
    role = claims.get("role")
    if not admin_id or not username or not role:
        return None
    return TokenPayload(
        admin_id=str(admin_id),
        username=str(username),
        name=str(claims.get("name") or ""),
        role=str(role),
    )


def extract_token(request: Request) -> str | None:
    """Cookie `token` first, then `Authorization: Bearer <token>`."""
    cookie = (request.cookies.get(TOKEN_COOKIE) or "").strip()
    if cookie:
        return cookie
    header = (request.headers.get("authorization") or "").strip()
    if header.lower().startswith("bearer "):
        token = header[len("bearer "):].strip()
        return token or None
    return None


def resolve_admin_session(db: Session, token: str | None, now: datetime | None = None) -> AdminSessionInfo | None:
    """Re-verifies the token and loads the live session + admin rows. Read-only."""
    if not token or verify_token(token) is None:
        return None
    row = db.execute(
        select(AdminSession)
        .options(joinedload(AdminSession.admin))
        .where(AdminSession.token == token)
    ).scalar_one_or_none()
    if row is None or row.admin is None:
        return None
    if row.expires_at < (now or datetime.utcnow()):
        return None
    admin = row.admin
    if not admin.is_active:
        return None
    return AdminSessionInfo(
        id=row.id,
        admin_id=admin.id,
        username=admin.username,
        name=admin.name,
        role=admin.role,
        village_id=admin.village_id,
        token=row.token,
    )


def get_admin_session(request: Request, db: Session = Depends(get_db)) -> AdminSessionInfo | None:
    return resolve_admin_session(db, extract_token(request))


def require_admin_session(session: AdminSessionInfo | None = Depends(get_admin_session)) -> AdminSessionInfo:
    if session is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return session


def require_superadmin(session: AdminSessionInfo = Depends(require_admin_session)) -> AdminSessionInfo:
    if not can_access(session.role, allowed_roles=(ROLE_SUPERADMIN,)):
        raise HTTPException(status_code=403, detail="Forbidden - Superadmin only")
    return session


def resolve_village_id(request: Request, session: AdminSessionInfo) -> str | None:
    """Tenant admins are pinned to their village; superadmin may pick one via ?village_id=."""
    if session.village_id:
        return session.village_id
    if not session.is_superadmin:
        # tenant role without a village must never fall through to global scope
        raise HTTPException(status_code=403, detail="Forbidden")
    village_id = (request.query_params.get("village_id") or "").strip()
    return village_id or None
