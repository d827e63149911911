"""Admin authentication endpoints."""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from apps.dashboard.auth import (
    TOKEN_COOKIE,
    AdminSessionInfo,
    extract_token,
    get_admin_session,
    hash_password,
    require_admin_session,
    verify_password,
)
from apps.dashboard.config import get_settings
from apps.dashboard.deps import get_db, get_login_rate_limiter
from apps.dashboard.models.admin import AdminUser
from apps.dashboard.services.activity import log_activity
from apps.dashboard.services.admin_sessions import issue_session, revoke_other_sessions, revoke_session
from apps.dashboard.services.rate_limiter import LoginRateLimiter, get_client_ip
from apps.dashboard.services.registration import RegistrationError, normalize_slug, register_village
from apps.dashboard.utils.api_errors import GENERIC_INTERNAL_ERROR, error_response

logger = logging.getLogger(__name__)

router = APIRouter()

INVALID_CREDENTIALS = "Invalid credentials"
MIN_PASSWORD_LENGTH = 8


class PasswordChangeBody(BaseModel):
    currentPassword: str | None = None
    newPassword: str | None = None


class ProfileBody(BaseModel):
    name: str | None = None


class RegisterBody(BaseModel):
    username: str | None = None
    password: str | None = None
    name: str | None = None
    village_name: str | None = None
    village_slug: str | None = None
    short_name: str | None = None


def public_user(admin: AdminUser) -> dict:
    return {"id": admin.id, "username": admin.username, "name": admin.name, "role": admin.role}


def set_token_cookie(response: JSONResponse, token: str) -> None:
    s = get_settings()
    response.set_cookie(
        TOKEN_COOKIE,
        token,
        max_age=s.session_expire_hours * 60 * 60,
        httponly=True,
        samesite="lax",
        secure=s.is_production,
        path="/",
    )


def _authenticate(db: Session, username: str, password: str, client_ip: str) -> JSONResponse:
    admin = db.execute(select(AdminUser).where(AdminUser.username == username)).scalar_one_or_none()
    # same answer for unknown, inactive and wrong password
    if admin is None or not admin.is_active:
        return error_response(401, INVALID_CREDENTIALS)
    if not verify_password(password, admin.password_hash):
        return error_response(401, INVALID_CREDENTIALS)

    session = issue_session(db, admin)
    log_activity(
        db,
        action="login",
        resource="auth",
        admin_id=admin.id,
        details={"username": admin.username},
        ip_address=client_ip,
        commit=False,
    )
    db.commit()
    logger.info("admin login admin_id=%s role=%s ip=%s", admin.id, admin.role, client_ip)

    response = JSONResponse({"success": True, "token": session.token, "user": public_user(admin)})
    set_token_cookie(response, session.token)
    return response


@router.post("/login")
async def login(
    request: Request,
    db: Session = Depends(get_db),
    limiter: LoginRateLimiter = Depends(get_login_rate_limiter),
):
    client_ip = get_client_ip(request)
    if limiter.is_rate_limited(client_ip):
        logger.warning("login rate limited ip=%s", client_ip)
        return error_response(429, "Too many login attempts. Please try again later.")
    # attempts are counted, not failures
    limiter.record_attempt(client_ip)

    try:
        body = await request.json()
    except ValueError:
        return error_response(400, "Invalid JSON body")
    if not isinstance(body, dict):
        return error_response(400, "Invalid JSON body")

    raw_username = body.get("username")
    username = raw_username.strip() if isinstance(raw_username, str) else ""
    password = body.get("password")
    if not username or not isinstance(password, str) or not password:
        return error_response(400, "Username and password are required")

    try:
        return await run_in_threadpool(_authenticate, db, username, password, client_ip)
    except Exception:
        logger.exception("login failed ip=%s", client_ip)
        db.rollback()
        return error_response(500, GENERIC_INTERNAL_ERROR)


@router.post("/logout")
def logout(request: Request, db: Session = Depends(get_db)):
    token = extract_token(request)
    if token:
        removed = revoke_session(db, token)
        if removed is not None:
            log_activity(
                db,
                action="logout",
                resource="auth",
                admin_id=removed.admin_id,
                ip_address=get_client_ip(request),
            )
    response = JSONResponse({"success": True})
    response.delete_cookie(TOKEN_COOKIE, path="/")
    return response


@router.get("/me")
def me(session: AdminSessionInfo = Depends(require_admin_session)):
    return {
        "user": {
            "id": session.admin_id,
            "username": session.username,
            "name": session.name,
            "role": session.role,
            "village_id": session.village_id,
        }
    }


@router.patch("/password")
def change_password(
    body: PasswordChangeBody,
    request: Request,
    session: AdminSessionInfo = Depends(require_admin_session),
    db: Session = Depends(get_db),
):
    if not body.currentPassword or not body.newPassword:
        raise HTTPException(status_code=400, detail="Current password and new password are required")
    if len(body.newPassword) < MIN_PASSWORD_LENGTH:
        raise HTTPException(status_code=400, detail="Password must be at least 8 characters long")
    admin = db.get(AdminUser, session.admin_id)
    if admin is None:
        raise HTTPException(status_code=404, detail="User not found")
    if not verify_password(body.currentPassword, admin.password_hash):
        raise HTTPException(status_code=400, detail="Current password is incorrect")
    admin.password_hash = hash_password(body.newPassword)
    db.commit()
    revoked = revoke_other_sessions(db, admin.id, keep_token=session.token)
    log_activity(
        db,
        action="password_change",
        resource="auth",
        admin_id=admin.id,
        details={"revoked_sessions": revoked},
        ip_address=get_client_ip(request),
    )
    return {"message": "Password changed successfully"}


@router.patch("/profile")
def update_profile(
    body: ProfileBody,
    session: AdminSessionInfo = Depends(require_admin_session),
    db: Session = Depends(get_db),
):
    name = (body.name or "").strip()
    if not name:
        raise HTTPException(status_code=400, detail="Name is required")
    admin = db.get(AdminUser, session.admin_id)
    if admin is None:
        raise HTTPException(status_code=404, detail="User not found")
    admin.name = name
    db.commit()
    db.refresh(admin)
    return {"message": "Profile updated successfully", "user": public_user(admin)}


def require_registration_authority(
    session: AdminSessionInfo | None = Depends(get_admin_session),
) -> AdminSessionInfo:
    if session is None or not session.is_superadmin:
        raise HTTPException(status_code=403, detail="Forbidden: Only superadmin can register new villages")
    return session


@router.post("/register")
def register(
    body: RegisterBody,
    request: Request,
    session: AdminSessionInfo = Depends(require_registration_authority),
    db: Session = Depends(get_db),
):
    username = (body.username or "").strip()
    password = body.password or ""
    name = (body.name or "").strip()
    village_name = (body.village_name or "").strip()
    village_slug = normalize_slug(body.village_slug)
    short_name = (body.short_name or "").strip()

    if not username or not password or not name or not village_name or not village_slug:
        raise HTTPException(
            status_code=400,
            detail="Username, password, name, village_name, village_slug wajib diisi",
        )
    if any(ch.isspace() for ch in username):
        raise HTTPException(status_code=400, detail="Username tidak boleh mengandung spasi")

    try:
        admin, village = register_village(
            db,
            username=username,
            password=password,
            name=name,
            village_name=village_name,
            village_slug=village_slug,
            short_name=short_name or None,
            registered_by=session.admin_id,
            ip_address=get_client_ip(request),
        )
    except RegistrationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    new_session = issue_session(db, admin)
    db.commit()
    return {
        "success": True,
        "token": new_session.token,
        "user": public_user(admin),
        "village": {"id": village.id, "name": village.name, "slug": village.slug},
    }
