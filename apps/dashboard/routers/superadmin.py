"""Superadmin management of admin accounts."""
import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, StrictBool
from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from apps.dashboard.auth import AdminSessionInfo, require_superadmin
from apps.dashboard.deps import get_db
from apps.dashboard.models.admin import AdminUser

logger = logging.getLogger(__name__)

router = APIRouter()


class AdminActiveBody(BaseModel):
    is_active: StrictBool | None = None


@router.get("/admins")
def list_admins(
    _session: AdminSessionInfo = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    admins = db.execute(
        select(AdminUser).options(joinedload(AdminUser.village)).order_by(AdminUser.created_at.desc())
    ).scalars().all()
    data = []
    for a in admins:
        village = None
        if a.village is not None:
            village = {"id": a.village.id, "name": a.village.name, "slug": a.village.slug}
        data.append({
            "id": a.id,
            "name": a.name,
            "username": a.username,
            "role": a.role,
            "is_active": bool(a.is_active),
            "created_at": a.created_at.isoformat() if a.created_at else None,
            "village": village,
        })
    return {"data": data}


@router.patch("/admins/{admin_id}")
def set_admin_active(
    admin_id: str,
    body: AdminActiveBody,
    session: AdminSessionInfo = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    if not isinstance(body.is_active, bool):
        raise HTTPException(status_code=400, detail="is_active must be boolean")
    admin = db.get(AdminUser, admin_id)
    if admin is None:
        raise HTTPException(status_code=404, detail="Not found")
    admin.is_active = body.is_active
    db.commit()
    logger.info("admin active toggled admin_id=%s is_active=%s by=%s", admin_id, body.is_active, session.admin_id)
    return {"data": {"id": admin.id, "is_active": bool(admin.is_active)}}
