"""Superadmin-driven provisioning of a new village and its first admin."""
from __future__ import annotations

import logging
import re

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from apps.dashboard.auth import hash_password
from apps.dashboard.clients.services import provision_channel_account
from apps.dashboard.models.admin import AdminUser, ROLE_VILLAGE_ADMIN
from apps.dashboard.models.village import Village, VillageProfile
from apps.dashboard.services.activity import log_activity
from apps.dashboard.services.knowledge import create_default_categories

logger = logging.getLogger(__name__)

_WS = re.compile(r"\s+")


class RegistrationError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def normalize_slug(value: str | None) -> str:
    return _WS.sub("-", (value or "").strip().lower())


def register_village(
    db: Session,
    *,
    username: str,
    password: str,
    name: str,
    village_name: str,
    village_slug: str,
    short_name: str | None = None,
    registered_by: str | None = None,
    ip_address: str | None = None,
) -> tuple[AdminUser, Village]:
    """Steps commit independently; a failed channel call does not undo the village."""
    if db.execute(select(AdminUser.id).where(AdminUser.username == username)).first():
        raise RegistrationError(409, "Username sudah digunakan")

    village = Village(name=village_name, slug=village_slug, is_active=True)
    db.add(village)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise RegistrationError(409, "Slug desa sudah digunakan")
    db.add(
        VillageProfile(
            village_id=village.id,
            name=village_name,
            address="",
            gmaps_url=None,
            short_name=short_name or village_slug,
            operating_hours={},
        )
    )
    create_default_categories(db, village.id)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise RegistrationError(409, "Slug desa sudah digunakan")
    db.refresh(village)

    ok, err = provision_channel_account(village.id)
    if not ok:
        logger.warning("register channel account failed (non-fatal) village_id=%s error=%s", village.id, err)

    admin = AdminUser(
        username=username,
        password_hash=hash_password(password),
        name=name,
        role=ROLE_VILLAGE_ADMIN,
        village_id=village.id,
        is_active=True,
    )
    db.add(admin)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("register username race village_id=%s username=%s", village.id, username)
        raise RegistrationError(409, "Username sudah digunakan")
    db.refresh(admin)

    log_activity(
        db,
        action="register",
        resource="village",
        admin_id=registered_by,
        details={"village_id": village.id, "slug": village.slug, "username": admin.username},
        ip_address=ip_address,
    )
    logger.info("village registered village_id=%s slug=%s admin_id=%s", village.id, village.slug, admin.id)
    return admin, village
