"""Tenant-scoped knowledge endpoints for village admins: entries, categories and gaps."""
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from pydantic import BaseModel, StrictBool
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from apps.dashboard.auth import AdminSessionInfo, require_admin_session, resolve_village_id
from apps.dashboard.clients import services as service_client
from apps.dashboard.deps import get_db
from apps.dashboard.models.knowledge import KnowledgeCategory, KnowledgeEntry, KnowledgeGap
from apps.dashboard.services.knowledge import (
    GAP_STATUSES,
    category_to_dict,
    gap_status_counts,
    gap_to_dict,
    list_gaps,
    parse_page,
    update_gap_status,
)
from apps.dashboard.services.knowledge_base import (
    KnowledgeEntryError,
    create_entry,
    entry_to_dict,
    list_entries,
    update_entry,
    vector_payload,
)

logger = logging.getLogger(__name__)

router = APIRouter()


class GapStatusBody(BaseModel):
    id: str | None = None
    status: str | None = None
    resolution_kb_id: str | None = None


class CategoryBody(BaseModel):
    name: str | None = None


def _gap_scope(session: AdminSessionInfo) -> str:
    # superadmin sees only gaps not attributed to any village
    return session.village_id or ""


@router.get("/knowledge/gaps")
def get_gaps(
    request: Request,
    session: AdminSessionInfo = Depends(require_admin_session),
    db: Session = Depends(get_db),
):
    village_id = _gap_scope(session)
    q = request.query_params
    status = q.get("status") or "open"
    sort = "last_seen_at" if q.get("sort") == "last_seen_at" else "hit_count"
    limit, offset = parse_page(q.get("limit"), q.get("offset"), default_limit=50, max_limit=200)
    rows, total = list_gaps(db, village_id=village_id, status=status, limit=limit, offset=offset, sort=sort)
    return {
        "data": [gap_to_dict(g) for g in rows],
        "total": total,
        "limit": limit,
        "offset": offset,
        "status_counts": gap_status_counts(db, village_id),
    }


@router.patch("/knowledge/gaps")
def patch_gap(
    body: GapStatusBody,
    session: AdminSessionInfo = Depends(require_admin_session),
    db: Session = Depends(get_db),
):
    if not body.id:
        raise HTTPException(status_code=400, detail="id is required")
    if body.status not in GAP_STATUSES:
        raise HTTPException(status_code=400, detail="status must be open, resolved, or ignored")
    gap = db.get(KnowledgeGap, body.id)
    if gap is None or gap.village_id != _gap_scope(session):
        raise HTTPException(status_code=404, detail="Not found")
    gap = update_gap_status(
        db,
        gap,
        status=body.status,
        admin_id=session.admin_id,
        resolution_kb_id=body.resolution_kb_id,
    )
    return {"data": gap_to_dict(gap)}


@router.delete("/knowledge-gaps/{gap_id}")
def delete_gap(
    gap_id: str,
    session: AdminSessionInfo = Depends(require_admin_session),
    db: Session = Depends(get_db),
):
    gap = db.get(KnowledgeGap, gap_id)
    if gap is None:
        raise HTTPException(status_code=404, detail="Not found")
    if session.village_id and gap.village_id != session.village_id:
        raise HTTPException(status_code=403, detail="Forbidden")
    db.delete(gap)
    db.commit()
    return {"success": True}


@router.get("/knowledge/categories")
def get_categories(
    session: AdminSessionInfo = Depends(require_admin_session),
    db: Session = Depends(get_db),
):
    if not session.village_id:
        return {"data": []}
    rows = db.execute(
        select(KnowledgeCategory)
        .where(KnowledgeCategory.village_id == session.village_id)
        .order_by(KnowledgeCategory.created_at.asc())
    ).scalars().all()
    return {"data": [category_to_dict(c) for c in rows]}


@router.post("/knowledge/categories")
def create_category(
    body: CategoryBody,
    session: AdminSessionInfo = Depends(require_admin_session),
    db: Session = Depends(get_db),
):
    if not session.village_id:
        raise HTTPException(status_code=404, detail="Village not found")
    name = (body.name or "").strip()
    if not name:
        raise HTTPException(status_code=400, detail="Name is required")
    category = KnowledgeCategory(village_id=session.village_id, name=name, is_default=False)
    db.add(category)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Category already exists")
    db.refresh(category)
    return {"data": category_to_dict(category)}


class KnowledgeEntryBody(BaseModel):
    title: str | None = None
    content: str | None = None
    category: str | None = None
    category_id: str | None = None
    keywords: list[str] | None = None
    is_active: StrictBool | None = None
    priority: int | None = None


def _sync_vector(entry_id: str, payload: dict | None) -> None:
    """Re-embed (payload given) or drop the entry's vector; failures only log."""
    if payload is not None:
        ok, err = service_client.add_knowledge_vector(payload)
    else:
        ok, err = service_client.delete_knowledge_vector(entry_id)
    if not ok:
        logger.warning("knowledge vector sync failed id=%s error=%s", entry_id, err)


def _get_entry(db: Session, entry_id: str, session: AdminSessionInfo) -> KnowledgeEntry:
    entry = db.get(KnowledgeEntry, entry_id)
    # foreign entries look missing to tenant admins
    if entry is None or (session.village_id and entry.village_id != session.village_id):
        raise HTTPException(status_code=404, detail="Knowledge not found")
    return entry


@router.get("/knowledge")
def get_entries(
    request: Request,
    session: AdminSessionInfo = Depends(require_admin_session),
    db: Session = Depends(get_db),
):
    q = request.query_params
    limit, offset = parse_page(q.get("limit"), q.get("offset"), default_limit=50, max_limit=200)
    raw_active = q.get("is_active")
    rows, total = list_entries(
        db,
        village_id=resolve_village_id(request, session),
        category_id=q.get("category_id") or None,
        category=q.get("category") or None,
        is_active=None if raw_active is None else raw_active == "true",
        search=q.get("search"),
        limit=limit,
        offset=offset,
    )
    return {
        "data": [entry_to_dict(e) for e in rows],
        "pagination": {"total": total, "limit": limit, "offset": offset},
    }


@router.post("/knowledge", status_code=201)
def create_knowledge(
    body: KnowledgeEntryBody,
    request: Request,
    background: BackgroundTasks,
    session: AdminSessionInfo = Depends(require_admin_session),
    db: Session = Depends(get_db),
):
    title = (body.title or "").strip()
    content = (body.content or "").strip()
    if not title or not content or not ((body.category or "").strip() or body.category_id):
        raise HTTPException(status_code=400, detail="Title, content, dan category wajib diisi")
    try:
        entry = create_entry(
            db,
            village_id=resolve_village_id(request, session),
            admin_id=session.admin_id,
            title=title,
            content=content,
            category=body.category,
            category_id=body.category_id,
            keywords=body.keywords,
            is_active=body.is_active,
            priority=body.priority,
        )
    except KnowledgeEntryError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    background.add_task(_sync_vector, entry.id, vector_payload(entry))
    return {"status": "success", "data": entry_to_dict(entry)}


@router.get("/knowledge/{entry_id}")
def get_knowledge(
    entry_id: str,
    session: AdminSessionInfo = Depends(require_admin_session),
    db: Session = Depends(get_db),
):
    return {"data": entry_to_dict(_get_entry(db, entry_id, session))}


@router.patch("/knowledge/{entry_id}")
def update_knowledge(
    entry_id: str,
    body: KnowledgeEntryBody,
    background: BackgroundTasks,
    session: AdminSessionInfo = Depends(require_admin_session),
    db: Session = Depends(get_db),
):
    entry = _get_entry(db, entry_id, session)
    for field in ("title", "content"):
        value = getattr(body, field)
        if value is not None and not value.strip():
            raise HTTPException(status_code=400, detail=f"{field} tidak boleh kosong")
    try:
        entry, stale = update_entry(
            db,
            entry,
            admin_id=session.admin_id,
            title=body.title.strip() if body.title is not None else None,
            content=body.content.strip() if body.content is not None else None,
            category=body.category,
            category_id=body.category_id,
            keywords=body.keywords,
            is_active=body.is_active,
            priority=body.priority,
        )
    except KnowledgeEntryError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if stale:
        background.add_task(_sync_vector, entry.id, None)
    return {"status": "success", "data": entry_to_dict(entry)}


@router.delete("/knowledge/{entry_id}")
def delete_knowledge(
    entry_id: str,
    background: BackgroundTasks,
    session: AdminSessionInfo = Depends(require_admin_session),
    db: Session = Depends(get_db),
):
    entry = _get_entry(db, entry_id, session)
    db.delete(entry)
    db.commit()
    background.add_task(_sync_vector, entry_id, None)
    return {"status": "success", "message": "Knowledge deleted successfully"}
