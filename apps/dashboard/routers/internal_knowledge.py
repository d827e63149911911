"""Internal API for the AI service: knowledge lookup plus gap and conflict reports."""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from apps.dashboard.deps import get_db
from apps.dashboard.internal_auth import require_internal_api_key
from apps.dashboard.models.knowledge import KnowledgeConflict
from apps.dashboard.services.knowledge_base import search_entries, vector_payload
from apps.dashboard.services.knowledge import (
    CONFLICT_STATUSES,
    conflict_to_dict,
    gap_to_dict,
    list_conflicts,
    list_gaps,
    parse_page,
    record_conflict,
    record_gap,
    update_conflict_status,
)

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_internal_api_key)])


class GapReport(BaseModel):
    query_text: str | None = None
    intent: str | None = None
    confidence_level: str | None = None
    channel: str | None = None
    village_id: str | None = None


class ConflictReport(BaseModel):
    source1_title: str | None = None
    source2_title: str | None = None
    content_summary: str | None = None
    similarity_score: float | None = None
    query_text: str | None = None
    channel: str | None = None
    village_id: str | None = None
    auto_resolved: bool = False


class ConflictStatusBody(BaseModel):
    id: str | None = None
    status: str | None = None
    resolution_note: str | None = None
    resolved_by: str | None = None


def _list_params(request: Request) -> tuple[str | None, str, int, int]:
    q = request.query_params
    village_id = q.get("village_id") or None
    status = q.get("status") or "open"
    limit, offset = parse_page(q.get("limit"), q.get("offset"), default_limit=50, max_limit=100)
    return village_id, status, limit, offset


@router.post("/knowledge/gaps")
def report_gap(body: GapReport, db: Session = Depends(get_db)):
    if not body.query_text or len(body.query_text.strip()) < 3:
        raise HTTPException(status_code=400, detail="query_text is required (min 3 chars)")
    gap = record_gap(
        db,
        query_text=body.query_text,
        village_id=body.village_id,
        intent=body.intent,
        confidence_level=body.confidence_level,
        channel=body.channel,
    )
    return {"id": gap.id, "hit_count": gap.hit_count}


@router.get("/knowledge/gaps")
def internal_list_gaps(request: Request, db: Session = Depends(get_db)):
    village_id, status, limit, offset = _list_params(request)
    rows, total = list_gaps(db, village_id=village_id, status=status, limit=limit, offset=offset)
    return {"data": [gap_to_dict(g) for g in rows], "total": total, "limit": limit, "offset": offset}


@router.post("/knowledge/conflicts")
def report_conflict(body: ConflictReport, db: Session = Depends(get_db)):
    if not body.source1_title or not body.source2_title or not body.content_summary:
        raise HTTPException(
            status_code=400,
            detail="source1_title, source2_title, and content_summary are required",
        )
    conflict = record_conflict(
        db,
        source1_title=body.source1_title,
        source2_title=body.source2_title,
        content_summary=body.content_summary,
        similarity_score=body.similarity_score,
        query_text=body.query_text,
        channel=body.channel,
        village_id=body.village_id,
        auto_resolved=body.auto_resolved,
    )
    return {"id": conflict.id, "hit_count": conflict.hit_count, "status": conflict.status}


@router.get("/knowledge/conflicts")
def internal_list_conflicts(request: Request, db: Session = Depends(get_db)):
    village_id, status, limit, offset = _list_params(request)
    rows, total = list_conflicts(db, village_id=village_id, status=status, limit=limit, offset=offset)
    return {"data": [conflict_to_dict(c) for c in rows], "total": total, "limit": limit, "offset": offset}


@router.patch("/knowledge/conflicts")
def patch_conflict(body: ConflictStatusBody, db: Session = Depends(get_db)):
    if not body.id or not body.status:
        raise HTTPException(status_code=400, detail="id and status are required")
    if body.status not in CONFLICT_STATUSES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid status. Must be one of: {', '.join(CONFLICT_STATUSES)}",
        )
    conflict = db.get(KnowledgeConflict, body.id)
    if conflict is None:
        raise HTTPException(status_code=404, detail="Not found")
    conflict = update_conflict_status(
        db,
        conflict,
        status=body.status,
        resolution_note=body.resolution_note,
        resolved_by=body.resolved_by,
    )
    return conflict_to_dict(conflict)


class KnowledgeSearchBody(BaseModel):
    query: str | None = None
    categories: list[str] | None = None
    category_ids: list[str] | None = None
    limit: int = 5
    village_id: str | None = None


@router.get("/knowledge")
def query_knowledge(request: Request, db: Session = Depends(get_db)):
    q = request.query_params
    limit, _ = parse_page(q.get("limit"), None, default_limit=5, max_limit=50)
    rows = search_entries(
        db,
        query=q.get("query"),
        village_id=q.get("village_id") or None,
        category_id=q.get("category_id") or None,
        category=q.get("category") or None,
        limit=limit,
    )
    return {"data": [vector_payload(e) for e in rows], "total": len(rows)}


@router.post("/knowledge")
def search_knowledge(body: KnowledgeSearchBody, db: Session = Depends(get_db)):
    if not body.query or not body.query.strip():
        raise HTTPException(status_code=400, detail="Query is required")
    limit, _ = parse_page(body.limit, None, default_limit=5, max_limit=50)
    rows = search_entries(
        db,
        query=body.query,
        village_id=body.village_id,
        category_ids=body.category_ids,
        categories=body.categories,
        limit=limit,
    )
    context = "\n\n---\n\n".join(f"[{e.category.upper()}] {e.title}\n{e.content}" for e in rows)
    return {"data": [vector_payload(e) for e in rows], "total": len(rows), "context": context}
