"""Knowledge gaps/conflicts reported by the AI service, deduplicated by content hash."""
from __future__ import annotations

import hashlib
import logging
import re
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from apps.dashboard.models.knowledge import KnowledgeCategory, KnowledgeConflict, KnowledgeGap

logger = logging.getLogger(__name__)

GAP_STATUSES = ("open", "resolved", "ignored")
CONFLICT_STATUSES = ("open", "resolved", "auto_resolved", "ignored")

DEFAULT_KB_CATEGORIES = (
    "Profil Desa",
    "FAQ",
    "Struktur Desa",
    "Data RT/RW",
    "Layanan Administrasi",
    "Panduan/SOP",
)

_NON_WORD = re.compile(r"[^a-z0-9\s]", re.IGNORECASE)


def _normalize(text: str) -> str:
    return _NON_WORD.sub("", (text or "").lower()).strip()


def _short_hash(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:32]


def gap_hash(query_text: str) -> str:
    return _short_hash(_normalize(query_text))


def conflict_hash(source1_title: str, source2_title: str) -> str:
    """Order-independent over the two source titles."""
    return _short_hash("|".join(_normalize(t) for t in sorted([source1_title, source2_title])))


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None


def gap_to_dict(g: KnowledgeGap) -> dict:
    return {
        "id": g.id,
        "village_id": g.village_id or None,
        "query_text": g.query_text,
        "query_hash": g.query_hash,
        "intent": g.intent,
        "confidence_level": g.confidence_level,
        "channel": g.channel,
        "hit_count": g.hit_count,
        "status": g.status,
        "resolved_by": g.resolved_by,
        "resolved_at": _iso(g.resolved_at),
        "resolution_kb_id": g.resolution_kb_id,
        "first_seen_at": _iso(g.first_seen_at),
        "last_seen_at": _iso(g.last_seen_at),
    }


def conflict_to_dict(c: KnowledgeConflict) -> dict:
    return {
        "id": c.id,
        "village_id": c.village_id or None,
        "conflict_hash": c.conflict_hash,
        "source1_title": c.source1_title,
        "source2_title": c.source2_title,
        "content_summary": c.content_summary,
        "similarity_score": c.similarity_score,
        "query_text": c.query_text,
        "channel": c.channel,
        "hit_count": c.hit_count,
        "status": c.status,
        "auto_resolved": bool(c.auto_resolved),
        "resolution_note": c.resolution_note,
        "resolved_by": c.resolved_by,
        "resolved_at": _iso(c.resolved_at),
        "first_seen_at": _iso(c.first_seen_at),
        "last_seen_at": _iso(c.last_seen_at),
    }


def category_to_dict(c: KnowledgeCategory) -> dict:
    return {
        "id": c.id,
        "village_id": c.village_id,
        "name": c.name,
        "is_default": bool(c.is_default),
        "created_at": _iso(c.created_at),
    }


def record_gap(
    db: Session,
    *,
    query_text: str,
    village_id: str | None = None,
    intent: str | None = None,
    confidence_level: str | None = None,
    channel: str | None = None,
    now: datetime | None = None,
) -> KnowledgeGap:
    """Insert a gap or bump hit_count of the existing (hash, village) row. Status is never changed here."""
    ts = now or datetime.utcnow()
    qhash = gap_hash(query_text)
    vid = village_id or ""
    for _attempt in range(2):
        row = db.execute(
            select(KnowledgeGap).where(KnowledgeGap.query_hash == qhash, KnowledgeGap.village_id == vid)
        ).scalar_one_or_none()
        if row is not None:
            row.hit_count = KnowledgeGap.hit_count + 1
            row.last_seen_at = ts
            db.commit()
            db.refresh(row)
            return row
        row = KnowledgeGap(
            village_id=vid,
            query_text=query_text[:500],
            query_hash=qhash,
            intent=intent or "UNKNOWN",
            confidence_level=confidence_level or "none",
            channel=channel or "whatsapp",
            hit_count=1,
            status="open",
            first_seen_at=ts,
            last_seen_at=ts,
        )
        db.add(row)
        try:
            db.commit()
        except IntegrityError:
            # concurrent insert of the same (hash, village); retry as an increment
            db.rollback()
            continue
        db.refresh(row)
        return row
    raise RuntimeError("knowledge gap upsert did not converge")


def record_conflict(
    db: Session,
    *,
    source1_title: str,
    source2_title: str,
    content_summary: str,
    similarity_score: float | None = None,
    query_text: str | None = None,
    channel: str | None = None,
    village_id: str | None = None,
    auto_resolved: bool = False,
    now: datetime | None = None,
) -> KnowledgeConflict:
    ts = now or datetime.utcnow()
    chash = conflict_hash(source1_title, source2_title)
    vid = village_id or ""
    summary = content_summary[:2000]
    score = float(similarity_score or 0)
    for _attempt in range(2):
        row = db.execute(
            select(KnowledgeConflict).where(
                KnowledgeConflict.conflict_hash == chash, KnowledgeConflict.village_id == vid
            )
        ).scalar_one_or_none()
        if row is not None:
            row.hit_count = KnowledgeConflict.hit_count + 1
            row.last_seen_at = ts
            row.content_summary = summary
            row.similarity_score = score
            if auto_resolved:
                row.status = "auto_resolved"
                row.auto_resolved = True
            db.commit()
            db.refresh(row)
            return row
        row = KnowledgeConflict(
            conflict_hash=chash,
            village_id=vid,
            source1_title=source1_title[:255],
            source2_title=source2_title[:255],
            content_summary=summary,
            similarity_score=score,
            query_text=query_text[:500] if query_text else None,
            channel=channel or "system",
            hit_count=1,
            status="auto_resolved" if auto_resolved else "open",
            auto_resolved=bool(auto_resolved),
            first_seen_at=ts,
            last_seen_at=ts,
        )
        db.add(row)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            continue
        db.refresh(row)
        return row
    raise RuntimeError("knowledge conflict upsert did not converge")


def _paged(db: Session, model, where: list, order_by: list, limit: int, offset: int) -> tuple[list, int]:
    rows = db.execute(
        select(model).where(*where).order_by(*order_by).limit(limit).offset(offset)
    ).scalars().all()
    total = db.execute(select(func.count()).select_from(model).where(*where)).scalar_one()
    return list(rows), int(total)


def list_gaps(
    db: Session,
    *,
    village_id: str | None,
    status: str = "open",
    limit: int = 50,
    offset: int = 0,
    sort: str = "hit_count",
) -> tuple[list[KnowledgeGap], int]:
    """village_id=None lists every village (internal callers only)."""
    where = []
    if village_id is not None:
        where.append(KnowledgeGap.village_id == village_id)
    if status != "all":
        where.append(KnowledgeGap.status == status)
    if sort == "last_seen_at":
        order = [KnowledgeGap.last_seen_at.desc()]
    else:
        order = [KnowledgeGap.hit_count.desc(), KnowledgeGap.last_seen_at.desc()]
    return _paged(db, KnowledgeGap, where, order, limit, offset)


def gap_status_counts(db: Session, village_id: str) -> dict[str, int]:
    counts = {s: 0 for s in GAP_STATUSES}
    rows = db.execute(
        select(KnowledgeGap.status, func.count())
        .where(KnowledgeGap.village_id == village_id)
        .group_by(KnowledgeGap.status)
    ).all()
    for status, n in rows:
        counts[status] = int(n)
    return counts


def list_conflicts(
    db: Session,
    *,
    village_id: str | None,
    status: str = "open",
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[KnowledgeConflict], int]:
    where = []
    if village_id is not None:
        where.append(KnowledgeConflict.village_id == village_id)
    if status != "all":
        where.append(KnowledgeConflict.status == status)
    order = [KnowledgeConflict.hit_count.desc(), KnowledgeConflict.last_seen_at.desc()]
    return _paged(db, KnowledgeConflict, where, order, limit, offset)


def update_conflict_status(
    db: Session,
    conflict: KnowledgeConflict,
    *,
    status: str,
    resolution_note: str | None = None,
    resolved_by: str | None = None,
) -> KnowledgeConflict:
    conflict.status = status
    conflict.resolution_note = resolution_note or None
    conflict.resolved_by = resolved_by or None
    conflict.resolved_at = datetime.utcnow() if status in ("resolved", "ignored") else None
    db.commit()
    db.refresh(conflict)
    return conflict


def update_gap_status(
    db: Session,
    gap: KnowledgeGap,
    *,
    status: str,
    admin_id: str,
    resolution_kb_id: str | None = None,
) -> KnowledgeGap:
    reopened = status == "open"
    gap.status = status
    gap.resolved_by = None if reopened else admin_id
    gap.resolved_at = None if reopened else datetime.utcnow()
    if resolution_kb_id:
        gap.resolution_kb_id = resolution_kb_id
    db.commit()
    db.refresh(gap)
    return gap


def create_default_categories(db: Session, village_id: str) -> list[KnowledgeCategory]:
    """Adds the default categories for a village. Caller commits."""
    rows = [KnowledgeCategory(village_id=village_id, name=name, is_default=True) for name in DEFAULT_KB_CATEGORIES]
    db.add_all(rows)
    return rows


def parse_page(raw_limit: Any, raw_offset: Any, *, default_limit: int, max_limit: int) -> tuple[int, int]:
    """Lenient limit/offset parsing; garbage falls back to defaults, limit clamped to 1..max."""
    try:
        limit = int(raw_limit) if raw_limit not in (None, "") else default_limit
    except (TypeError, ValueError):
        limit = default_limit
    try:
        offset = int(raw_offset) if raw_offset not in (None, "") else 0
    except (TypeError, ValueError):
        offset = 0
    return min(max(limit, 1), max_limit), max(offset, 0)
