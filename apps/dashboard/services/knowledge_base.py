"""Knowledge base entries: the village facts the chatbot answers from."""
from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.orm import Session

from apps.dashboard.models.knowledge import KnowledgeCategory, KnowledgeEntry

logger = logging.getLogger(__name__)

# words shorter than this are ignored by the internal relevance search
MIN_QUERY_WORD = 3


class KnowledgeEntryError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def entry_to_dict(e: KnowledgeEntry) -> dict:
    return {
        "id": e.id,
        "village_id": e.village_id,
        "title": e.title,
        "content": e.content,
        "category": e.category,
        "category_id": e.category_id,
        "keywords": list(e.keywords or []),
        "is_active": bool(e.is_active),
        "priority": e.priority,
        "admin_id": e.admin_id,
        "created_at": e.created_at.isoformat() if e.created_at else None,
        "updated_at": e.updated_at.isoformat() if e.updated_at else None,
    }


def vector_payload(e: KnowledgeEntry) -> dict:
    return {
        "id": e.id,
        "village_id": e.village_id,
        "title": e.title,
        "content": e.content,
        "category": e.category,
        "keywords": list(e.keywords or []),
    }


def normalize_keywords(raw: Any) -> list[str]:
    if not isinstance(raw, list):
        return []
    out = []
    for k in raw:
        if isinstance(k, str) and k.strip():
            out.append(k.strip().lower())
    return out


def resolve_category(
    db: Session,
    village_id: str | None,
    *,
    category: str | None = None,
    category_id: str | None = None,
) -> tuple[str | None, str]:
    """Return (category_id, category name) for an entry.

    A category id must belong to the caller's village. A bare name reuses the
    village's category of that name or creates it; without a village the name
    is stored as-is.
    """
    if category_id:
        row = db.get(KnowledgeCategory, category_id)
        if row is None or (village_id and row.village_id != village_id):
            raise KnowledgeEntryError(400, "Kategori tidak ditemukan")
        return row.id, row.name
    name = (category or "").strip()
    if not village_id:
        return None, name
    row = db.execute(
        select(KnowledgeCategory).where(
            KnowledgeCategory.village_id == village_id, KnowledgeCategory.name == name
        )
    ).scalar_one_or_none()
    if row is None:
        row = KnowledgeCategory(village_id=village_id, name=name, is_default=False)
        db.add(row)
        db.flush()
    return row.id, row.name


def list_entries(
    db: Session,
    *,
    village_id: str | None,
    category_id: str | None = None,
    category: str | None = None,
    is_active: bool | None = None,
    search: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[KnowledgeEntry], int]:
    """village_id=None lists every village (superadmin without a filter)."""
    where = []
    if village_id is not None:
        where.append(KnowledgeEntry.village_id == village_id)
    if category_id:
        where.append(KnowledgeEntry.category_id == category_id)
    elif category:
        where.append(KnowledgeEntry.category == category)
    if is_active is not None:
        where.append(KnowledgeEntry.is_active.is_(is_active))
    term = (search or "").strip()
    if term:
        pattern = f"%{term}%"
        where.append(
            or_(
                KnowledgeEntry.title.ilike(pattern),
                KnowledgeEntry.content.ilike(pattern),
                cast(KnowledgeEntry.keywords, String).ilike(f"%{term.lower()}%"),
            )
        )
    rows = db.execute(
        select(KnowledgeEntry)
        .where(*where)
        .order_by(KnowledgeEntry.priority.desc(), KnowledgeEntry.updated_at.desc())
        .limit(limit)
        .offset(offset)
    ).scalars().all()
    total = db.execute(select(func.count()).select_from(KnowledgeEntry).where(*where)).scalar_one()
    return list(rows), int(total)


def search_entries(
    db: Session,
    *,
    query: str | None,
    village_id: str | None = None,
    category_id: str | None = None,
    category: str | None = None,
    category_ids: list[str] | None = None,
    categories: list[str] | None = None,
    limit: int = 5,
) -> list[KnowledgeEntry]:
    """Active entries matching any word of the query in title, content or keywords."""
    where = [KnowledgeEntry.is_active.is_(True)]
    if village_id:
        where.append(KnowledgeEntry.village_id == village_id)
    if category_ids:
        where.append(KnowledgeEntry.category_id.in_(category_ids))
    elif categories:
        where.append(KnowledgeEntry.category.in_(categories))
    elif category_id:
        where.append(KnowledgeEntry.category_id == category_id)
    elif category:
        where.append(KnowledgeEntry.category == category)
    words = [w for w in (query or "").lower().split() if len(w) >= MIN_QUERY_WORD]
    if words:
        clauses = []
        for w in words:
            clauses.append(KnowledgeEntry.title.ilike(f"%{w}%"))
            clauses.append(KnowledgeEntry.content.ilike(f"%{w}%"))
            clauses.append(cast(KnowledgeEntry.keywords, String).ilike(f'%"{w}"%'))
        where.append(or_(*clauses))
    rows = db.execute(
        select(KnowledgeEntry)
        .where(*where)
        .order_by(KnowledgeEntry.priority.desc(), KnowledgeEntry.updated_at.desc())
        .limit(limit)
    ).scalars().all()
    return list(rows)


def create_entry(
    db: Session,
    *,
    village_id: str | None,
    admin_id: str,
    title: str,
    content: str,
    category: str | None = None,
    category_id: str | None = None,
    keywords: Any = None,
    is_active: bool | None = None,
    priority: int | None = None,
) -> KnowledgeEntry:
    resolved_id, resolved_name = resolve_category(db, village_id, category=category, category_id=category_id)
    entry = KnowledgeEntry(
        village_id=village_id,
        title=title,
        content=content,
        category=resolved_name,
        category_id=resolved_id,
        keywords=normalize_keywords(keywords),
        is_active=True if is_active is None else is_active,
        priority=priority or 0,
        admin_id=admin_id,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    logger.info("knowledge entry created id=%s village_id=%s", entry.id, village_id)
    return entry


def update_entry(
    db: Session,
    entry: KnowledgeEntry,
    *,
    admin_id: str,
    title: str | None = None,
    content: str | None = None,
    category: str | None = None,
    category_id: str | None = None,
    keywords: Any = None,
    is_active: bool | None = None,
    priority: int | None = None,
) -> tuple[KnowledgeEntry, bool]:
    """Apply the given fields. Returns the entry and whether its embedding is now stale."""
    before = (entry.title, entry.content, entry.category, entry.category_id, list(entry.keywords or []))
    if category_id or (category and category.strip()):
        entry.category_id, entry.category = resolve_category(
            db, entry.village_id, category=category, category_id=category_id
        )
    if title is not None:
        entry.title = title
    if content is not None:
        entry.content = content
    if keywords is not None:
        entry.keywords = normalize_keywords(keywords)
    if is_active is not None:
        entry.is_active = is_active
    if priority is not None:
        entry.priority = priority
    entry.admin_id = admin_id
    after = (entry.title, entry.content, entry.category, entry.category_id, list(entry.keywords or []))
    db.commit()
    db.refresh(entry)
    return entry, before != after
