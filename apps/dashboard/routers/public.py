"""Unauthenticated endpoints used by the public registration form."""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from apps.dashboard.deps import get_db
from apps.dashboard.models.village import Village

router = APIRouter()


@router.get("/villages/check-slug")
def check_slug(slug: str | None = None, db: Session = Depends(get_db)):
    value = (slug or "").strip().lower()
    if not value:
        raise HTTPException(status_code=400, detail="slug wajib diisi")
    exists = db.execute(select(Village.id).where(Village.slug == value)).first()
    return {"available": exists is None}
