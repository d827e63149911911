"""Activity logging helpers."""
from __future__ import annotations

from datetime import datetime
from sqlalchemy.orm import Session

from apps.dashboard.models.activity_log import ActivityLog


def log_activity(
    db: Session,
    *,
    action: str,
    resource: str,
    admin_id: str | None = None,
    details: dict | None = None,
    ip_address: str | None = None,
    commit: bool = True,
) -> ActivityLog:
    row = ActivityLog(
        admin_id=admin_id,
        action=action,
        resource=resource,
        details=details,
        ip_address=ip_address,
        created_at=datetime.utcnow(),
    )
    db.add(row)
    if commit:
        db.commit()
    return row
