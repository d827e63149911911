"""Audit trail of admin actions."""
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, Index, JSON

from apps.dashboard.database import Base, new_id


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id = Column(String(36), primary_key=True, default=new_id)
    admin_id = Column(String(36), ForeignKey("admin_users.id", ondelete="SET NULL"), nullable=True, index=True)
    action = Column(String(64), nullable=False)  # login|logout|register|password_change
    resource = Column(String(64), nullable=False)
    details = Column(JSON, nullable=True)
    ip_address = Column(String(128), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_activity_logs_action_time", "action", "created_at"),
    )
