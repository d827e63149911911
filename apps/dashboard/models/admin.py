"""Admin accounts and their login sessions."""
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship

from apps.dashboard.database import Base, new_id

ROLE_VILLAGE_ADMIN = "village_admin"
ROLE_ADMIN = "admin"
ROLE_SUPERADMIN = "superadmin"
ADMIN_ROLES = (ROLE_VILLAGE_ADMIN, ROLE_ADMIN, ROLE_SUPERADMIN)


class AdminUser(Base):
    __tablename__ = "admin_users"

    id = Column(String(36), primary_key=True, default=new_id)
    username = Column(String(128), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False, default=ROLE_VILLAGE_ADMIN)
    # null only for superadmin (global scope)
    village_id = Column(String(36), ForeignKey("villages.id", ondelete="SET NULL"), nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    village = relationship("Village")
    sessions = relationship("AdminSession", back_populates="admin", cascade="all, delete-orphan")


class AdminSession(Base):
    __tablename__ = "admin_sessions"

    id = Column(String(36), primary_key=True, default=new_id)
    admin_id = Column(String(36), ForeignKey("admin_users.id", ondelete="CASCADE"), nullable=False, index=True)
    token = Column(String(1024), unique=True, nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    admin = relationship("AdminUser", back_populates="sessions")
