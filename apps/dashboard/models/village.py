"""Villages (tenants) and their public profile."""
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, JSON, Text
from sqlalchemy.orm import relationship

from apps.dashboard.database import Base, new_id


class Village(Base):
    __tablename__ = "villages"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    profile = relationship("VillageProfile", back_populates="village", uselist=False)


class VillageProfile(Base):
    __tablename__ = "village_profiles"

    id = Column(String(36), primary_key=True, default=new_id)
    village_id = Column(String(36), ForeignKey("villages.id", ondelete="CASCADE"), unique=True, nullable=False)
    name = Column(String(255), nullable=False)
    address = Column(Text, nullable=False, default="")
    gmaps_url = Column(String(1024), nullable=True)
    short_name = Column(String(64), nullable=True)
    operating_hours = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    village = relationship("Village", back_populates="profile")
