"""Knowledge base entries, their categories, and the gap/conflict analytics reported by the AI service."""
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Boolean, Integer, Float, Text, JSON, ForeignKey, UniqueConstraint, Index

from apps.dashboard.database import Base, new_id


class KnowledgeCategory(Base):
    __tablename__ = "knowledge_categories"

    id = Column(String(36), primary_key=True, default=new_id)
    village_id = Column(String(36), ForeignKey("villages.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("village_id", "name", name="uq_knowledge_categories_village_name"),
    )


class KnowledgeGap(Base):
    __tablename__ = "knowledge_gaps"

    id = Column(String(36), primary_key=True, default=new_id)
    # '' = not attributed to a village
    village_id = Column(String(36), nullable=False, default="", index=True)
    query_text = Column(String(500), nullable=False)
    query_hash = Column(String(32), nullable=False)
    intent = Column(String(64), nullable=False, default="UNKNOWN")
    confidence_level = Column(String(16), nullable=False, default="none")
    channel = Column(String(32), nullable=False, default="whatsapp")
    hit_count = Column(Integer, nullable=False, default=1)
    status = Column(String(16), nullable=False, default="open")  # open|resolved|ignored
    resolved_by = Column(String(36), nullable=True)
    resolved_at = Column(DateTime, nullable=True)
    resolution_kb_id = Column(String(36), nullable=True)
    first_seen_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_seen_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("query_hash", "village_id", name="uq_knowledge_gaps_hash_village"),
        Index("ix_knowledge_gaps_village_status", "village_id", "status"),
    )


class KnowledgeConflict(Base):
    __tablename__ = "knowledge_conflicts"

    id = Column(String(36), primary_key=True, default=new_id)
    village_id = Column(String(36), nullable=False, default="", index=True)
    conflict_hash = Column(String(32), nullable=False)
    source1_title = Column(String(255), nullable=False)
    source2_title = Column(String(255), nullable=False)
    content_summary = Column(Text, nullable=False)
    similarity_score = Column(Float, nullable=False, default=0.0)
    query_text = Column(String(500), nullable=True)
    channel = Column(String(32), nullable=False, default="system")
    hit_count = Column(Integer, nullable=False, default=1)
    status = Column(String(16), nullable=False, default="open")  # open|resolved|auto_resolved|ignored
    auto_resolved = Column(Boolean, nullable=False, default=False)
    resolution_note = Column(Text, nullable=True)
    resolved_by = Column(String(36), nullable=True)
    resolved_at = Column(DateTime, nullable=True)
    first_seen_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_seen_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("conflict_hash", "village_id", name="uq_knowledge_conflicts_hash_village"),
    )


class KnowledgeEntry(Base):
    __tablename__ = "knowledge_base"

    id = Column(String(36), primary_key=True, default=new_id)
    # null = global entry written by a superadmin
    village_id = Column(String(36), ForeignKey("villages.id", ondelete="CASCADE"), nullable=True, index=True)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    category = Column(String(255), nullable=False)
    category_id = Column(String(36), ForeignKey("knowledge_categories.id", ondelete="SET NULL"), nullable=True, index=True)
    keywords = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True)
    priority = Column(Integer, nullable=False, default=0)
    admin_id = Column(String(36), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
