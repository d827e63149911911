"""SQLAlchemy models."""
from apps.dashboard.models.village import Village, VillageProfile
from apps.dashboard.models.admin import AdminUser, AdminSession
from apps.dashboard.models.activity_log import ActivityLog
from apps.dashboard.models.knowledge import KnowledgeCategory, KnowledgeGap, KnowledgeConflict, KnowledgeEntry

__all__ = [
    "Village",
    "VillageProfile",
    "AdminUser",
    "AdminSession",
    "ActivityLog",
    "KnowledgeCategory",
    "KnowledgeGap",
    "KnowledgeConflict",
    "KnowledgeEntry",
]
