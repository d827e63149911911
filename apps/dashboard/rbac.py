"""Role/route matrix for the dashboard UI tree."""
from __future__ import annotations

from typing import Iterable

from apps.dashboard.models.admin import ROLE_SUPERADMIN

DISABLED_PATH_PREFIXES: tuple[str, ...] = ()

# checked first: only these roles may enter
SUPERADMIN_ONLY_RULES: dict[str, tuple[str, ...]] = {
    "/dashboard/superadmin/ai-usage": (ROLE_SUPERADMIN,),
    "/dashboard/superadmin/villages": (ROLE_SUPERADMIN,),
    "/dashboard/superadmin/admins": (ROLE_SUPERADMIN,),
    "/dashboard/superadmin/register": (ROLE_SUPERADMIN,),
    "/dashboard/settings/cache": (ROLE_SUPERADMIN,),
    "/dashboard/superadmin/system-health": (ROLE_SUPERADMIN,),
    "/dashboard/superadmin/llm-check": (ROLE_SUPERADMIN,),
    "/dashboard/superadmin/gemini-keys": (ROLE_SUPERADMIN,),
    "/dashboard/superadmin/whatsapp": (ROLE_SUPERADMIN,),
}

# tenant dashboards; superadmin has no village to show here
VILLAGE_ONLY_ROUTES: tuple[str, ...] = (
    "/dashboard/statistik",
    "/dashboard/laporan",
    "/dashboard/pengaduan",
    "/dashboard/layanan",
    "/dashboard/pelayanan",
    "/dashboard/channel-settings",
    "/dashboard/livechat",
    "/dashboard/knowledge",
    "/dashboard/testing-knowledge",
    "/dashboard/village-profile",
    "/dashboard/important-contacts",
    "/dashboard/knowledge-analytics",
)


def match_path(pathname: str, prefix: str) -> bool:
    return pathname == prefix or pathname.startswith(prefix + "/")


def is_superadmin(role: str | None) -> bool:
    return role == ROLE_SUPERADMIN


def is_route_allowed(role: str | None, pathname: str) -> bool:
    if any(match_path(pathname, p) for p in DISABLED_PATH_PREFIXES):
        return False
    if not role:
        return True
    for prefix, roles in SUPERADMIN_ONLY_RULES.items():
        if match_path(pathname, prefix):
            return role in roles
    if is_superadmin(role) and any(match_path(pathname, r) for r in VILLAGE_ONLY_ROUTES):
        return False
    return True


def can_access(
    role: str | None,
    allowed_roles: Iterable[str] | None = None,
    exclude_roles: Iterable[str] | None = None,
) -> bool:
    excluded = tuple(exclude_roles or ())
    if role and role in excluded:
        return False
    allowed = tuple(allowed_roles or ())
    if not allowed:
        return True
    if not role:
        return False
    return role in allowed
