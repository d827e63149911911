"""Thin proxies to downstream services."""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from apps.dashboard.auth import AdminSessionInfo, require_admin_session, require_superadmin, resolve_village_id
from apps.dashboard.clients import services as service_client
from apps.dashboard.clients.services import ServiceError
from apps.dashboard.services.knowledge import parse_page

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/laporan")
def list_complaints(
    request: Request,
    session: AdminSessionInfo = Depends(require_admin_session),
):
    village_id = resolve_village_id(request, session)
    q = request.query_params
    limit, offset = parse_page(q.get("limit"), q.get("offset"), default_limit=20, max_limit=200)
    try:
        data = service_client.fetch_complaints(village_id, status=q.get("status") or None, limit=limit, offset=offset)
        if data is not None:
            return data
    except ServiceError as e:
        logger.warning("case service unavailable village_id=%s error=%s", village_id, e.code)
    return {"data": [], "pagination": {"total": 0, "limit": limit, "offset": offset}}


@router.get("/cache")
def cache_stats(_session: AdminSessionInfo = Depends(require_superadmin)):
    try:
        return service_client.fetch_cache_stats()
    except ServiceError as e:
        logger.warning("ai service cache stats failed error=%s", e.code)
        if e.status_code:
            raise HTTPException(status_code=502, detail="Failed to fetch cache stats")
        raise HTTPException(status_code=502, detail="AI service unreachable")
