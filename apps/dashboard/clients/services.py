"""HTTP client for the downstream microservices (channel, AI, case, notification)."""
from __future__ import annotations

import logging
from enum import Enum
from typing import Any

import httpx

from apps.dashboard.config import get_settings, get_internal_api_key

logger = logging.getLogger(__name__)


class ServicePath(str, Enum):
    CHANNEL = "channel"
    AI = "ai"
    CASE = "case"
    NOTIFICATION = "notification"


class ServiceError(Exception):
    def __init__(self, code: str, message: str = "", status_code: int | None = None):
        super().__init__(message or code)
        self.code = code
        self.message = message or code
        self.status_code = status_code


def _service_base_url(service: ServicePath) -> str:
    s = get_settings()
    return {
        ServicePath.CHANNEL: s.channel_service_url,
        ServicePath.AI: s.ai_service_url,
        ServicePath.CASE: s.case_service_url,
        ServicePath.NOTIFICATION: s.notification_service_url,
    }[service].strip()


def build_url(service: ServicePath, path: str) -> str:
    """Direct service URL if configured, else API_BASE_URL + /<service>."""
    normalized = path if path.startswith("/") else f"/{path}"
    direct = _service_base_url(service)
    if direct:
        return f"{direct.rstrip('/')}{normalized}"
    base = (get_settings().api_base_url or "").strip()
    if base:
        return f"{base.rstrip('/')}/{service.value}{normalized}"
    raise ServiceError("service_not_configured", f"{service.value} service URL is not configured")


def internal_headers(extra: dict[str, str] | None = None) -> dict[str, str]:
    headers = {"Content-Type": "application/json"}
    key = get_internal_api_key()
    if key:
        headers["x-internal-api-key"] = key
    if extra:
        headers.update(extra)
    return headers


def service_request(
    method: str,
    service: ServicePath,
    path: str,
    *,
    params: dict[str, Any] | None = None,
    json: Any = None,
    timeout: float | None = None,
) -> Any:
    """Call a downstream service and return its decoded JSON body.

    Raises ServiceError on timeout, connection failure, non-2xx status or an
    unparseable body.
    """
    url = build_url(service, path)
    t = timeout if timeout is not None else get_settings().service_timeout_seconds
    clean_params = {k: v for k, v in (params or {}).items() if v is not None}
    try:
        r = httpx.request(method, url, params=clean_params or None, json=json, headers=internal_headers(), timeout=t)
    except httpx.TimeoutException as e:
        raise ServiceError("timeout", f"{service.value} service timed out") from e
    except httpx.HTTPError as e:
        raise ServiceError("unreachable", str(e)[:200]) from e
    if r.status_code >= 400:
        raise ServiceError(f"http_{r.status_code}", r.text[:200], status_code=r.status_code)
    if not r.content:
        return None
    try:
        return r.json()
    except ValueError as e:
        raise ServiceError("invalid_json", f"{service.value} service returned invalid JSON") from e


def provision_channel_account(village_id: str) -> tuple[bool, str | None]:
    """Create the village's channel account with WhatsApp and webchat disabled."""
    payload = {"wa_number": "", "enabled_wa": False, "enabled_webchat": False}
    try:
        service_request(
            "PUT",
            ServicePath.CHANNEL,
            f"/internal/channel-accounts/{village_id}",
            json=payload,
            timeout=get_settings().channel_provision_timeout_seconds,
        )
        return True, None
    except ServiceError as e:
        return False, e.code


def fetch_complaints(
    village_id: str | None,
    *,
    status: str | None = None,
    limit: int = 20,
    offset: int = 0,
) -> Any:
    return service_request(
        "GET",
        ServicePath.CASE,
        "/laporan",
        params={"status": status, "limit": limit, "offset": offset, "village_id": village_id},
    )


def fetch_cache_stats() -> Any:
    return service_request("GET", ServicePath.AI, "/admin/cache/stats", timeout=10)


def add_knowledge_vector(payload: dict) -> tuple[bool, str | None]:
    """Ask the AI service to embed a knowledge entry."""
    try:
        service_request("POST", ServicePath.AI, "/api/knowledge", json=payload)
        return True, None
    except ServiceError as e:
        return False, e.code


def delete_knowledge_vector(entry_id: str) -> tuple[bool, str | None]:
    try:
        service_request("DELETE", ServicePath.AI, f"/api/knowledge/{entry_id}")
        return True, None
    except ServiceError as e:
        return False, e.code
