"""Shared-secret gate for service-to-service calls under /api/internal."""
from __future__ import annotations

import hmac

from fastapi import HTTPException, Request

from apps.dashboard.config import get_internal_api_key

INTERNAL_KEY_HEADER = "x-internal-api-key"


def normalize_internal_api_key(value: str | None) -> str | None:
    """Strip whitespace, an optional `Bearer ` prefix and one layer of quotes."""
    if not value:
        return None
    key = value.strip()
    if key.lower().startswith("bearer "):
        key = key[len("bearer "):].strip()
    if len(key) >= 2 and key[0] == key[-1] and key[0] in ("'", '"'):
        key = key[1:-1].strip()
    return key or None


def get_provided_internal_api_key(request: Request) -> str | None:
    return (
        normalize_internal_api_key(request.headers.get(INTERNAL_KEY_HEADER))
        or normalize_internal_api_key(request.headers.get("authorization"))
    )


def verify_internal_api_key(request: Request) -> bool:
    expected = normalize_internal_api_key(get_internal_api_key())
    if not expected:
        return False
    provided = get_provided_internal_api_key(request)
    if not provided:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


async def require_internal_api_key(request: Request) -> None:
    if not verify_internal_api_key(request):
        raise HTTPException(status_code=401, detail="Unauthorized")
