"""Uniform `{"error": ...}` envelope for API failures."""
from __future__ import annotations

from fastapi.responses import JSONResponse

GENERIC_INTERNAL_ERROR = "Internal server error"


def error_payload(message: str) -> dict:
    return {"error": message}


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(content=error_payload(message), status_code=status_code)
