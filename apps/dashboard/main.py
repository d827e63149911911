"""FastAPI entry point."""
import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from apps.dashboard.config import get_settings
from apps.dashboard.middleware.auth_guard import AuthGuardMiddleware
from apps.dashboard.routers import health, auth, knowledge, internal_knowledge
from apps.dashboard.routers import superadmin, proxy, public, dashboard
from apps.dashboard.services.admin_sessions import purge_expired_sessions_once
from apps.dashboard.services.rate_limiter import LoginRateLimiter
from apps.dashboard.utils.api_errors import GENERIC_INTERNAL_ERROR, error_response

logger = logging.getLogger(__name__)


async def _session_purge_loop(interval_seconds: float) -> None:
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await run_in_threadpool(purge_expired_sessions_once)
        except Exception:
            logger.exception("expired session purge failed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    s = get_settings()
    limiter: LoginRateLimiter = app.state.login_rate_limiter
    await limiter.start_sweep_loop(interval=s.login_rate_limit_sweep_seconds)
    purge_task = None
    if s.session_purge_enabled:
        purge_task = asyncio.create_task(_session_purge_loop(s.session_purge_interval_minutes * 60))
    yield
    await limiter.stop_sweep_loop()
    if purge_task:
        purge_task.cancel()
        try:
            await purge_task
        except asyncio.CancelledError:
            pass


app = FastAPI(
    title="Tanggapin AI Dashboard",
    description="Admin dashboard backend for the multi-tenant village service chatbot",
    version="0.1.0",
    lifespan=lifespan,
)
app.state.login_rate_limiter = LoginRateLimiter.from_settings(get_settings())

app.add_middleware(AuthGuardMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, tags=["System"])
app.include_router(dashboard.router, tags=["Dashboard UI"])
app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(knowledge.router, prefix="/api", tags=["Knowledge"])
app.include_router(superadmin.router, prefix="/api/superadmin", tags=["Superadmin"])
app.include_router(proxy.router, prefix="/api", tags=["Services"])
app.include_router(public.router, prefix="/api/public", tags=["Public"])
app.include_router(internal_knowledge.router, prefix="/api/internal", tags=["Internal"])


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    if not isinstance(detail, str):
        detail = str(detail) if detail else "Error"
    return error_response(exc.status_code, detail)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    if first.get("type") == "json_invalid":
        return error_response(400, "Invalid JSON body")
    loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"Invalid field: {loc}" if loc else "Invalid request"
    return error_response(400, message)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Full detail goes to the log only."""
    logger.exception("Unhandled exception path=%s", request.url.path)
    return error_response(500, GENERIC_INTERNAL_ERROR)
