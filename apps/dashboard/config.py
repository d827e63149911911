"""Application configuration."""
from functools import lru_cache
from pydantic_settings import BaseSettings
from pydantic import ConfigDict

_DEV_JWT_SECRET = "dev-only-secret-do-not-use-in-production"


class ConfigurationError(RuntimeError):
    """Missing or unsafe configuration detected at runtime."""


class Settings(BaseSettings):
    model_config = ConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")
    app_env: str = "development"

    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "tanggapin"
    postgres_user: str = "tanggapin"
    postgres_password: str = "changeme"

    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    jwt_expire_hours: int = 24
    session_expire_hours: int = 24
    cookie_name: str = "token"

    internal_api_key: str = ""

    channel_service_url: str = ""
    ai_service_url: str = ""
    case_service_url: str = ""
    notification_service_url: str = ""
    api_base_url: str = ""
    service_timeout_seconds: float = 30.0
    channel_provision_timeout_seconds: float = 8.0

    login_rate_limit_window_seconds: int = 15 * 60
    login_rate_limit_max_attempts: int = 10
    login_rate_limit_sweep_seconds: int = 5 * 60
    session_purge_enabled: bool = True
    session_purge_interval_minutes: int = 60

    superadmin_username: str = "superadmin"
    superadmin_name: str = "Super Admin"
    superadmin_password: str = ""

    @property
    def is_production(self) -> bool:
        return self.app_env.strip().lower() == "production"


@lru_cache
def get_settings() -> Settings:
    return Settings()


def require_jwt_secret(settings: Settings | None = None) -> str:
    """Signing secret; production without JWT_SECRET is a fatal misconfiguration."""
    s = settings or get_settings()
    secret = (s.jwt_secret or "").strip()
    if secret:
        return secret
    if s.is_production:
        raise ConfigurationError("JWT_SECRET environment variable is required in production")
    return _DEV_JWT_SECRET


def get_internal_api_key(settings: Settings | None = None) -> str | None:
    """Shared secret for /api/internal/*; None means every internal call is refused."""
    s = settings or get_settings()
    key = (s.internal_api_key or "").strip()
    return key or None
