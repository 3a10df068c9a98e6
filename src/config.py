"""Application configuration loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All configuration is loaded from environment variables (or .env file)."""

    # --- App ---
    app_name: str = "Vigil"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    environment: str = "development"  # development | staging | production

    # --- CARE ---
    care_api_url: str = "http://localhost:9000"
    care_request_timeout_seconds: float = 10.0
    facility_id: str | None = None

    # --- Middleware identity (asset-scoped JWTs sent to CARE) ---
    jwt_signing_key: str = ""
    jwt_algorithm: str = "HS256"
    jwt_ttl_seconds: int = 300

    # --- Asset directory database ---
    database_url: str | None = None  # asyncpg DSN; lookups disabled when unset
    database_pool_size: int = 5

    # --- Observation engine ---
    observation_window_size: int = 10
    log_window_size: int = 10
    max_tracked_devices: int | None = None  # None = keep every device

    # --- Upstream sync ---
    sync_gate_policy: str = "global"  # global | per_device
    sync_interval_seconds: int = 3600
    stale_after_seconds: int = 3600
    sync_timer_enabled: bool = True
    sync_check_interval_seconds: float = 60.0

    # --- CORS ---
    cors_origins: list[str] = ["*"]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
