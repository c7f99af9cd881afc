"""Configuration settings for the TrustScan service.

All settings are loaded from environment variables (or a ``.env`` file) using
pydantic-settings. The ``get_settings()`` function returns a cached singleton
instance.

Environment variables are case-insensitive and extra variables are silently
ignored. User preferences (language, privacy mode, history retention) are not
configured here; they live in the key-value store and are read through
``trustscan.services.identity.SettingsProvider``.
"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process settings loaded from environment variables.

    Attributes:
        storage_backend: Key-value backend for local state
            (``memory``, ``sql`` or ``redis``).
        storage_url: SQLAlchemy async URL used by the ``sql`` backend.
        redis_url: Redis connection URL used by the ``redis`` backend.
        storage_max_retries: Attempts an atomic update makes before giving up
            on a contended key.
        ai_engine_url: Endpoint of the AI analysis engine. Empty disables it.
        ai_engine_api_key: Bearer token sent to the AI analysis engine.
        scan_api_base_url: Base URL of the direct remote scan API used as the
            second fallback. Empty disables it.
        backend_base_url: Base URL of the backend issuing canonical scan ids,
            serving stored results, alerts and the watchlist. Empty disables it.
        remote_timeout_seconds: Timeout for remote scan/backend calls.
        uploads_path: Directory holding user media. Media scans only read
            files inside it.
        max_media_size_mb: Largest accepted media upload.
        app_scheme: Custom URL scheme used in deep links.
        web_base_url: Web fallback origin for shared result links.
        settings_refresh_seconds: How long a user-settings snapshot is reused
            before it is read from storage again.
        api_debug: Enable FastAPI debug mode.
        api_log_level: Logging level (debug, info, warning, error, critical).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage
    storage_backend: str = "sql"
    storage_url: str = "sqlite+aiosqlite:///./trustscan.db"
    redis_url: str = "redis://localhost:6379"
    storage_max_retries: int = 10

    # Analysis sources
    ai_engine_url: str = ""
    ai_engine_api_key: str = ""
    scan_api_base_url: str = ""
    backend_base_url: str = ""
    remote_timeout_seconds: float = 15.0

    # Media
    uploads_path: Path = Path("./uploads")
    max_media_size_mb: int = 10

    # Links
    app_scheme: str = "trustscan"
    web_base_url: str = "https://trustscan.app"

    # User settings cache
    settings_refresh_seconds: float = 5.0

    # API
    api_debug: bool = False
    api_log_level: str = "info"


@lru_cache
def get_settings() -> Settings:
    """Get or create the cached application settings singleton.

    Returns:
        Cached Settings instance.
    """
    return Settings()
