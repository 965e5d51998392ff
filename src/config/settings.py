"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ─────────────────────────────────────────────────
#
# pydantic-settings reads configuration from two sources (priority order):
#
#   1. Environment variables - e.g. MONGODB_URI=mongodb+srv://...
#   2. .env file in the working directory (local development only)
#
# Field `mongodb_uri` maps to env var `MONGODB_URI` automatically.
# Defaults below are the production values; tests override them by passing
# keyword arguments to Settings(...).
#
# Durations are plain seconds so they can be shrunk for local experiments
# without code changes (e.g. CACHE_CYCLE_INTERVAL_SECONDS=600).
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """musicFavorites application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Document store ===
    # Empty URI = run against the in-memory store (development only).
    mongodb_uri: str = ""
    mongodb_database: str = "musicfavorites"
    db_timeout_seconds: float = 0.5

    # === Cache maintenance ===
    cache_updater_enabled: bool = True
    cache_cycle_interval_seconds: float = 24 * 60 * 60
    cache_retry_delay_seconds: float = 60
    bootstrap_quiet_period_seconds: float = 12 * 60 * 60
    fetch_delay_seconds: float = 30
    staleness_threshold_hours: float = 24

    # === Upstream APIs ===
    musicbrainz_app_name: str = "MusicFavorites"
    musicbrainz_app_version: str = "0.1.0"
    musicbrainz_contact: str = "https://github.com/b-uwe/musicFavorites"
    http_timeout_seconds: float = 10.0

    # === Admin ===
    # Empty token disables the admin endpoints (they answer 500).
    admin_token: str = ""

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 3000
    app_env: str = "development"
    log_level: str = "INFO"

    @property
    def user_agent(self) -> str:
        return f"{self.musicbrainz_app_name}/{self.musicbrainz_app_version} ({self.musicbrainz_contact})"

    def uses_memory_store(self) -> bool:
        return not self.mongodb_uri
