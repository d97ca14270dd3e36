"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets and deployment specifics come from environment variables
    - get_settings() is cached (lru_cache) — single instance per process
    - Trust windows (edit, code TTL) and page size default to the published policy

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for all non-secret settings: works out-of-the-box with docker-compose
"""

from functools import lru_cache
from uuid import UUID

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://vouch:vouch@db:5432/vouch"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted Postgres provides postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Identity — user ids forwarded by the auth gateway that may act as admins
    admin_user_ids: list[UUID] = []

    # Trust policy
    reference_edit_window_hours: int = 24
    verification_code_ttl_hours: int = 24
    search_page_size: int = 20

    # Notifications (empty URL = log-only notifier)
    notification_webhook_url: str = ""
    notification_max_retries: int = 3
    notification_timeout_seconds: float = 5.0
    notification_base_delay_ms: int = 200
    notification_max_delay_ms: int = 5_000

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    def is_admin(self, user_id: UUID) -> bool:
        return user_id in self.admin_user_ids


@lru_cache
def get_settings() -> Settings:
    return Settings()
