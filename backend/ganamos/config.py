"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded in routes)
    - get_settings() is cached (lru_cache) — single instance per process

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - ALEXA_CLIENT_IDS kept as a comma-separated string (same format the skill console exports)
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def async_database_url(url: str) -> str:
    """Hosted Postgres hands out postgresql:// but asyncpg needs postgresql+asyncpg://."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://ganamos:ganamos@db:5432/ganamos"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        return async_database_url(v) if isinstance(v, str) else v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Runtime
    environment: str = "development"
    app_url: str = "http://localhost:3457"
    internal_email_domain: str = "ganamos.app"

    # Web session tokens
    session_secret: str = "dev-session-secret-change-me"

    # Alexa account linking
    alexa_jwt_secret: str = "dev-alexa-secret-change-me"
    alexa_client_ids: str = ""
    alexa_client_secret: str | None = None

    # Voice skill → API
    ganamos_api_base_url: str = "http://localhost:3457/api/alexa"

    # Mock services
    use_mocks: bool = False
    mock_lightning_auto_settle_ms: int = 0

    # Google Maps
    google_maps_api_key: str | None = None

    # API
    cors_origins: list[str] = ["http://localhost:3457"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def alexa_client_id_list(self) -> list[str]:
        return [
            c.strip() for c in self.alexa_client_ids.split(",") if c.strip()
        ]

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


@lru_cache
def get_settings() -> Settings:
    return Settings()
