"""Application Configuration: environment-driven settings via pydantic-settings.

Invariants:
    - Every field can be overridden by an environment variable of the same name
    - get_settings() is cached (lru_cache): single instance per process
    - auto_assign_max_attempts >= 1: an auto join always makes at least one attempt

Design Decisions:
    - Defaults target the docker-compose Postgres; tests point DATABASE_URL at SQLite
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Gatehouse settings from environment variables (or .env)."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Storage
    database_url: str = (
        "postgresql+asyncpg://gatehouse:gatehouse@db:5432/gatehouse"
    )
    database_pool_size: int = Field(20, ge=1)
    database_max_overflow: int = Field(10, ge=0)
    sqlite_busy_timeout: float = Field(30.0, gt=0)

    @field_validator("database_url", mode="before")
    @classmethod
    def use_async_driver(cls, v: str) -> str:
        """Platform-provided postgres:// URLs need the asyncpg driver suffix."""
        if isinstance(v, str):
            for prefix in ("postgres://", "postgresql://"):
                if v.startswith(prefix):
                    return "postgresql+asyncpg://" + v[len(prefix):]
        return v

    # Gate allocation
    auto_assign_max_attempts: int = Field(3, ge=1, le=10)

    # HTTP
    cors_origins: list[str] = ["http://localhost:3000"]

    # Logging
    log_level: str = "INFO"
    log_format: str = Field("json", pattern="^(json|text)$")


@lru_cache
def get_settings() -> Settings:
    return Settings()
