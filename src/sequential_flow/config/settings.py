"""Runtime settings."""

from functools import lru_cache
import os
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[3]

TWO_HOURS_MS = 2 * 60 * 60 * 1000


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    storage_backend: Literal["memory", "redis", "postgres"] = "memory"
    # Lifetime of a freshly executed task; resume always refreshes with resume_ttl_ms.
    default_ttl_ms: int = Field(default=TWO_HOURS_MS, ge=1)
    resume_ttl_ms: int = Field(default=TWO_HOURS_MS, ge=1)
    redis_url: str = ""
    redis_key_prefix: str = "seq-flow:"
    redis_fallback_ttl_s: int = Field(default=7200, ge=1)
    database_url: str = ""
    table_name: str = Field(default="sequential_flow_tasks", pattern=r"^[A-Za-z_][A-Za-z0-9_]*$")

    model_config = SettingsConfigDict(
        env_prefix="SEQUENTIAL_FLOW_",
        extra="ignore",
        env_file=(PROJECT_ROOT / ".env", PROJECT_ROOT / ".env.local"),
        env_file_encoding="utf-8",
    )

    def resolved_database_url(self) -> str:
        return self.database_url or os.getenv("DATABASE_URL", "")

    def resolved_redis_url(self) -> str:
        return self.redis_url or os.getenv("REDIS_URL", "")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
