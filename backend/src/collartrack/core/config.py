from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict


BACKEND_ROOT = Path(__file__).resolve().parents[3]
ENV_PATH = BACKEND_ROOT / ".env"

# Load environment variables as early as possible so Settings picks them up.
if ENV_PATH.exists():
    load_dotenv(ENV_PATH)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "CollarTrack API"
    app_version: str = "0.1.0"
    docs_url: str = "/docs"

    database_url: str = "sqlite:///./collartrack.db"
    database_echo: bool = False
    pgsslmode: Optional[str] = None
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: float = 30.0

    host: str = "0.0.0.0"
    port: int = 8080
    cors_origin: str = "*"
    log_level: str = "INFO"
    max_page_size: int = 1000

    @property
    def require_ssl(self) -> bool:
        return (self.pgsslmode or "").strip().lower() == "require"

    @property
    def cors_origins(self) -> List[str]:
        raw = self.cors_origin.strip()
        if raw == "*":
            return ["*"]
        return [origin.strip() for origin in raw.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
