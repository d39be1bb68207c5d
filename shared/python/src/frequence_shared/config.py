"""
config.py — pydantic-settings Settings class.

All environment variables for the collection workers, the export
utilities and the API are declared here.

Usage:
    from frequence_shared.config import settings
    print(settings.functions_base_url)
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_dotenv() -> Path | None:
    """Walk up from CWD to find the nearest .env file."""
    current = Path.cwd()
    for parent in [current, *current.parents]:
        candidate = parent / ".env"
        if candidate.is_file():
            return candidate
    return None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_find_dotenv() or ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Supabase
    # -------------------------------------------------------------------------
    supabase_url: str = Field(default="http://localhost:54321")
    supabase_anon_key: str = Field(default="")
    supabase_service_key: str = Field(default="")
    functions_path: str = Field(default="/functions/v1")

    # -------------------------------------------------------------------------
    # Data collection
    # -------------------------------------------------------------------------
    biodiversity_radius_m: int = Field(default=500)
    weather_days: int = Field(default=30)
    collection_delay_ms: int = Field(default=100)

    # Per edge-function HTTP timeouts (seconds)
    biodiversity_timeout_s: float = Field(default=30.0)
    weather_timeout_s: float = Field(default=12.0)
    real_estate_timeout_s: float = Field(default=8.0)

    heartbeat_interval_s: float = Field(default=5.0)

    # Step collectors: attempts and base backoff delay
    step_max_attempts: int = Field(default=3)
    step_retry_delay_s: float = Field(default=0.4)

    # -------------------------------------------------------------------------
    # Exports
    # -------------------------------------------------------------------------
    export_author: str = Field(default="Gaspard Boréal")

    # -------------------------------------------------------------------------
    # API server
    # -------------------------------------------------------------------------
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    cors_origins: str = Field(default="*")

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO"
    )
    log_format: Literal["json", "console"] = Field(default="console")

    # -------------------------------------------------------------------------
    # Derived / computed
    # -------------------------------------------------------------------------
    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def functions_base_url(self) -> str:
        return f"{self.supabase_url}/{self.functions_path.strip('/')}"

    @property
    def collection_delay_s(self) -> float:
        return self.collection_delay_ms / 1000

    @field_validator("supabase_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/") if isinstance(v, str) else v


# ---------------------------------------------------------------------------
# Module-level singleton, imported everywhere
# ---------------------------------------------------------------------------
settings = Settings()
