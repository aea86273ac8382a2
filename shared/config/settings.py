"""Application configuration powered by ``pydantic-settings``."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SupabaseSettings(BaseSettings):
    """Connection details for the hosted Postgres (Supabase REST) backend."""

    url: Optional[str] = Field(default=None, description="Supabase project URL, e.g. https://xyz.supabase.co")
    api_key: Optional[str] = Field(default=None, description="Supabase anon or service-role key")
    schema_name: str = Field(default="public", description="Postgres schema exposed through PostgREST")
    hospital_id: Optional[str] = Field(default=None, description="Optional tenant filter applied to patient queries")
    http_timeout: float = Field(default=10.0, ge=1.0, description="Timeout in seconds for backend requests")

    model_config = SettingsConfigDict(env_prefix="SUPABASE_", env_file=".env", extra="ignore")

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.api_key)


class DischargeSettings(BaseSettings):
    """Behaviour of the discharge reconciliation service."""

    patient_scan_limit: int = Field(default=50_000, ge=1, description="Upper bound on the discharged patient scan")
    export_directory: Path = Field(default=Path("./exports"), description="Directory receiving CSV exports")
    fixtures_path: Optional[Path] = Field(
        default=None,
        description="Fixture file used instead of Supabase when the backend is not configured",
    )

    model_config = SettingsConfigDict(env_prefix="DISCHARGE_", env_file=".env", extra="ignore")


class ObservabilitySettings(BaseSettings):
    """Logging configuration shared by all services."""

    level: str = Field(default="INFO", description="Root log level")

    model_config = SettingsConfigDict(env_prefix="LOG_", env_file=".env", extra="ignore")


class Settings(BaseSettings):
    """Top-level application settings namespace."""

    supabase: SupabaseSettings = Field(default_factory=SupabaseSettings)
    discharge: DischargeSettings = Field(default_factory=DischargeSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    model_config = SettingsConfigDict(env_file=".env", env_nested_delimiter="__", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance for application use."""

    return Settings()


__all__ = [
    "DischargeSettings",
    "ObservabilitySettings",
    "Settings",
    "SupabaseSettings",
    "get_settings",
]
