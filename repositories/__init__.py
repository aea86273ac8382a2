"""Persistence adapters for hospital records."""

from __future__ import annotations

from shared.config.settings import Settings
from shared.observability.logger import get_logger

from .hospital import (
    DEFAULT_FIXTURE_PATH,
    FixtureLoadError,
    HospitalFixtures,
    HospitalRepository,
    InMemoryHospitalRepository,
    RecordNotFoundError,
    RepositoryError,
    load_hospital_fixtures,
)
from .supabase import SupabaseHospitalRepository, create_supabase_http_client

logger = get_logger(__name__)


def build_hospital_repository(settings: Settings) -> HospitalRepository:
    """Return the Supabase repository when configured, else a fixture-backed one."""

    if settings.supabase.is_configured:
        logger.info("hospital_repository_selected", backend="supabase")
        return SupabaseHospitalRepository.from_settings(settings.supabase)

    path = settings.discharge.fixtures_path or DEFAULT_FIXTURE_PATH
    logger.info("hospital_repository_selected", backend="fixtures", path=str(path))
    return InMemoryHospitalRepository.from_path(path)


__all__ = [
    "DEFAULT_FIXTURE_PATH",
    "FixtureLoadError",
    "HospitalFixtures",
    "HospitalRepository",
    "InMemoryHospitalRepository",
    "RecordNotFoundError",
    "RepositoryError",
    "SupabaseHospitalRepository",
    "build_hospital_repository",
    "create_supabase_http_client",
    "load_hospital_fixtures",
]
