"""State holder for the discharged-patient list and its sort selection."""

from __future__ import annotations

from datetime import date, datetime
from pathlib import Path

from repositories.hospital import HospitalRepository
from shared.models.hospital import DischargedPatientView
from shared.observability.logger import get_logger

from .export import write_export
from .listing import DateFilter, SortColumn, SortState, apply_view
from .reconciliation import Clock, DischargeReconciler, ReconciliationResult, utcnow
from .removal import RemovalResult, remove_discharge_record

logger = get_logger(__name__)


class DischargeBoard:
    """Hold the last reconciled list; replaced wholesale on each refresh."""

    def __init__(
        self,
        repository: HospitalRepository,
        *,
        patient_scan_limit: int = 50_000,
        clock: Clock = utcnow,
    ) -> None:
        self._repository = repository
        self._reconciler = DischargeReconciler(
            repository, patient_scan_limit=patient_scan_limit, clock=clock
        )
        self._clock = clock
        self._patients: list[DischargedPatientView] = []
        self._sort = SortState()
        self._refreshed_at: datetime | None = None

    @property
    def repository(self) -> HospitalRepository:
        return self._repository

    @property
    def patients(self) -> list[DischargedPatientView]:
        return list(self._patients)

    @property
    def sort_state(self) -> SortState:
        return self._sort

    @property
    def refreshed_at(self) -> datetime | None:
        return self._refreshed_at

    async def refresh(self) -> ReconciliationResult:
        result = await self._reconciler.reconcile()
        self._patients = list(result.patients)
        self._refreshed_at = self._clock()
        return result

    def toggle_sort(self, column: SortColumn) -> SortState:
        self._sort = self._sort.toggle(column)
        return self._sort

    def view(
        self,
        *,
        search: str = "",
        date_filter: DateFilter = DateFilter.ALL,
        sort: SortState | None = None,
        now: datetime | None = None,
    ) -> list[DischargedPatientView]:
        return apply_view(
            self._patients,
            search=search,
            date_filter=date_filter,
            sort=sort or self._sort,
            now=now,
        )

    async def remove(self, patient_id: str) -> RemovalResult:
        result = await remove_discharge_record(self._repository, self._patients, patient_id)
        self._patients = list(result.remaining)
        return result

    def export(
        self,
        directory: Path,
        *,
        search: str = "",
        date_filter: DateFilter = DateFilter.ALL,
        sort: SortState | None = None,
        today: date | None = None,
        now: datetime | None = None,
    ) -> Path:
        """Write the current filtered and sorted view to a CSV file."""

        rows = self.view(search=search, date_filter=date_filter, sort=sort, now=now)
        path = write_export(rows, directory, today=today)
        logger.info("discharge_export_written", path=str(path), rows=len(rows))
        return path


__all__ = ["DischargeBoard"]
