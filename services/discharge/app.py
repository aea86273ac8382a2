"""FastAPI application exposing the discharged-patient board."""

from __future__ import annotations

from datetime import date, datetime

from fastapi import APIRouter, Depends, FastAPI, Query
from fastapi.responses import Response
from pydantic import BaseModel, Field

from repositories import FixtureLoadError, RepositoryError, build_hospital_repository
from shared.config.settings import get_settings
from shared.http.errors import BackendUnavailableError, register_exception_handlers
from shared.models.hospital import DischargedPatientView
from shared.observability.logger import configure_logging, get_logger
from shared.observability.middleware import (
    CorrelationIdMiddleware,
    RequestTimingMiddleware,
)

from .board import DischargeBoard
from .export import export_filename, render_export_csv
from .listing import DateFilter, SortColumn, SortOrder, SortState

SERVICE_NAME = "discharge"

_settings = get_settings()
configure_logging(
    service_name=SERVICE_NAME,
    level=_settings.observability.level,
    hospital_id=_settings.supabase.hospital_id,
)

app = FastAPI(title="Discharge Service")
router = APIRouter(prefix="/discharges", tags=["discharges"])

app.add_middleware(RequestTimingMiddleware)
app.add_middleware(CorrelationIdMiddleware)
register_exception_handlers(app)

logger = get_logger(__name__)

_board: DischargeBoard | None = None


def get_board() -> DischargeBoard:
    """Return the process-wide :class:`DischargeBoard`, creating it on first use."""

    global _board
    if _board is None:
        settings = get_settings()
        try:
            repository = build_hospital_repository(settings)
        except (FixtureLoadError, RepositoryError) as exc:
            logger.error("hospital_repository_unavailable", error=str(exc))
            raise BackendUnavailableError(
                "The hospital records backend is not available."
            ) from exc
        _board = DischargeBoard(
            repository, patient_scan_limit=settings.discharge.patient_scan_limit
        )
    return _board


class SortStateModel(BaseModel):
    column: SortColumn
    order: SortOrder

    @classmethod
    def from_state(cls, state: SortState) -> "SortStateModel":
        return cls(column=state.column, order=state.order)


class RefreshResponse(BaseModel):
    """Outcome of rebuilding the discharged list."""

    message: str
    count: int
    duplicates_removed: int


class DischargedPatientList(BaseModel):
    patients: list[DischargedPatientView] = Field(default_factory=list)
    total: int = 0
    sort: SortStateModel
    refreshed_at: datetime | None = None


class RemovalResponse(BaseModel):
    message: str
    patient_id: str
    admission_restored: bool


def _resolve_sort(
    board: DischargeBoard, sort_by: SortColumn | None, order: SortOrder | None
) -> SortState:
    """Overlay query-string sort choices on the board's active sort."""

    if sort_by is not None:
        return SortState(column=sort_by, order=order or SortOrder.DESC)
    if order is not None:
        return SortState(column=board.sort_state.column, order=order)
    return board.sort_state


@app.get("/health", tags=["health"])
async def health() -> dict[str, str]:
    """Return a simple health payload for orchestration checks."""

    return {"status": "ok", "service": SERVICE_NAME}


@router.post("/refresh", response_model=RefreshResponse)
async def refresh_discharges(board: DischargeBoard = Depends(get_board)) -> RefreshResponse:
    """Re-run reconciliation against the backend."""

    result = await board.refresh()
    return RefreshResponse(
        message=result.message,
        count=len(result.patients),
        duplicates_removed=result.duplicates_removed,
    )


@router.get("", response_model=DischargedPatientList)
async def list_discharges(
    search: str = Query(default="", description="Name, phone, patient id or diagnosis"),
    date_filter: DateFilter = Query(default=DateFilter.ALL),
    sort_by: SortColumn | None = Query(default=None),
    order: SortOrder | None = Query(default=None),
    board: DischargeBoard = Depends(get_board),
) -> DischargedPatientList:
    """Return the searched, filtered and sorted discharged list."""

    state = _resolve_sort(board, sort_by, order)
    patients = board.view(search=search, date_filter=date_filter, sort=state)
    return DischargedPatientList(
        patients=patients,
        total=len(patients),
        sort=SortStateModel.from_state(state),
        refreshed_at=board.refreshed_at,
    )


@router.post("/sort/{column}", response_model=SortStateModel)
async def toggle_sort(
    column: SortColumn, board: DischargeBoard = Depends(get_board)
) -> SortStateModel:
    """Select a sort column; selecting the active column flips direction."""

    return SortStateModel.from_state(board.toggle_sort(column))


@router.get("/export")
async def export_discharges(
    search: str = Query(default=""),
    date_filter: DateFilter = Query(default=DateFilter.ALL),
    sort_by: SortColumn | None = Query(default=None),
    order: SortOrder | None = Query(default=None),
    board: DischargeBoard = Depends(get_board),
) -> Response:
    """Download the current view as a CSV spreadsheet."""

    state = _resolve_sort(board, sort_by, order)
    patients = board.view(search=search, date_filter=date_filter, sort=state)
    filename = export_filename(date.today())
    return Response(
        content=render_export_csv(patients),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.delete("/{patient_id}", response_model=RemovalResponse)
async def delete_discharge(
    patient_id: str, board: DischargeBoard = Depends(get_board)
) -> RemovalResponse:
    """Un-discharge ``patient_id`` and drop it from the list."""

    result = await board.remove(patient_id)
    return RemovalResponse(
        message=result.message,
        patient_id=result.patient.id,
        admission_restored=result.admission_restored,
    )


app.include_router(router)


@app.on_event("shutdown")
async def shutdown_repository() -> None:  # pragma: no cover - app lifecycle management
    """Close the backend client when the application shuts down."""

    global _board
    if _board is not None:
        await _board.repository.aclose()
        _board = None


__all__ = ["app", "get_board", "health"]
