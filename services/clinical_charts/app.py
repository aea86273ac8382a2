"""FastAPI application for clinical chart calculations."""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi import APIRouter, FastAPI

from shared.config.settings import get_settings
from shared.http.errors import register_exception_handlers
from shared.observability.logger import configure_logging, get_logger
from shared.observability.middleware import (
    CorrelationIdMiddleware,
    RequestTimingMiddleware,
)

from .intake_output import (
    IntakeOutputRecord,
    IntakeOutputSummary,
    IntakeOutputTotals,
    IntakeOutputTotalsRequest,
    calculate_totals,
    summarize_record,
)

SERVICE_NAME = "clinical_charts"

configure_logging(service_name=SERVICE_NAME, level=get_settings().observability.level)

app = FastAPI(title="Clinical Charts Service")
router = APIRouter(prefix="/intake-output", tags=["intake-output"])

app.add_middleware(RequestTimingMiddleware)
app.add_middleware(CorrelationIdMiddleware)
register_exception_handlers(app)

logger = get_logger(__name__)


@app.get("/health", tags=["health"])
async def health() -> dict[str, str]:
    """Return a simple health payload for orchestration checks."""

    return {"status": "ok", "service": SERVICE_NAME}


@router.post("/totals", response_model=IntakeOutputTotals, response_model_by_alias=True)
async def compute_totals(request: IntakeOutputTotalsRequest) -> IntakeOutputTotals:
    """Return intake, output and balance for the submitted rows."""

    return calculate_totals(request.entries)


@router.post(
    "/records", response_model=IntakeOutputSummary, response_model_by_alias=True
)
async def submit_record(record: IntakeOutputRecord) -> IntakeOutputSummary:
    """Validate a full chart and return its summary."""

    summary = summarize_record(record, submitted_at=datetime.now(UTC))
    logger.info(
        "intake_output_recorded",
        patient_id=record.patient_id,
        entries=summary.entry_count,
        balance=summary.totals.balance,
    )
    return summary


app.include_router(router)


__all__ = ["app", "health"]
