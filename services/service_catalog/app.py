"""FastAPI application exposing the hospital service catalog."""

from __future__ import annotations

from fastapi import APIRouter, Depends, FastAPI, Query
from pydantic import BaseModel, Field

from shared.config.settings import get_settings
from shared.http.errors import ServiceNotFoundError, register_exception_handlers
from shared.observability.logger import configure_logging, get_logger
from shared.observability.middleware import (
    CorrelationIdMiddleware,
    RequestTimingMiddleware,
)

from .catalog import HOSPITAL_SERVICES, ServiceCatalog
from .models import HospitalService, ServiceBookingRequest, ServiceCategory, ServiceQuote

SERVICE_NAME = "service_catalog"

configure_logging(service_name=SERVICE_NAME, level=get_settings().observability.level)

app = FastAPI(title="Service Catalog")
router = APIRouter(prefix="/services", tags=["services"])

app.add_middleware(RequestTimingMiddleware)
app.add_middleware(CorrelationIdMiddleware)
register_exception_handlers(app)

logger = get_logger(__name__)


def get_catalog() -> ServiceCatalog:
    """Return the bundled :class:`ServiceCatalog`."""

    return HOSPITAL_SERVICES


class ServiceCollectionResponse(BaseModel):
    services: list[HospitalService] = Field(default_factory=list)
    total: int = 0


class CategoryCollectionResponse(BaseModel):
    categories: list[ServiceCategory] = Field(default_factory=list)


class SubCategoryCollectionResponse(BaseModel):
    category: ServiceCategory
    sub_categories: list[str] = Field(default_factory=list)


@app.get("/health", tags=["health"])
async def health() -> dict[str, str]:
    """Return a simple health payload for orchestration checks."""

    return {"status": "ok", "service": SERVICE_NAME}


@router.get("", response_model=ServiceCollectionResponse)
async def list_services(
    category: ServiceCategory | None = Query(default=None),
    query: str | None = Query(default=None, description="Free-text search"),
    catalog: ServiceCatalog = Depends(get_catalog),
) -> ServiceCollectionResponse:
    """List services, optionally narrowed by category and search text."""

    services = catalog.search_services(query) if query else catalog.services
    if category is not None:
        services = [service for service in services if service.category == category]
    return ServiceCollectionResponse(services=services, total=len(services))


@router.get("/categories", response_model=CategoryCollectionResponse)
async def list_categories(
    catalog: ServiceCatalog = Depends(get_catalog),
) -> CategoryCollectionResponse:
    return CategoryCollectionResponse(categories=catalog.get_service_categories())


@router.get(
    "/categories/{category}/subcategories", response_model=SubCategoryCollectionResponse
)
async def list_sub_categories(
    category: ServiceCategory, catalog: ServiceCatalog = Depends(get_catalog)
) -> SubCategoryCollectionResponse:
    return SubCategoryCollectionResponse(
        category=category, sub_categories=catalog.get_sub_categories(category)
    )


@router.post("/quote", response_model=ServiceQuote)
async def quote_booking(
    request: ServiceBookingRequest, catalog: ServiceCatalog = Depends(get_catalog)
) -> ServiceQuote:
    """Price a booking request at the corporate or general rate."""

    quote = catalog.quote(request)
    if quote.unknown_service_ids:
        logger.warning(
            "booking_quote_unknown_services",
            patient_id=request.patient_id,
            service_ids=quote.unknown_service_ids,
        )
    return quote


@router.get("/{service_id}", response_model=HospitalService)
async def read_service(
    service_id: str, catalog: ServiceCatalog = Depends(get_catalog)
) -> HospitalService:
    service = catalog.get_service_by_id(service_id)
    if service is None:
        raise ServiceNotFoundError(service_id)
    return service


app.include_router(router)


__all__ = ["app", "get_catalog", "health"]
