"""Hospital service catalog and booking price quotes."""

from .catalog import (
    HOSPITAL_SERVICES,
    ServiceCatalog,
    calculate_service_total,
    get_service_price,
)
from .models import (
    BookingPriority,
    HospitalService,
    ServiceBookingRequest,
    ServiceCategory,
    ServiceQuote,
)

__all__ = [
    "BookingPriority",
    "HOSPITAL_SERVICES",
    "HospitalService",
    "ServiceBookingRequest",
    "ServiceCatalog",
    "ServiceCategory",
    "ServiceQuote",
    "calculate_service_total",
    "get_service_price",
]
