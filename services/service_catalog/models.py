"""Models for the hospital service catalog and booking quotes."""

from __future__ import annotations

from datetime import date, time
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ServiceCategory(str, Enum):
    LABORATORY = "LABORATORY"
    RADIOLOGY = "RADIOLOGY"
    MRI = "MRI"
    CARDIOLOGY = "CARDIOLOGY"
    PROCEDURES = "PROCEDURES"
    DENTAL = "DENTAL"


class BookingPriority(str, Enum):
    ROUTINE = "ROUTINE"
    URGENT = "URGENT"
    EMERGENCY = "EMERGENCY"


class HospitalService(BaseModel):
    """A billable hospital service with corporate and general rates."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    category: ServiceCategory
    sub_category: str | None = None
    corporate_rate: float = Field(ge=0)
    general_rate: float = Field(ge=0)
    duration: str = Field(description="Minutes, or a free-text description")
    description: str | None = None

    def rate(self, is_corporate: bool) -> float:
        return self.corporate_rate if is_corporate else self.general_rate


class ServiceBookingRequest(BaseModel):
    """Services selected for a patient at a scheduled slot."""

    patient_id: str = Field(min_length=1)
    service_ids: list[str] = Field(min_length=1)
    scheduled_date: date
    scheduled_time: time
    priority: BookingPriority = BookingPriority.ROUTINE
    notes: str | None = None
    is_corporate: bool = False

    @field_validator("service_ids")
    @classmethod
    def _strip_ids(cls, value: list[str]) -> list[str]:
        cleaned = [item.strip() for item in value if item and item.strip()]
        if not cleaned:
            raise ValueError("at least one service id is required")
        return cleaned


class QuoteLineItem(BaseModel):
    service_id: str
    name: str
    category: ServiceCategory
    rate: float
    duration_minutes: int


class ServiceQuote(BaseModel):
    """Priced summary of a :class:`ServiceBookingRequest`."""

    patient_id: str
    scheduled_date: date
    scheduled_time: time
    priority: BookingPriority
    is_corporate: bool
    line_items: list[QuoteLineItem] = Field(default_factory=list)
    unknown_service_ids: list[str] = Field(default_factory=list)
    total_amount: float = 0.0
    estimated_duration_minutes: int = 0


__all__ = [
    "BookingPriority",
    "HospitalService",
    "QuoteLineItem",
    "ServiceBookingRequest",
    "ServiceCategory",
    "ServiceQuote",
]
