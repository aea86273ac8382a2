"""Static hospital service catalog with pricing and duration helpers."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Iterable, Sequence

from pydantic import ValidationError

from .models import (
    HospitalService,
    QuoteLineItem,
    ServiceBookingRequest,
    ServiceCategory,
    ServiceQuote,
)

CATALOG_PATH = Path(__file__).parent / "data" / "hospital_services.json"
DEFAULT_DURATION_MINUTES = 30

_LEADING_INTEGER = re.compile(r"^\s*[+-]?(\d+)")


class CatalogLoadError(RuntimeError):
    """Raised when the catalog data file is missing or malformed."""


def parse_duration_minutes(duration: str) -> int:
    """Return the leading integer of ``duration``, or the 30 minute default."""

    match = _LEADING_INTEGER.match(duration or "")
    return int(match.group(1)) if match else DEFAULT_DURATION_MINUTES


def load_services(path: Path = CATALOG_PATH) -> list[HospitalService]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
        return [HospitalService.model_validate(item) for item in payload["services"]]
    except (OSError, json.JSONDecodeError, KeyError, TypeError, ValidationError) as exc:
        raise CatalogLoadError(f"Unable to load service catalog from {path}: {exc}") from exc


class ServiceCatalog:
    """Lookup, search and pricing over an in-memory list of services."""

    def __init__(self, services: Sequence[HospitalService]) -> None:
        self._services = list(services)
        self._by_id = {service.id: service for service in self._services}

    @classmethod
    def from_path(cls, path: Path = CATALOG_PATH) -> "ServiceCatalog":
        return cls(load_services(path))

    def __len__(self) -> int:
        return len(self._services)

    @property
    def services(self) -> list[HospitalService]:
        return list(self._services)

    def get_service_by_id(self, service_id: str) -> HospitalService | None:
        return self._by_id.get(service_id)

    def get_services_by_category(self, category: ServiceCategory) -> list[HospitalService]:
        return [service for service in self._services if service.category == category]

    def search_services(self, query: str) -> list[HospitalService]:
        """Case-insensitive match on name, description, category and sub-category."""

        term = query.lower()
        return [
            service
            for service in self._services
            if term in service.name.lower()
            or term in (service.description or "").lower()
            or term in service.category.value.lower()
            or term in (service.sub_category or "").lower()
        ]

    def get_service_categories(self) -> list[ServiceCategory]:
        return list(dict.fromkeys(service.category for service in self._services))

    def get_sub_categories(self, category: ServiceCategory) -> list[str]:
        return list(
            dict.fromkeys(
                service.sub_category
                for service in self.get_services_by_category(category)
                if service.sub_category
            )
        )

    def get_service_price(self, service_id: str, is_corporate: bool = False) -> float:
        service = self._by_id.get(service_id)
        return service.rate(is_corporate) if service else 0.0

    def calculate_service_total(
        self, service_ids: Iterable[str], is_corporate: bool = False
    ) -> float:
        """Sum the selected rates; unknown ids contribute nothing."""

        return sum(
            (self.get_service_price(service_id, is_corporate) for service_id in service_ids),
            0.0,
        )

    def estimate_service_duration(self, service_ids: Iterable[str]) -> int:
        """Total minutes for the known services in ``service_ids``."""

        return sum(
            parse_duration_minutes(service.duration)
            for service_id in service_ids
            if (service := self._by_id.get(service_id)) is not None
        )

    def quote(self, request: ServiceBookingRequest) -> ServiceQuote:
        line_items: list[QuoteLineItem] = []
        unknown: list[str] = []
        for service_id in request.service_ids:
            service = self._by_id.get(service_id)
            if service is None:
                unknown.append(service_id)
                continue
            line_items.append(
                QuoteLineItem(
                    service_id=service.id,
                    name=service.name,
                    category=service.category,
                    rate=service.rate(request.is_corporate),
                    duration_minutes=parse_duration_minutes(service.duration),
                )
            )
        return ServiceQuote(
            patient_id=request.patient_id,
            scheduled_date=request.scheduled_date,
            scheduled_time=request.scheduled_time,
            priority=request.priority,
            is_corporate=request.is_corporate,
            line_items=line_items,
            unknown_service_ids=unknown,
            total_amount=self.calculate_service_total(request.service_ids, request.is_corporate),
            estimated_duration_minutes=self.estimate_service_duration(request.service_ids),
        )


HOSPITAL_SERVICES = ServiceCatalog.from_path()


def calculate_service_total(service_ids: Iterable[str], is_corporate: bool = False) -> float:
    """Sum corporate or general rates over the bundled catalog."""

    return HOSPITAL_SERVICES.calculate_service_total(service_ids, is_corporate)


def get_service_price(service_id: str, is_corporate: bool = False) -> float:
    return HOSPITAL_SERVICES.get_service_price(service_id, is_corporate)


__all__ = [
    "CATALOG_PATH",
    "CatalogLoadError",
    "DEFAULT_DURATION_MINUTES",
    "HOSPITAL_SERVICES",
    "ServiceCatalog",
    "calculate_service_total",
    "get_service_price",
    "load_services",
    "parse_duration_minutes",
]
