"""Hospital repository backed by Supabase's PostgREST interface."""

from __future__ import annotations

from typing import Any, Mapping, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from shared.config.settings import SupabaseSettings
from shared.models.hospital import (
    DISCHARGED_IPD_STATUS,
    AdmissionRecord,
    AdmissionStatus,
    DischargeSummary,
    PatientRecord,
)
from shared.observability.logger import get_logger

from .hospital import RecordNotFoundError, RepositoryError

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

PATIENTS_TABLE = "patients"
ADMISSIONS_TABLE = "patient_admissions"
SUMMARIES_TABLE = "discharge_summaries"

_TRANSACTIONS_EMBED = "transactions:patient_transactions(amount,created_at)"
_PATIENT_SELECT = f"*,{_TRANSACTIONS_EMBED}"
_ADMISSION_SELECT = f"*,patient:patients({_PATIENT_SELECT})"


def _strip_trailing_slash(url: str) -> str:
    return url[:-1] if url.endswith("/") else url


def create_supabase_http_client(settings: SupabaseSettings) -> httpx.AsyncClient:
    """Return an ``httpx.AsyncClient`` pointed at the project's REST endpoint."""

    if not settings.is_configured:
        raise RepositoryError("Supabase URL and API key must both be configured")
    return httpx.AsyncClient(
        base_url=f"{_strip_trailing_slash(str(settings.url))}/rest/v1",
        timeout=settings.http_timeout,
        headers={
            "apikey": str(settings.api_key),
            "Authorization": f"Bearer {settings.api_key}",
            "Accept-Profile": settings.schema_name,
            "Content-Profile": settings.schema_name,
        },
    )


def _eq(value: str) -> str:
    return f"eq.{value}"


class SupabaseHospitalRepository:
    """Issue PostgREST queries for patients, admissions and discharge summaries."""

    def __init__(
        self, http_client: httpx.AsyncClient, *, hospital_id: str | None = None
    ) -> None:
        self._http = http_client
        self._hospital_id = hospital_id

    @classmethod
    def from_settings(cls, settings: SupabaseSettings) -> "SupabaseHospitalRepository":
        return cls(create_supabase_http_client(settings), hospital_id=settings.hospital_id)

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: Mapping[str, str],
        json: Mapping[str, Any] | None = None,
        return_rows: bool = False,
    ) -> list[dict[str, Any]]:
        headers = {"Prefer": "return=representation"} if return_rows else None
        try:
            response = await self._http.request(
                method, f"/{table}", params=dict(params), json=json, headers=headers
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise RepositoryError(
                f"{method} {table} failed with status {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise RepositoryError(f"{method} {table} request failed: {exc}") from exc

        if not response.content:
            return []
        try:
            payload = response.json()
        except ValueError as exc:
            raise RepositoryError(f"{method} {table} returned a non-JSON body") from exc
        if isinstance(payload, dict):
            return [payload]
        if not isinstance(payload, list):
            raise RepositoryError(f"{method} {table} returned an unexpected payload")
        return payload

    def _tenant_params(self, params: dict[str, str]) -> dict[str, str]:
        if self._hospital_id:
            params["hospital_id"] = _eq(self._hospital_id)
        return params

    @staticmethod
    def _validate(model: type[ModelT], rows: list[dict[str, Any]], table: str) -> list[ModelT]:
        try:
            return [model.model_validate(row) for row in rows]
        except ValidationError as exc:
            raise RepositoryError(f"Malformed row returned from '{table}': {exc}") from exc

    async def list_discharged_admissions(self) -> list[AdmissionRecord]:
        params = self._tenant_params(
            {"select": _ADMISSION_SELECT, "status": _eq(AdmissionStatus.DISCHARGED.value)}
        )
        rows = await self._request("GET", ADMISSIONS_TABLE, params=params)
        return self._validate(AdmissionRecord, rows, ADMISSIONS_TABLE)

    async def list_discharged_patients(self, limit: int) -> list[PatientRecord]:
        params = self._tenant_params(
            {
                "select": _PATIENT_SELECT,
                "ipd_status": _eq(DISCHARGED_IPD_STATUS),
                "order": "created_at.desc",
                "limit": str(limit),
            }
        )
        rows = await self._request("GET", PATIENTS_TABLE, params=params)
        return self._validate(PatientRecord, rows, PATIENTS_TABLE)

    async def get_discharge_summary(self, admission_id: str) -> DischargeSummary | None:
        rows = await self._request(
            "GET",
            SUMMARIES_TABLE,
            params={"select": "*", "admission_id": _eq(admission_id), "limit": "1"},
        )
        summaries = self._validate(DischargeSummary, rows, SUMMARIES_TABLE)
        return summaries[0] if summaries else None

    async def list_discharge_history(self, patient_id: str) -> list[DischargeSummary]:
        rows = await self._request(
            "GET",
            SUMMARIES_TABLE,
            params={
                "select": "*",
                "patient_id": _eq(patient_id),
                "order": "created_at.desc",
            },
        )
        return self._validate(DischargeSummary, rows, SUMMARIES_TABLE)

    async def delete_discharge_summary(self, summary_id: str) -> None:
        rows = await self._request(
            "DELETE",
            SUMMARIES_TABLE,
            params={"id": _eq(summary_id)},
            return_rows=True,
        )
        if not rows:
            raise RecordNotFoundError(SUMMARIES_TABLE, summary_id)

    async def update_patient_ipd_status(self, patient_id: str, status: str | None) -> None:
        rows = await self._request(
            "PATCH",
            PATIENTS_TABLE,
            params={"id": _eq(patient_id)},
            json={"ipd_status": status},
            return_rows=True,
        )
        if not rows:
            raise RecordNotFoundError(PATIENTS_TABLE, patient_id)

    async def update_admission_status(
        self, admission_id: str, status: AdmissionStatus
    ) -> None:
        rows = await self._request(
            "PATCH",
            ADMISSIONS_TABLE,
            params={"id": _eq(admission_id)},
            json={"status": status.value},
            return_rows=True,
        )
        if not rows:
            raise RecordNotFoundError(ADMISSIONS_TABLE, admission_id)

    async def aclose(self) -> None:
        await self._http.aclose()
        logger.debug("supabase_client_closed")


__all__ = [
    "SupabaseHospitalRepository",
    "create_supabase_http_client",
]
