"""Repository contract for hospital records plus a fixture-backed implementation."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Mapping, Protocol, Sequence

from pydantic import ValidationError

from shared.models.hospital import (
    DISCHARGED_IPD_STATUS,
    AdmissionRecord,
    AdmissionStatus,
    DischargeSummary,
    PatientRecord,
)

DEFAULT_FIXTURE_PATH = Path(__file__).parent / "fixtures" / "hospital.json"

_EPOCH = datetime.fromtimestamp(0, tz=UTC)


class RepositoryError(RuntimeError):
    """Raised when the persistence backend fails to satisfy a request."""


class RecordNotFoundError(RepositoryError):
    """Raised when a mutation targets a row that does not exist."""

    def __init__(self, table: str, record_id: str) -> None:
        super().__init__(f"No row with id '{record_id}' in '{table}'.")
        self.table = table
        self.record_id = record_id


class HospitalRepository(Protocol):
    """Backend operations needed by the discharge services."""

    async def list_discharged_admissions(self) -> list[AdmissionRecord]:
        ...

    async def list_discharged_patients(self, limit: int) -> list[PatientRecord]:
        ...

    async def get_discharge_summary(self, admission_id: str) -> DischargeSummary | None:
        ...

    async def list_discharge_history(self, patient_id: str) -> list[DischargeSummary]:
        ...

    async def delete_discharge_summary(self, summary_id: str) -> None:
        ...

    async def update_patient_ipd_status(self, patient_id: str, status: str | None) -> None:
        ...

    async def update_admission_status(
        self, admission_id: str, status: AdmissionStatus
    ) -> None:
        ...

    async def aclose(self) -> None:
        ...


@dataclass
class HospitalFixtures:
    """Validated rows loaded from a fixtures document."""

    patients: list[PatientRecord] = field(default_factory=list)
    admissions: list[AdmissionRecord] = field(default_factory=list)
    discharge_summaries: list[DischargeSummary] = field(default_factory=list)


class FixtureLoadError(RuntimeError):
    """Raised when hospital fixtures cannot be loaded from disk."""

    def __init__(self, errors: list[str], fixtures: HospitalFixtures | None = None) -> None:
        message = "Failed to load hospital fixtures:\n" + "\n".join(errors)
        super().__init__(message)
        self.errors = errors
        self.fixtures = fixtures or HospitalFixtures()


_COLLECTIONS: tuple[tuple[str, type[Any]], ...] = (
    ("patients", PatientRecord),
    ("admissions", AdmissionRecord),
    ("discharge_summaries", DischargeSummary),
)


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()))
        parts.append(f"{location or '<root>'}: {error.get('msg')}")
    return "; ".join(parts)


def load_hospital_fixtures(path: Path) -> HospitalFixtures:
    """Load and validate a hospital fixtures JSON document.

    Every malformed row is reported; valid rows are still available on the
    raised :class:`FixtureLoadError` through ``exc.fixtures``.
    """

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise FixtureLoadError([f"{path}: {exc.strerror or 'file not found'}"]) from exc
    except json.JSONDecodeError as exc:
        raise FixtureLoadError([f"{path}: invalid JSON ({exc.msg})"]) from exc

    if not isinstance(payload, Mapping):
        raise FixtureLoadError([f"{path}: top-level JSON payload must be an object"])

    fixtures = HospitalFixtures()
    errors: list[str] = []

    for name, model in _COLLECTIONS:
        rows = payload.get(name, [])
        if not isinstance(rows, list):
            errors.append(f"{path}: '{name}' must be a list")
            continue
        target: list[Any] = getattr(fixtures, name)
        for index, row in enumerate(rows):
            if not isinstance(row, Mapping):
                errors.append(f"{path}: {name}[{index}] must be an object")
                continue
            try:
                target.append(model.model_validate(dict(row)))
            except ValidationError as exc:
                errors.append(f"{path}: {name}[{index}]: {_format_validation_error(exc)}")

    if errors:
        raise FixtureLoadError(errors, fixtures)

    return fixtures


def _created_at_key(record: PatientRecord | DischargeSummary) -> datetime:
    return record.created_at or _EPOCH


class InMemoryHospitalRepository:
    """Repository serving hospital records from memory.

    Admissions are joined to their patient on read; an admission whose
    patient row is absent is returned without the join.
    """

    def __init__(
        self,
        *,
        patients: Sequence[PatientRecord] = (),
        admissions: Sequence[AdmissionRecord] = (),
        discharge_summaries: Sequence[DischargeSummary] = (),
    ) -> None:
        self._patients: dict[str, PatientRecord] = {patient.id: patient for patient in patients}
        self._admissions: dict[str, AdmissionRecord] = {
            admission.id: admission for admission in admissions
        }
        self._summaries: list[DischargeSummary] = list(discharge_summaries)

    @classmethod
    def from_fixtures(cls, fixtures: HospitalFixtures) -> "InMemoryHospitalRepository":
        return cls(
            patients=fixtures.patients,
            admissions=fixtures.admissions,
            discharge_summaries=fixtures.discharge_summaries,
        )

    @classmethod
    def from_path(cls, path: Path = DEFAULT_FIXTURE_PATH) -> "InMemoryHospitalRepository":
        return cls.from_fixtures(load_hospital_fixtures(path))

    async def list_discharged_admissions(self) -> list[AdmissionRecord]:
        results: list[AdmissionRecord] = []
        for admission in self._admissions.values():
            if admission.status != AdmissionStatus.DISCHARGED:
                continue
            patient = self._patients.get(admission.patient_id or "") or admission.patient
            results.append(admission.model_copy(update={"patient": patient}, deep=True))
        return results

    async def list_discharged_patients(self, limit: int) -> list[PatientRecord]:
        matching = [
            patient
            for patient in self._patients.values()
            if patient.ipd_status == DISCHARGED_IPD_STATUS
        ]
        matching.sort(key=_created_at_key, reverse=True)
        return [patient.model_copy(deep=True) for patient in matching[:limit]]

    async def get_discharge_summary(self, admission_id: str) -> DischargeSummary | None:
        for summary in self._summaries:
            if summary.admission_id == admission_id:
                return summary.model_copy(deep=True)
        return None

    async def list_discharge_history(self, patient_id: str) -> list[DischargeSummary]:
        history = [summary for summary in self._summaries if summary.patient_id == patient_id]
        history.sort(key=_created_at_key, reverse=True)
        return [summary.model_copy(deep=True) for summary in history]

    async def delete_discharge_summary(self, summary_id: str) -> None:
        remaining = [summary for summary in self._summaries if summary.id != summary_id]
        if len(remaining) == len(self._summaries):
            raise RecordNotFoundError("discharge_summaries", summary_id)
        self._summaries = remaining

    async def update_patient_ipd_status(self, patient_id: str, status: str | None) -> None:
        patient = self._patients.get(patient_id)
        if patient is None:
            raise RecordNotFoundError("patients", patient_id)
        self._patients[patient_id] = patient.model_copy(
            update={"ipd_status": status, "updated_at": datetime.now(UTC)}
        )

    async def update_admission_status(
        self, admission_id: str, status: AdmissionStatus
    ) -> None:
        admission = self._admissions.get(admission_id)
        if admission is None:
            raise RecordNotFoundError("patient_admissions", admission_id)
        self._admissions[admission_id] = admission.model_copy(
            update={"status": status, "updated_at": datetime.now(UTC)}
        )

    async def aclose(self) -> None:
        return None


__all__ = [
    "DEFAULT_FIXTURE_PATH",
    "FixtureLoadError",
    "HospitalFixtures",
    "HospitalRepository",
    "InMemoryHospitalRepository",
    "RecordNotFoundError",
    "RepositoryError",
    "load_hospital_fixtures",
]
