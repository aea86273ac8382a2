"""Merge discharged admissions and discharged patients into one deduplicated list.

Admissions (with an optional patient join) and patients flagged as
discharged are fetched independently and may describe the same person.
Each candidate is enriched with its discharge summary, the two sources are
merged, and a final pass keeps a record only when none of its identity keys
has already been claimed by an earlier record.
"""

from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Callable, Iterable, Sequence

from repositories.hospital import HospitalRepository, RepositoryError
from shared.models.hospital import (
    AdmissionRecord,
    DischargedPatientView,
    DischargeSummary,
    PatientRecord,
)
from shared.observability.logger import get_logger

logger = get_logger(__name__)

DEFAULT_FINAL_DIAGNOSIS = "Not specified"
UNKNOWN_DURATION = "Unknown"
MISSING_IPD_NUMBER = "N/A"

_SECONDS_PER_DAY = 86_400

Clock = Callable[[], datetime]
KeyExtractor = Callable[[DischargedPatientView], str | None]


def utcnow() -> datetime:
    return datetime.now(UTC)


def format_duration(days: int) -> str:
    """Render a whole number of days, singular only for exactly one."""

    return "1 day" if days == 1 else f"{days} days"


def compute_admission_duration(
    admission_date: datetime | None,
    end: datetime | None,
    *,
    now: datetime,
) -> str:
    """Return the whole-day ceiling between admission and ``end`` (or ``now``)."""

    if admission_date is None:
        return ""
    finish = end or now
    seconds = abs((finish - admission_date).total_seconds())
    return format_duration(math.ceil(seconds / _SECONDS_PER_DAY))


def placeholder_patient(admission: AdmissionRecord) -> PatientRecord:
    """Synthesize a patient identity for an admission whose join is missing."""

    foreign_key = admission.patient_id or f"unknown-{admission.id}"
    return PatientRecord(
        id=foreign_key,
        patient_id=foreign_key,
        first_name="Unknown",
        last_name="Patient",
        phone="",
        gender="UNKNOWN",
    )


def _bill_amount(summary: DischargeSummary | None, patient: PatientRecord) -> float:
    if summary is not None and summary.bill_total:
        return summary.bill_total
    return patient.total_spent or 0.0


def _make_view(patient: PatientRecord, **fields: object) -> DischargedPatientView:
    return DischargedPatientView.model_validate({**patient.model_dump(), **fields})


def build_admission_view(
    admission: AdmissionRecord,
    summary: DischargeSummary | None,
    *,
    now: datetime,
) -> DischargedPatientView:
    """Build the view for one discharged admission."""

    patient = admission.patient or placeholder_patient(admission)
    summary_discharge = summary.discharge_date if summary is not None else None
    end = summary_discharge or admission.updated_at

    return _make_view(
        patient,
        discharge_date=summary_discharge or admission.updated_at or admission.created_at,
        discharge_summary=summary,
        admission_duration=compute_admission_duration(admission.admission_date, end, now=now),
        final_diagnosis=(summary.final_diagnosis if summary else None) or DEFAULT_FINAL_DIAGNOSIS,
        total_bill_amount=_bill_amount(summary, patient),
        ipd_number=admission.ipd_number or patient.ipd_number or MISSING_IPD_NUMBER,
    )


def build_patient_view(
    patient: PatientRecord, latest: DischargeSummary | None
) -> DischargedPatientView:
    """Build the view for a discharged patient found without an admission."""

    discharge_date = patient.updated_at or patient.created_at
    if latest is not None:
        discharge_date = latest.discharge_date or latest.created_at or discharge_date

    return _make_view(
        patient,
        discharge_date=discharge_date,
        discharge_summary=latest,
        admission_duration=UNKNOWN_DURATION,
        final_diagnosis=(latest.final_diagnosis if latest else None) or DEFAULT_FINAL_DIAGNOSIS,
        total_bill_amount=_bill_amount(latest, patient),
        ipd_number=patient.ipd_number
        or (latest.ipd_number if latest else None)
        or MISSING_IPD_NUMBER,
    )


def _id_key(view: DischargedPatientView) -> str | None:
    return view.id or None


def _patient_id_key(view: DischargedPatientView) -> str | None:
    return view.patient_id or None


def _name_phone_key(view: DischargedPatientView) -> str | None:
    parts = (view.first_name.strip(), view.last_name.strip(), view.phone.strip())
    if not any(parts):
        return None
    return "-".join(parts).lower()


CANDIDATE_KEY_EXTRACTORS: tuple[KeyExtractor, ...] = (
    _id_key,
    _patient_id_key,
    _name_phone_key,
)


def candidate_keys(
    view: DischargedPatientView,
    extractors: Sequence[KeyExtractor] = CANDIDATE_KEY_EXTRACTORS,
) -> list[str]:
    """Return the ordered, non-empty identity keys for ``view``."""

    keys: list[str] = []
    for extract in extractors:
        key = extract(view)
        if key and key not in keys:
            keys.append(key)
    return keys


def deduplicate(
    views: Iterable[DischargedPatientView],
    extractors: Sequence[KeyExtractor] = CANDIDATE_KEY_EXTRACTORS,
) -> list[DischargedPatientView]:
    """Keep each record whose keys are all unclaimed; kept records claim every key."""

    claimed: set[str] = set()
    kept: list[DischargedPatientView] = []
    for view in views:
        keys = candidate_keys(view, extractors)
        if not keys or any(key in claimed for key in keys):
            continue
        claimed.update(keys)
        kept.append(view)
    return kept


@dataclass(frozen=True)
class ReconciliationResult:
    patients: list[DischargedPatientView]
    duplicates_removed: int

    @property
    def message(self) -> str:
        return (
            f"Loaded {len(self.patients)} discharged patients "
            f"({self.duplicates_removed} duplicates removed)"
        )


class DischargeReconciler:
    """Produce the discharged-patient list from a :class:`HospitalRepository`."""

    def __init__(
        self,
        repository: HospitalRepository,
        *,
        patient_scan_limit: int = 50_000,
        clock: Clock = utcnow,
    ) -> None:
        self._repository = repository
        self._patient_scan_limit = patient_scan_limit
        self._clock = clock

    async def _load_admissions(self) -> list[AdmissionRecord]:
        try:
            return await self._repository.list_discharged_admissions()
        except RepositoryError as exc:
            logger.warning("discharge_source_failed", source="admissions", error=str(exc))
            return []

    async def _load_patients(self) -> list[PatientRecord]:
        try:
            return await self._repository.list_discharged_patients(self._patient_scan_limit)
        except RepositoryError as exc:
            logger.warning("discharge_source_failed", source="patients", error=str(exc))
            return []

    async def _admission_view(
        self, admission: AdmissionRecord, now: datetime
    ) -> DischargedPatientView:
        summary: DischargeSummary | None = None
        try:
            summary = await self._repository.get_discharge_summary(admission.id)
        except RepositoryError as exc:
            logger.warning(
                "discharge_summary_fetch_failed",
                admission_id=admission.id,
                error=str(exc),
            )
        return build_admission_view(admission, summary, now=now)

    async def _patient_view(self, patient: PatientRecord) -> DischargedPatientView:
        latest: DischargeSummary | None = None
        try:
            history = await self._repository.list_discharge_history(patient.id)
            latest = history[0] if history else None
        except RepositoryError as exc:
            logger.warning(
                "discharge_history_fetch_failed",
                patient_id=patient.id,
                error=str(exc),
            )
        return build_patient_view(patient, latest)

    async def reconcile(self) -> ReconciliationResult:
        now = self._clock()
        admissions = await self._load_admissions()
        admission_views = list(
            await asyncio.gather(
                *(self._admission_view(admission, now) for admission in admissions)
            )
        )

        # Either identifier of a represented record matches either identifier
        # of a later candidate.
        seen: set[str] = set()
        for view in admission_views:
            seen.update(key for key in (view.id, view.patient_id) if key)

        pending: list[PatientRecord] = []
        for patient in await self._load_patients():
            identifiers = [key for key in (patient.id, patient.patient_id) if key]
            if any(key in seen for key in identifiers):
                continue
            seen.update(identifiers)
            pending.append(patient)

        patient_views = list(
            await asyncio.gather(*(self._patient_view(patient) for patient in pending))
        )

        accumulated = admission_views + patient_views
        unique = deduplicate(accumulated)
        result = ReconciliationResult(
            patients=unique,
            duplicates_removed=len(accumulated) - len(unique),
        )
        logger.info(
            "discharge_reconciled",
            admissions=len(admissions),
            patients=len(pending),
            kept=len(unique),
            duplicates_removed=result.duplicates_removed,
        )
        return result


__all__ = [
    "CANDIDATE_KEY_EXTRACTORS",
    "DEFAULT_FINAL_DIAGNOSIS",
    "DischargeReconciler",
    "KeyExtractor",
    "ReconciliationResult",
    "UNKNOWN_DURATION",
    "build_admission_view",
    "build_patient_view",
    "candidate_keys",
    "compute_admission_duration",
    "deduplicate",
    "format_duration",
    "placeholder_patient",
    "utcnow",
]
