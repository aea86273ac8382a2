"""Hospital records exchanged between the repositories and the services."""

from __future__ import annotations

from datetime import UTC, date, datetime
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator


def _parse_timestamp(value: Any) -> Any:
    """Return an aware UTC datetime; naive values are interpreted as UTC."""

    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    elif isinstance(value, date) and not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)
    return value


def _coerce_identifier(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(int(value))
    if isinstance(value, str):
        return value.strip() or None
    return value


def _blank_if_none(value: Any) -> Any:
    return "" if value is None else value


def _zero_if_none(value: Any) -> Any:
    return 0 if value is None else value


Timestamp = Annotated[datetime | None, BeforeValidator(_parse_timestamp)]
Identifier = Annotated[str, BeforeValidator(_coerce_identifier)]
OptionalIdentifier = Annotated[str | None, BeforeValidator(_coerce_identifier)]
Text = Annotated[str, BeforeValidator(_blank_if_none)]
Amount = Annotated[float, BeforeValidator(_zero_if_none)]


class AdmissionStatus(str, Enum):
    """Values of the ``patient_admissions.status`` column."""

    ADMITTED = "ADMITTED"
    DISCHARGED = "DISCHARGED"
    # Legacy values still present in older rows.
    ACTIVE = "ACTIVE"
    TRANSFERRED = "TRANSFERRED"


DISCHARGED_IPD_STATUS = "DISCHARGED"


class PatientRecord(BaseModel):
    """Canonical patient row, optionally enriched with transaction totals."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Identifier = Field(description="Primary key of the patient row")
    patient_id: OptionalIdentifier = Field(
        default=None, description="Human readable identifier, e.g. P0001"
    )
    first_name: Text = ""
    last_name: Text = ""
    phone: Text = ""
    email: str | None = None
    gender: str | None = None
    blood_group: str | None = None
    ipd_status: str | None = None
    ipd_number: OptionalIdentifier = None
    created_at: Timestamp = None
    updated_at: Timestamp = None
    total_spent: Amount = 0.0
    visit_count: int = 0
    last_visit: Timestamp = None

    @model_validator(mode="before")
    @classmethod
    def _summarize_transactions(cls, data: Any) -> Any:
        """Derive spend totals from an embedded ``transactions`` list."""

        if not isinstance(data, dict):
            return data
        transactions = data.get("transactions")
        if not isinstance(transactions, list):
            return data

        enriched = dict(data)
        enriched.pop("transactions")
        total = 0.0
        latest: datetime | None = None
        for transaction in transactions:
            if not isinstance(transaction, dict):
                continue
            total += float(transaction.get("amount") or 0)
            stamp = _parse_timestamp(transaction.get("created_at"))
            if isinstance(stamp, datetime) and (latest is None or stamp > latest):
                latest = stamp
        enriched.setdefault("total_spent", total)
        enriched.setdefault("visit_count", len(transactions))
        enriched.setdefault("last_visit", latest)
        return enriched

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class AdmissionRecord(BaseModel):
    """One hospital stay, optionally carrying the joined patient row."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Identifier
    patient_id: OptionalIdentifier = None
    patient: PatientRecord | None = None
    bed_id: OptionalIdentifier = None
    ipd_number: OptionalIdentifier = None
    admission_date: Timestamp = None
    status: AdmissionStatus | None = None
    created_at: Timestamp = None
    updated_at: Timestamp = None


class DischargeBill(BaseModel):
    model_config = ConfigDict(extra="ignore")

    total_amount: Amount = 0.0


class DischargeSummary(BaseModel):
    """Clinical closing note for an admission."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: OptionalIdentifier = None
    admission_id: OptionalIdentifier = None
    patient_id: OptionalIdentifier = None
    discharge_date: Timestamp = None
    final_diagnosis: str | None = None
    primary_consultant: str | None = None
    chief_complaints: str | None = None
    hopi: str | None = None
    past_history: str | None = None
    investigations: str | None = None
    course_of_stay: str | None = None
    treatment_during_hospitalization: str | None = None
    discharge_medication: str | None = None
    follow_up_on: str | None = None
    discharge_notes: str | None = None
    ipd_number: OptionalIdentifier = None
    created_at: Timestamp = None
    bill: DischargeBill | None = None

    @property
    def bill_total(self) -> float:
        return self.bill.total_amount if self.bill else 0.0


class DischargedPatientView(PatientRecord):
    """Display entity produced by discharge reconciliation. Never persisted."""

    discharge_date: Timestamp = None
    discharge_summary: DischargeSummary | None = None
    admission_duration: str = ""
    final_diagnosis: str = "Not specified"
    total_bill_amount: Amount = 0.0


__all__ = [
    "AdmissionRecord",
    "AdmissionStatus",
    "DISCHARGED_IPD_STATUS",
    "DischargeBill",
    "DischargeSummary",
    "DischargedPatientView",
    "PatientRecord",
]
