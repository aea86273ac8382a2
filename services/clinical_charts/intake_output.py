"""Intake/output chart rows and the fluid balance totals computed from them."""

from __future__ import annotations

import math
import re
from datetime import datetime
from typing import Annotated, Any, Iterable

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel

INTAKE_FIELDS = ("oral_amount", "iv01", "iv02")
OUTPUT_FIELDS = ("rt_aspiration", "urine", "vomit", "stool", "drain1", "drain2")

_LEADING_FLOAT = re.compile(r"^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)")


def _as_text(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


ChartValue = Annotated[str, BeforeValidator(_as_text)]


def parse_amount(value: str | None) -> float:
    """Parse the leading number of ``value`` (``"100ml"`` gives 100); else 0."""

    match = _LEADING_FLOAT.match(value or "")
    if match is None:
        return 0.0
    amount = float(match.group(1))
    return amount if math.isfinite(amount) else 0.0


class _ChartModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class IntakeOutputEntry(_ChartModel):
    """One timed row of the intake/output chart."""

    id: str | None = None
    date: ChartValue = ""
    time: ChartValue = ""
    oral_feeding: ChartValue = ""
    oral_amount: ChartValue = ""
    iv01: ChartValue = ""
    iv02: ChartValue = ""
    rt_aspiration: ChartValue = ""
    urine: ChartValue = ""
    vomit: ChartValue = ""
    stool: ChartValue = ""
    drain1: ChartValue = ""
    drain2: ChartValue = ""


class IntakeOutputTotals(_ChartModel):
    total_intake: float = 0.0
    total_output: float = 0.0
    balance: float = 0.0


def calculate_totals(entries: Iterable[IntakeOutputEntry]) -> IntakeOutputTotals:
    """Sum the intake and output groups across ``entries``."""

    total_intake = 0.0
    total_output = 0.0
    for entry in entries:
        total_intake += sum(parse_amount(getattr(entry, name)) for name in INTAKE_FIELDS)
        total_output += sum(parse_amount(getattr(entry, name)) for name in OUTPUT_FIELDS)
    return IntakeOutputTotals(
        total_intake=total_intake,
        total_output=total_output,
        balance=total_intake - total_output,
    )


class IntakeOutputTotalsRequest(_ChartModel):
    entries: list[IntakeOutputEntry] = Field(default_factory=list)


class IntakeOutputRecord(_ChartModel):
    """A submitted chart for one patient bed."""

    patient_id: str = Field(min_length=1)
    bed_number: ChartValue = ""
    ipd_number: str | None = None
    entries: list[IntakeOutputEntry] = Field(
        min_length=1, description="At least one intake/output entry must remain"
    )
    previous_day_balance: ChartValue = ""
    remarks: ChartValue = ""


class IntakeOutputSummary(_ChartModel):
    patient_id: str
    bed_number: str
    ipd_number: str | None = None
    entry_count: int
    totals: IntakeOutputTotals
    previous_day_balance: str = ""
    remarks: str = ""
    submitted_at: datetime


def summarize_record(record: IntakeOutputRecord, *, submitted_at: datetime) -> IntakeOutputSummary:
    return IntakeOutputSummary(
        patient_id=record.patient_id,
        bed_number=record.bed_number,
        ipd_number=record.ipd_number,
        entry_count=len(record.entries),
        totals=calculate_totals(record.entries),
        previous_day_balance=record.previous_day_balance,
        remarks=record.remarks,
        submitted_at=submitted_at,
    )


__all__ = [
    "INTAKE_FIELDS",
    "OUTPUT_FIELDS",
    "IntakeOutputEntry",
    "IntakeOutputRecord",
    "IntakeOutputSummary",
    "IntakeOutputTotals",
    "IntakeOutputTotalsRequest",
    "calculate_totals",
    "parse_amount",
    "summarize_record",
]
