"""CSV export of the discharged-patient view."""

from __future__ import annotations

from datetime import date, datetime
from pathlib import Path
from typing import Sequence

import pandas as pd

from shared.models.hospital import DischargedPatientView

EXPORT_COLUMNS = [
    "Patient ID",
    "First Name",
    "Last Name",
    "Phone",
    "Gender",
    "Discharge Date",
    "Admission Duration",
    "Final Diagnosis",
    "Total Bill Amount",
    "Total Spent",
    "Visit Count",
]

RUPEE = "₹"


def _group_indian(digits: str) -> str:
    """Group an unsigned digit string as lakh/crore (``1,23,45,678``)."""

    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    pairs = []
    while len(head) > 2:
        pairs.insert(0, head[-2:])
        head = head[:-2]
    if head:
        pairs.insert(0, head)
    return ",".join(pairs + [tail])


def format_rupees(amount: float | None) -> str:
    """Render ``amount`` with the rupee sign and Indian digit grouping."""

    value = float(amount or 0)
    sign = "-" if value < 0 else ""
    rounded = round(abs(value), 2)
    whole, _, fraction = f"{rounded:.2f}".partition(".")
    grouped = _group_indian(whole)
    if fraction.strip("0"):
        return f"{sign}{RUPEE}{grouped}.{fraction}"
    return f"{sign}{RUPEE}{grouped}"


def format_discharge_date(value: datetime | None) -> str:
    return value.strftime("%d/%m/%Y") if value else ""


def export_filename(today: date | None = None) -> str:
    stamp = (today or date.today()).isoformat()
    return f"Discharged_Patients_{stamp}.csv"


def build_export_frame(patients: Sequence[DischargedPatientView]) -> pd.DataFrame:
    """Return one row per patient in the fixed export column order."""

    rows = [
        {
            "Patient ID": patient.patient_id or "",
            "First Name": patient.first_name,
            "Last Name": patient.last_name,
            "Phone": patient.phone,
            "Gender": patient.gender or "",
            "Discharge Date": format_discharge_date(patient.discharge_date),
            "Admission Duration": patient.admission_duration,
            "Final Diagnosis": patient.final_diagnosis,
            "Total Bill Amount": format_rupees(patient.total_bill_amount),
            "Total Spent": format_rupees(patient.total_spent),
            "Visit Count": patient.visit_count,
        }
        for patient in patients
    ]
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def render_export_csv(patients: Sequence[DischargedPatientView]) -> str:
    return build_export_frame(patients).to_csv(index=False)


def write_export(
    patients: Sequence[DischargedPatientView],
    directory: Path,
    *,
    today: date | None = None,
) -> Path:
    """Write the export CSV into ``directory`` and return its path."""

    directory.mkdir(parents=True, exist_ok=True)
    path = directory / export_filename(today)
    # BOM so spreadsheet tools decode the rupee sign.
    build_export_frame(patients).to_csv(path, index=False, encoding="utf-8-sig")
    return path


__all__ = [
    "EXPORT_COLUMNS",
    "build_export_frame",
    "export_filename",
    "format_discharge_date",
    "format_rupees",
    "render_export_csv",
    "write_export",
]
