"""Domain models shared across hospital services."""

from .hospital import (
    DISCHARGED_IPD_STATUS,
    AdmissionRecord,
    AdmissionStatus,
    DischargeBill,
    DischargedPatientView,
    DischargeSummary,
    PatientRecord,
)

__all__ = [
    "AdmissionRecord",
    "AdmissionStatus",
    "DISCHARGED_IPD_STATUS",
    "DischargeBill",
    "DischargeSummary",
    "DischargedPatientView",
    "PatientRecord",
]
