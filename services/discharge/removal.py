"""Un-discharge a patient: drop the summary, clear the IPD flag, restore the stay."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from repositories.hospital import HospitalRepository, RepositoryError
from shared.http.errors import DischargeRecordNotFoundError, DischargeRemovalError
from shared.models.hospital import AdmissionStatus, DischargedPatientView
from shared.observability.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RemovalResult:
    patient: DischargedPatientView
    remaining: list[DischargedPatientView]
    admission_restored: bool

    @property
    def message(self) -> str:
        return (
            f"Discharge record for {self.patient.first_name} {self.patient.last_name} "
            "has been removed. Patient data remains in the system."
        )


async def _restore_admission(repository: HospitalRepository, patient_id: str) -> bool:
    """Set the patient's discharged admission back to ADMITTED; never raises."""

    try:
        admissions = await repository.list_discharged_admissions()
        match = next(
            (
                admission
                for admission in admissions
                if admission.patient_id == patient_id
                or (admission.patient is not None and admission.patient.id == patient_id)
            ),
            None,
        )
        if match is None:
            logger.info("admission_status_restore_skipped", patient_id=patient_id)
            return False
        await repository.update_admission_status(match.id, AdmissionStatus.ADMITTED)
    except RepositoryError as exc:
        logger.warning(
            "admission_status_restore_failed", patient_id=patient_id, error=str(exc)
        )
        return False
    return True


async def remove_discharge_record(
    repository: HospitalRepository,
    patients: Sequence[DischargedPatientView],
    patient_id: str,
) -> RemovalResult:
    """Remove ``patient_id`` from the discharged list and from the backend.

    Failure to delete the summary or to clear the patient's ``ipd_status``
    raises :class:`DischargeRemovalError`; restoring the admission is best
    effort.
    """

    target = next((patient for patient in patients if patient.id == patient_id), None)
    if target is None:
        raise DischargeRecordNotFoundError(patient_id)

    summary = target.discharge_summary
    if summary is not None and summary.id:
        try:
            await repository.delete_discharge_summary(summary.id)
        except RepositoryError as exc:
            logger.error(
                "discharge_summary_delete_failed",
                patient_id=patient_id,
                summary_id=summary.id,
                error=str(exc),
            )
            raise DischargeRemovalError(
                patient_id, step="delete the discharge summary", reason=str(exc)
            ) from exc

    try:
        await repository.update_patient_ipd_status(target.id, None)
    except RepositoryError as exc:
        logger.error("patient_ipd_status_reset_failed", patient_id=patient_id, error=str(exc))
        raise DischargeRemovalError(
            patient_id, step="reset the patient IPD status", reason=str(exc)
        ) from exc

    restored = await _restore_admission(repository, target.id)
    remaining = [patient for patient in patients if patient is not target]
    logger.info("discharge_record_removed", patient_id=patient_id, admission_restored=restored)
    return RemovalResult(patient=target, remaining=remaining, admission_restored=restored)


__all__ = ["RemovalResult", "remove_discharge_record"]
