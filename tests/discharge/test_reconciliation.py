from __future__ import annotations

from datetime import UTC, datetime

import pytest

from discharge_builders import FIXED_NOW, FlakyHospitalRepository, admission, patient, summary
from repositories.hospital import DEFAULT_FIXTURE_PATH, InMemoryHospitalRepository
from services.discharge.reconciliation import (
    CANDIDATE_KEY_EXTRACTORS,
    DischargeReconciler,
    build_admission_view,
    candidate_keys,
    compute_admission_duration,
    deduplicate,
    format_duration,
)
from shared.models.hospital import DischargedPatientView


def _view(**fields) -> DischargedPatientView:
    return DischargedPatientView.model_validate(fields)


def _reconciler(repository) -> DischargeReconciler:
    return DischargeReconciler(repository, clock=lambda: FIXED_NOW)


@pytest.mark.parametrize(
    ("days", "expected"),
    [(0, "0 days"), (1, "1 day"), (2, "2 days"), (11, "11 days")],
)
def test_format_duration_pluralizes_everything_but_one(days: int, expected: str) -> None:
    assert format_duration(days) == expected


def test_compute_admission_duration_rounds_partial_days_up() -> None:
    start = datetime(2024, 1, 1, 9, 0, tzinfo=UTC)
    end = datetime(2024, 1, 2, 10, 0, tzinfo=UTC)

    assert compute_admission_duration(start, end, now=FIXED_NOW) == "2 days"
    assert compute_admission_duration(start, start, now=FIXED_NOW) == "0 days"
    assert compute_admission_duration(end, start, now=FIXED_NOW) == "2 days"


def test_compute_admission_duration_without_admission_date_is_blank() -> None:
    assert compute_admission_duration(None, FIXED_NOW, now=FIXED_NOW) == ""


def test_compute_admission_duration_falls_back_to_now() -> None:
    start = datetime(2024, 3, 19, 12, 0, tzinfo=UTC)

    assert compute_admission_duration(start, None, now=FIXED_NOW) == "1 day"


@pytest.mark.anyio("asyncio")
async def test_same_patient_from_both_sources_is_reported_once() -> None:
    asha = {"id": "p1", "patient_id": "PID1", "first_name": "Asha", "last_name": "Rao"}
    repository = InMemoryHospitalRepository(
        patients=[patient(**asha, ipd_status="DISCHARGED")],
        admissions=[
            admission(
                id="a1",
                patient=asha,
                admission_date="2024-01-01",
                updated_at="2024-01-06",
            )
        ],
    )

    result = await _reconciler(repository).reconcile()

    assert len(result.patients) == 1
    view = result.patients[0]
    assert view.id == "p1"
    assert view.admission_duration == "5 days"
    assert view.final_diagnosis == "Not specified"
    assert view.discharge_date == datetime(2024, 1, 6, tzinfo=UTC)


@pytest.mark.anyio("asyncio")
async def test_crossed_identifiers_count_as_already_represented() -> None:
    repository = FlakyHospitalRepository(
        patients=[
            patient(id="p1", patient_id="PID1", first_name="Asha", last_name="Rao"),
            # Imported row whose primary key is the other row's human readable id.
            patient(id="PID1", first_name="A", last_name="Rao", ipd_status="DISCHARGED"),
        ],
        admissions=[admission(id="a1", patient_id="p1", admission_date="2024-01-01")],
    )

    result = await _reconciler(repository).reconcile()

    assert [view.id for view in result.patients] == ["p1"]
    assert repository.called("list_discharge_history") == []


@pytest.mark.anyio("asyncio")
async def test_missing_patient_join_synthesizes_placeholder() -> None:
    repository = InMemoryHospitalRepository(
        admissions=[
            admission(
                id="a3",
                patient_id="p9",
                admission_date="2024-05-10T14:00:00Z",
                updated_at="2024-05-11T09:00:00Z",
            )
        ]
    )

    result = await _reconciler(repository).reconcile()

    view = result.patients[0]
    assert (view.id, view.patient_id) == ("p9", "p9")
    assert (view.first_name, view.last_name) == ("Unknown", "Patient")
    assert view.phone == ""
    assert view.gender == "UNKNOWN"
    assert view.admission_duration == "1 day"
    assert view.ipd_number == "N/A"


def test_summary_supplies_discharge_date_duration_bill_and_diagnosis() -> None:
    record = admission(
        id="a2",
        patient={"id": "p2", "patient_id": "PID2", "first_name": "Ravi", "total_spent": 20000},
        ipd_number="IPD-7",
        admission_date="2024-02-02T09:00:00+00:00",
        updated_at="2024-02-20T09:00:00+00:00",
    )
    discharge = summary(
        id="s2",
        admission_id="a2",
        discharge_date="2024-02-12T10:00:00+00:00",
        final_diagnosis="Pneumonia",
        bill={"total_amount": 45250},
    )

    view = build_admission_view(record, discharge, now=FIXED_NOW)

    assert view.discharge_date == datetime(2024, 2, 12, 10, 0, tzinfo=UTC)
    assert view.admission_duration == "11 days"
    assert view.total_bill_amount == 45250
    assert view.final_diagnosis == "Pneumonia"
    assert view.ipd_number == "IPD-7"
    assert view.discharge_summary == discharge


def test_zero_bill_total_falls_back_to_total_spent() -> None:
    record = admission(
        id="a2",
        patient={"id": "p2", "total_spent": 20000},
        admission_date="2024-02-02",
    )

    with_empty_bill = build_admission_view(
        record, summary(id="s2", bill={"total_amount": 0}), now=FIXED_NOW
    )
    without_summary = build_admission_view(record, None, now=FIXED_NOW)

    assert with_empty_bill.total_bill_amount == 20000
    assert without_summary.total_bill_amount == 20000


@pytest.mark.anyio("asyncio")
async def test_summary_fetch_failure_degrades_only_that_record() -> None:
    repository = FlakyHospitalRepository(
        failures={"get_discharge_summary"},
        patients=[
            patient(
                id="p2",
                first_name="Ravi",
                transactions=[{"amount": 12000}, {"amount": 8000}],
            )
        ],
        admissions=[
            admission(
                id="a2",
                patient_id="p2",
                admission_date="2024-02-02T00:00:00Z",
                updated_at="2024-02-04T00:00:00Z",
            )
        ],
        discharge_summaries=[summary(id="s2", admission_id="a2", final_diagnosis="Pneumonia")],
    )

    result = await _reconciler(repository).reconcile()

    view = result.patients[0]
    assert view.discharge_summary is None
    assert view.final_diagnosis == "Not specified"
    assert view.total_bill_amount == 20000
    assert view.admission_duration == "2 days"


@pytest.mark.anyio("asyncio")
async def test_patient_only_records_use_latest_history_entry() -> None:
    repository = InMemoryHospitalRepository(
        patients=[
            patient(
                id="p4",
                patient_id="PID4",
                first_name="Meera",
                ipd_status="DISCHARGED",
                updated_at="2024-03-16T00:00:00Z",
            )
        ],
        discharge_summaries=[
            summary(
                id="old",
                patient_id="p4",
                final_diagnosis="Old diagnosis",
                created_at="2023-01-01T00:00:00Z",
            ),
            summary(
                id="new",
                patient_id="p4",
                final_diagnosis="Acute gastroenteritis",
                created_at="2024-03-15T11:35:00Z",
            ),
        ],
    )

    result = await _reconciler(repository).reconcile()

    view = result.patients[0]
    assert view.admission_duration == "Unknown"
    assert view.final_diagnosis == "Acute gastroenteritis"
    assert view.discharge_summary is not None and view.discharge_summary.id == "new"
    assert view.discharge_date == datetime(2024, 3, 15, 11, 35, tzinfo=UTC)


@pytest.mark.anyio("asyncio")
async def test_history_failure_omits_summary_fields() -> None:
    repository = FlakyHospitalRepository(
        failures={"list_discharge_history"},
        patients=[
            patient(
                id="p4",
                ipd_status="DISCHARGED",
                created_at="2024-03-01T00:00:00Z",
                updated_at="2024-03-16T00:00:00Z",
            )
        ],
    )

    result = await _reconciler(repository).reconcile()

    view = result.patients[0]
    assert view.discharge_summary is None
    assert view.final_diagnosis == "Not specified"
    assert view.discharge_date == datetime(2024, 3, 16, tzinfo=UTC)


@pytest.mark.anyio("asyncio")
async def test_failing_source_is_treated_as_empty() -> None:
    repository = FlakyHospitalRepository(
        failures={"list_discharged_admissions"},
        patients=[patient(id="p4", first_name="Meera", ipd_status="DISCHARGED")],
        admissions=[admission(id="a1", patient_id="p1")],
    )

    result = await _reconciler(repository).reconcile()

    assert [view.id for view in result.patients] == ["p4"]


@pytest.mark.anyio("asyncio")
async def test_both_sources_failing_yields_empty_list() -> None:
    repository = FlakyHospitalRepository(
        failures={"list_discharged_admissions", "list_discharged_patients"},
    )

    result = await _reconciler(repository).reconcile()

    assert result.patients == []
    assert result.message == "Loaded 0 discharged patients (0 duplicates removed)"


@pytest.mark.anyio("asyncio")
async def test_patient_scan_limit_is_passed_to_repository() -> None:
    repository = FlakyHospitalRepository()

    await DischargeReconciler(repository, patient_scan_limit=25).reconcile()

    assert repository.called("list_discharged_patients") == [(25,)]


@pytest.mark.anyio("asyncio")
async def test_bundled_fixtures_reconcile_with_name_phone_duplicate_removed() -> None:
    repository = InMemoryHospitalRepository.from_path(DEFAULT_FIXTURE_PATH)

    result = await _reconciler(repository).reconcile()

    assert [view.id for view in result.patients] == ["p1", "p2", "p9", "p4"]
    assert result.duplicates_removed == 1
    assert result.message == "Loaded 4 discharged patients (1 duplicates removed)"
    by_id = {view.id: view for view in result.patients}
    assert by_id["p1"].admission_duration == "5 days"
    assert by_id["p2"].total_bill_amount == 45250
    assert by_id["p4"].total_bill_amount == 27500
    assert by_id["p9"].first_name == "Unknown"


def test_candidate_keys_are_ordered_and_skip_blanks() -> None:
    view = _view(id="p1", patient_id="PID1", first_name="Asha", last_name="Rao", phone="98")
    nameless = _view(id="p2")

    assert candidate_keys(view) == ["p1", "PID1", "asha-rao-98"]
    assert candidate_keys(nameless) == ["p2"]


def test_deduplicate_rejects_records_matching_any_claimed_key() -> None:
    first = _view(id="X", patient_id="B")
    # Shares only the human readable id with ``first``.
    second = _view(id="A2", patient_id="B")
    third = _view(id="C", patient_id="D")

    kept = deduplicate([first, second, third])

    assert [view.id for view in kept] == ["X", "C"]


def test_deduplicate_claims_keys_across_id_fields() -> None:
    first = _view(id="p1", patient_id="PID1")
    crossed = _view(id="PID1", patient_id="other")

    assert [view.id for view in deduplicate([first, crossed])] == ["p1"]


def test_deduplicate_matches_on_name_and_phone_case_insensitively() -> None:
    first = _view(id="p4", first_name="Meera", last_name="Iyer", phone="99")
    second = _view(id="p5", first_name="MEERA", last_name="iyer", phone="99")

    assert deduplicate([first, second]) == [first]


def test_deduplicate_is_idempotent() -> None:
    views = [
        _view(id="p1", patient_id="PID1", first_name="Asha", last_name="Rao"),
        _view(id="PID1", first_name="Asha"),
        _view(id="p2", first_name="Asha", last_name="Rao"),
        _view(id="p3", patient_id="PID3"),
    ]

    once = deduplicate(views)

    assert deduplicate(once) == once


def test_deduplicate_drops_records_without_candidate_keys() -> None:
    views = [_view(id="p1"), _view(id="p2")]
    extractors = (lambda view: None if view.id == "p2" else view.id,)

    assert [view.id for view in deduplicate(views, extractors)] == ["p1"]
    assert len(CANDIDATE_KEY_EXTRACTORS) == 3
