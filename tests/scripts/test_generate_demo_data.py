from __future__ import annotations

import json
from datetime import date
from pathlib import Path

import pytest

from repositories.hospital import InMemoryHospitalRepository, load_hospital_fixtures
from scripts import generate_demo_data
from services.discharge.reconciliation import DischargeReconciler


def test_dataset_is_deterministic_for_a_seed() -> None:
    first = generate_demo_data.generate_demo_dataset(seed=7, today=date(2024, 3, 20))
    second = generate_demo_data.generate_demo_dataset(seed=7, today=date(2024, 3, 20))

    assert first == second


def test_dataset_contains_duplicates_and_orphans() -> None:
    dataset = generate_demo_data.generate_demo_dataset(
        patient_count=10, seed=3, today=date(2024, 3, 20)
    )

    patient_ids = {row["id"] for row in dataset["patients"]}
    assert len(dataset["patients"]) == 13
    assert sum(row["id"].startswith("import-") for row in dataset["patients"]) == 3
    orphans = [row for row in dataset["admissions"] if row["patient_id"] not in patient_ids]
    assert [row["patient_id"] for row in orphans] == ["missing-1", "missing-2"]
    admission_ids = {row["id"] for row in dataset["admissions"]}
    assert all(row["admission_id"] in admission_ids for row in dataset["discharge_summaries"])


@pytest.mark.anyio("asyncio")
async def test_generated_file_loads_and_reconciles(tmp_path: Path) -> None:
    output = tmp_path / "demo" / "hospital.json"

    assert generate_demo_data.main(["--output", str(output), "--patients", "12", "--seed", "5"]) == 0

    fixtures = load_hospital_fixtures(output)
    result = await DischargeReconciler(InMemoryHospitalRepository.from_fixtures(fixtures)).reconcile()

    ids = [view.id for view in result.patients]
    assert len(ids) == len(set(ids))
    assert not any(view_id.startswith("import-") for view_id in ids)
    assert {"missing-1", "missing-2"} & set(ids)
    assert result.duplicates_removed >= 3


def test_main_prints_counts(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    output = tmp_path / "hospital.json"

    generate_demo_data.main(["--output", str(output), "--patients", "4", "--seed", "1"])

    captured = capsys.readouterr()
    payload = json.loads(output.read_text(encoding="utf-8"))
    assert f"Wrote {len(payload['patients'])} patients" in captured.out


def test_main_rejects_non_positive_patient_count(tmp_path: Path) -> None:
    with pytest.raises(SystemExit):
        generate_demo_data.main(["--output", str(tmp_path / "x.json"), "--patients", "0"])
