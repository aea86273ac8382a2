"""Generate a deterministic hospital fixtures file with Faker.

The dataset mirrors what the discharge board sees in production: discharged
admissions with and without summaries, patients that are only flagged as
discharged, admissions whose patient row is missing, and re-imported patient
rows that duplicate an existing person under new identifiers.
"""

from __future__ import annotations

import argparse
import json
import random
from datetime import UTC, date, datetime, time, timedelta
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from faker import Faker

from shared.models.hospital import AdmissionStatus

DIAGNOSES = (
    "Community acquired pneumonia",
    "Acute gastroenteritis",
    "Dengue fever",
    "Type 2 diabetes mellitus, uncontrolled",
    "Acute appendicitis, post appendicectomy",
    "Urinary tract infection",
    "Hypertensive urgency",
    "Lower respiratory tract infection",
)

CONSULTANTS = (
    "Dr. Kavita Menon",
    "Dr. Arjun Pillai",
    "Dr. Neha Kulkarni",
    "Dr. Rohan Desai",
)

BLOOD_GROUPS = ("A+", "A-", "B+", "B-", "O+", "O-", "AB+", "AB-")


def _iso(value: datetime) -> str:
    return value.astimezone(UTC).isoformat()


def _patient_row(faker: Faker, rng: random.Random, index: int, created: datetime) -> Dict[str, Any]:
    gender = rng.choice(("MALE", "FEMALE"))
    first_name = faker.first_name_male() if gender == "MALE" else faker.first_name_female()
    visits = rng.randint(0, 4)
    transactions = [
        {
            "amount": rng.choice((500, 1200, 3500, 8000, 15000)),
            "created_at": _iso(created + timedelta(days=rng.randint(0, 10), hours=rng.randint(0, 23))),
        }
        for _ in range(visits)
    ]
    return {
        "id": f"pt-{index:04d}",
        "patient_id": f"P{index:04d}",
        "first_name": first_name,
        "last_name": faker.last_name(),
        "phone": faker.numerify("9#########"),
        "email": faker.free_email(),
        "gender": gender,
        "blood_group": rng.choice(BLOOD_GROUPS),
        "ipd_status": "DISCHARGED",
        "ipd_number": f"IPD-{created.year}-{index:04d}",
        "created_at": _iso(created),
        "updated_at": _iso(created),
        "transactions": transactions,
    }


def generate_demo_dataset(
    *,
    patient_count: int = 20,
    seed: Optional[int] = None,
    today: Optional[date] = None,
) -> Dict[str, List[Dict[str, Any]]]:
    """Return patients, admissions and discharge summaries as fixture rows."""

    faker = Faker("en_IN")
    if seed is not None:
        faker.seed_instance(seed)
    rng = random.Random(seed)
    anchor = datetime.combine(today or date.today(), time(9, 0), tzinfo=UTC)

    patients: List[Dict[str, Any]] = []
    admissions: List[Dict[str, Any]] = []
    summaries: List[Dict[str, Any]] = []

    for index in range(1, patient_count + 1):
        admitted = anchor - timedelta(days=rng.randint(3, 60), hours=rng.randint(0, 12))
        discharged = admitted + timedelta(days=rng.randint(1, 12), hours=rng.randint(0, 8))
        patient = _patient_row(faker, rng, index, admitted - timedelta(days=1))
        patient["updated_at"] = _iso(discharged)
        patients.append(patient)

        # Roughly one in four discharged patients has no admission row.
        if rng.random() < 0.25:
            continue

        admission_id = f"adm-{index:04d}"
        admissions.append(
            {
                "id": admission_id,
                "patient_id": patient["id"],
                "bed_id": f"B-{rng.randint(100, 420)}",
                "ipd_number": patient["ipd_number"],
                "admission_date": _iso(admitted),
                "status": AdmissionStatus.DISCHARGED.value,
                "created_at": _iso(admitted),
                "updated_at": _iso(discharged),
            }
        )
        if rng.random() < 0.7:
            summaries.append(
                {
                    "id": f"ds-{index:04d}",
                    "admission_id": admission_id,
                    "patient_id": patient["id"],
                    "discharge_date": _iso(discharged),
                    "final_diagnosis": rng.choice(DIAGNOSES),
                    "primary_consultant": rng.choice(CONSULTANTS),
                    "course_of_stay": faker.sentence(nb_words=12),
                    "ipd_number": patient["ipd_number"],
                    "created_at": _iso(discharged),
                    "bill": {"total_amount": rng.randrange(5_000, 250_000, 250)},
                }
            )

    # Re-imported rows: same person, new primary key and human readable id.
    for copy_index, original in enumerate(rng.sample(patients, k=min(3, len(patients))), start=1):
        duplicate = dict(original)
        duplicate["id"] = f"import-{copy_index:04d}"
        duplicate["patient_id"] = f"IMP{copy_index:04d}"
        duplicate["transactions"] = []
        patients.append(duplicate)

    # Admissions whose patient row no longer exists.
    for orphan_index in range(1, 3):
        admitted = anchor - timedelta(days=rng.randint(5, 30))
        admissions.append(
            {
                "id": f"adm-orphan-{orphan_index}",
                "patient_id": f"missing-{orphan_index}",
                "bed_id": f"B-{rng.randint(100, 420)}",
                "admission_date": _iso(admitted),
                "status": AdmissionStatus.DISCHARGED.value,
                "created_at": _iso(admitted),
                "updated_at": _iso(admitted + timedelta(days=rng.randint(1, 6))),
            }
        )

    return {
        "patients": patients,
        "admissions": admissions,
        "discharge_summaries": summaries,
    }


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Write a Faker-generated hospital fixtures file for the discharge service."
    )
    parser.add_argument(
        "--output",
        type=Path,
        required=True,
        help="Destination JSON file.",
    )
    parser.add_argument(
        "--patients",
        type=int,
        default=20,
        help="Number of distinct discharged patients to generate (default: 20).",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Optional random seed that makes Faker output deterministic.",
    )
    return parser


def main(argv: Iterable[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(None if argv is None else list(argv))
    if args.patients < 1:
        parser.error("--patients must be at least 1")

    dataset = generate_demo_dataset(patient_count=args.patients, seed=args.seed)
    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_text(json.dumps(dataset, indent=2), encoding="utf-8")
    print(
        f"Wrote {len(dataset['patients'])} patients, {len(dataset['admissions'])} admissions "
        f"and {len(dataset['discharge_summaries'])} discharge summaries to {args.output}"
    )
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
