"""Reconcile discharged patients and write the CSV export from the command line."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Iterable

from repositories import (
    FixtureLoadError,
    HospitalRepository,
    InMemoryHospitalRepository,
    RepositoryError,
    build_hospital_repository,
)
from services.discharge.board import DischargeBoard
from services.discharge.listing import DateFilter, SortColumn, SortOrder, SortState
from shared.config.settings import get_settings
from shared.observability.logger import configure_logging


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=(
            "Reconcile discharged admissions and patients, then export the "
            "filtered list as a CSV spreadsheet."
        )
    )
    parser.add_argument(
        "--fixtures",
        type=Path,
        default=None,
        help="Read from a fixtures JSON file instead of the configured backend.",
    )
    parser.add_argument(
        "--output-dir",
        dest="output_dir",
        type=Path,
        default=None,
        help="Directory receiving the CSV (default: DISCHARGE_EXPORT_DIRECTORY).",
    )
    parser.add_argument("--search", default="", help="Filter by name, phone, id or diagnosis.")
    parser.add_argument(
        "--date-filter",
        dest="date_filter",
        choices=[item.value for item in DateFilter],
        default=DateFilter.ALL.value,
    )
    parser.add_argument(
        "--sort-by",
        dest="sort_by",
        choices=[item.value for item in SortColumn],
        default=SortColumn.DISCHARGE_DATE.value,
    )
    parser.add_argument(
        "--order",
        choices=[item.value for item in SortOrder],
        default=SortOrder.DESC.value,
    )
    return parser


async def _run_async(args: argparse.Namespace) -> int:
    settings = get_settings()
    repository: HospitalRepository
    if args.fixtures is not None:
        repository = InMemoryHospitalRepository.from_path(args.fixtures)
    else:
        repository = build_hospital_repository(settings)

    board = DischargeBoard(repository, patient_scan_limit=settings.discharge.patient_scan_limit)
    try:
        result = await board.refresh()
    finally:
        await repository.aclose()
    print(result.message)

    path = board.export(
        args.output_dir or settings.discharge.export_directory,
        search=args.search,
        date_filter=DateFilter(args.date_filter),
        sort=SortState(column=SortColumn(args.sort_by), order=SortOrder(args.order)),
    )
    print(f"Exported discharged patients to {path}")
    return 0


def main(argv: Iterable[str] | None = None) -> int:
    parser = _build_parser()
    parsed_args = parser.parse_args(None if argv is None else list(argv))
    configure_logging(service_name="export_discharged", level=get_settings().observability.level)
    try:
        return asyncio.run(_run_async(parsed_args))
    except KeyboardInterrupt:  # pragma: no cover - manual cancellation guard
        return 130
    except (FixtureLoadError, RepositoryError, OSError) as exc:
        print(str(exc), file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
