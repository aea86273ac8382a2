"""In-memory search, date filtering and sorting of the discharged list."""

from __future__ import annotations

import locale
import re
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any, Callable, Iterable, Sequence

from shared.models.hospital import DischargedPatientView

_EPOCH = datetime.fromtimestamp(0, tz=UTC)
_LEADING_INTEGER = re.compile(r"^\s*[+-]?(\d+)")


class DateFilter(str, Enum):
    ALL = "all"
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"


class SortColumn(str, Enum):
    NAME = "name"
    DISCHARGE_DATE = "discharge_date"
    DURATION = "duration"
    BILL_AMOUNT = "bill_amount"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class SortState:
    """Active sort column and direction."""

    column: SortColumn = SortColumn.DISCHARGE_DATE
    order: SortOrder = SortOrder.DESC

    def toggle(self, column: SortColumn) -> "SortState":
        """Flip direction on the active column, else switch columns descending."""

        if column == self.column:
            flipped = SortOrder.ASC if self.order == SortOrder.DESC else SortOrder.DESC
            return SortState(column=column, order=flipped)
        return SortState(column=column, order=SortOrder.DESC)


def local_now() -> datetime:
    return datetime.now().astimezone()


def matches_search(view: DischargedPatientView, query: str) -> bool:
    """Case-insensitive substring match on names, phone, id and diagnosis."""

    needle = query.strip().casefold()
    if not needle:
        return True
    haystack = (
        view.first_name,
        view.last_name,
        view.phone,
        view.patient_id or "",
        view.final_diagnosis,
    )
    return any(needle in value.casefold() for value in haystack)


def _filter_start(date_filter: DateFilter, now: datetime) -> datetime | None:
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if date_filter == DateFilter.TODAY:
        return midnight
    if date_filter == DateFilter.WEEK:
        return now - timedelta(days=7)
    if date_filter == DateFilter.MONTH:
        return midnight.replace(day=1)
    return None


def filter_by_date(
    views: Iterable[DischargedPatientView],
    date_filter: DateFilter,
    *,
    now: datetime,
) -> list[DischargedPatientView]:
    """Keep records discharged since the start of ``date_filter``'s window."""

    start = _filter_start(date_filter, now)
    if start is None:
        return list(views)
    return [
        view
        for view in views
        if view.discharge_date is not None and view.discharge_date >= start
    ]


def duration_days(duration: str) -> int:
    """Return the leading integer of a duration string; unparsable gives 0."""

    match = _LEADING_INTEGER.match(duration or "")
    return int(match.group(1)) if match else 0


def _name_key(view: DischargedPatientView) -> str:
    """Collate "first last" with the process locale, ignoring case."""

    return locale.strxfrm(f"{view.first_name} {view.last_name}".casefold())


_SORT_KEYS: dict[SortColumn, Callable[[DischargedPatientView], Any]] = {
    SortColumn.NAME: _name_key,
    SortColumn.DISCHARGE_DATE: lambda view: view.discharge_date or _EPOCH,
    SortColumn.DURATION: lambda view: duration_days(view.admission_duration),
    SortColumn.BILL_AMOUNT: lambda view: view.total_bill_amount or 0.0,
}


def sort_views(
    views: Iterable[DischargedPatientView], state: SortState
) -> list[DischargedPatientView]:
    """Stable sort by ``state.column`` in ``state.order``."""

    return sorted(
        views,
        key=_SORT_KEYS[state.column],
        reverse=state.order == SortOrder.DESC,
    )


def apply_view(
    views: Sequence[DischargedPatientView],
    *,
    search: str = "",
    date_filter: DateFilter = DateFilter.ALL,
    sort: SortState = SortState(),
    now: datetime | None = None,
) -> list[DischargedPatientView]:
    """Return the searched, date-filtered and sorted view of ``views``."""

    searched = [view for view in views if matches_search(view, search)]
    filtered = filter_by_date(searched, date_filter, now=now or local_now())
    return sort_views(filtered, sort)


__all__ = [
    "DateFilter",
    "SortColumn",
    "SortOrder",
    "SortState",
    "apply_view",
    "duration_days",
    "filter_by_date",
    "local_now",
    "matches_search",
    "sort_views",
]
