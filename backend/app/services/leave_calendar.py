"""Calendar aggregation: per-user day statuses and the grouped team roster.

Three sources feed a day's status: the user's own records, company holidays,
and the weekday itself. Precedence is fixed (personal > company holiday >
weekend > available) and never depends on the order records arrive in.
Everything here is pure; callers fetch the records and profiles.
"""

from __future__ import annotations

import calendar
from collections import defaultdict
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from typing import TYPE_CHECKING

from app.exceptions import InvalidRange
from app.models.enums import AWAY_STATUSES, LeaveStatus

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

    from app.models.holiday import CompanyHoliday
    from app.models.leave import UserLeaveDate
    from app.services.identity import UserProfile

COMPANY_HOLIDAY_SUBJECT_ID = "company-holiday"
COMPANY_HOLIDAY_LABEL = "Company Holiday"

_ONE_DAY = timedelta(days=1)


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DayStatus:
    """Resolved status of one calendar day for one user."""

    date: date
    status: LeaveStatus
    is_weekend: bool
    is_company_holiday: bool
    holiday_label: str | None = None


@dataclass(frozen=True)
class TeamEntry:
    """One row of a team roster: a user away that day, or the company holiday."""

    subject_id: str
    display_name: str
    status: LeaveStatus
    handle: str | None = None
    first_name: str | None = None
    last_name: str | None = None

    @property
    def is_company_holiday(self) -> bool:
        return self.subject_id == COMPANY_HOLIDAY_SUBJECT_ID


@dataclass(frozen=True)
class TeamDayRoster:
    """Everyone away on one date, sorted by display name."""

    date: date
    entries: tuple[TeamEntry, ...]


# ---------------------------------------------------------------------------
# Date helpers
# ---------------------------------------------------------------------------


def utc_today() -> date:
    """Return the current calendar day in UTC."""
    return datetime.now(UTC).date()


def first_day_of_month(day: date) -> date:
    return day.replace(day=1)


def last_day_of_month(day: date) -> date:
    return day.replace(day=calendar.monthrange(day.year, day.month)[1])


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5


def is_last_utc_day_of_month(day: date) -> bool:
    """True when the next UTC day falls in a different month."""
    return (day + _ONE_DAY).month != day.month


def utc_day_bounds(day: date) -> tuple[datetime, datetime]:
    """Return the inclusive UTC bounds of *day*: 00:00:00.000 through 23:59:59.999."""
    start = datetime.combine(day, time.min, tzinfo=UTC)
    end = datetime.combine(day, time(23, 59, 59, 999000), tzinfo=UTC)
    return start, end


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every calendar day from *start* through *end* inclusive."""
    current = start
    while current <= end:
        yield current
        current += _ONE_DAY


def resolve_range(
    start: date | None = None,
    end: date | None = None,
    today: date | None = None,
) -> tuple[date, date]:
    """Normalize an optional (start, end) pair into an inclusive day range.

    With neither bound the current UTC month is used. A lone start extends to
    the end of its month; a lone end reaches back to the start of its month.
    """
    if start is None and end is None:
        anchor = today if today is not None else utc_today()
        start, end = first_day_of_month(anchor), last_day_of_month(anchor)
    elif start is not None and end is None:
        end = last_day_of_month(start)
    elif start is None and end is not None:
        start = first_day_of_month(end)

    if start > end:  # type: ignore[operator]
        raise InvalidRange
    return start, end


# ---------------------------------------------------------------------------
# Single-user calendar
# ---------------------------------------------------------------------------


def _holidays_by_date(holidays: Iterable[CompanyHoliday]) -> dict[date, CompanyHoliday]:
    return {h.date: h for h in holidays}


def merge_statuses(
    start: date,
    end: date,
    personal_records: Iterable[UserLeaveDate],
    company_holidays: Iterable[CompanyHoliday],
) -> list[DayStatus]:
    """Build one DayStatus per day in [start, end], ascending.

    *personal_records* must already hold at most one record per date; if a
    date repeats, the record supplied last wins.
    """
    personal_by_date: dict[date, UserLeaveDate] = {}
    for record in personal_records:
        personal_by_date[record.date] = record
    holiday_by_date = _holidays_by_date(company_holidays)

    days: list[DayStatus] = []
    for day in iter_days(start, end):
        weekend = is_weekend(day)
        holiday = holiday_by_date.get(day)
        personal = personal_by_date.get(day)

        if personal is not None:
            status = LeaveStatus(personal.status)
        elif holiday is not None:
            status = LeaveStatus.COMPANY_HOLIDAY
        elif weekend:
            status = LeaveStatus.WEEKEND
        else:
            status = LeaveStatus.AVAILABLE

        days.append(
            DayStatus(
                date=day,
                status=status,
                is_weekend=weekend,
                is_company_holiday=holiday is not None,
                holiday_label=(holiday.name or None) if holiday is not None else None,
            )
        )
    return days


# ---------------------------------------------------------------------------
# Team calendar
# ---------------------------------------------------------------------------


def _clean(value: str | None) -> str:
    return value.strip() if value else ""


def resolve_display_name(record: UserLeaveDate, profile: UserProfile | None) -> str:
    """Pick a display name: full name, then handle, then the record's actor, then the user id."""
    if profile is not None:
        first, last = _clean(profile.first_name), _clean(profile.last_name)
        if first and last:
            return f"{first} {last}"
        if _clean(profile.handle):
            return _clean(profile.handle)
    return _clean(record.attribution_actor) or record.user_id


def roster_sort_key(entry: TeamEntry) -> tuple[str, str]:
    """Case-insensitive display name, then subject id."""
    return entry.display_name.casefold(), entry.subject_id


def aggregate_team(
    start: date,
    end: date,
    personal_records: Iterable[UserLeaveDate],
    company_holidays: Iterable[CompanyHoliday],
    profiles: Mapping[str, UserProfile],
) -> list[TeamDayRoster]:
    """Group away records and company holidays into per-date rosters.

    Only LEAVE and HOLIDAY records count. Dates without any entry are left
    out. Each company holiday adds one synthetic entry for its date.
    """
    grouped: dict[date, list[TeamEntry]] = defaultdict(list)

    for record in personal_records:
        if not start <= record.date <= end or record.status not in AWAY_STATUSES:
            continue
        profile = profiles.get(record.user_id)
        grouped[record.date].append(
            TeamEntry(
                subject_id=record.user_id,
                display_name=resolve_display_name(record, profile),
                status=LeaveStatus(record.status),
                handle=profile.handle if profile is not None else None,
                first_name=profile.first_name if profile is not None else None,
                last_name=profile.last_name if profile is not None else None,
            )
        )

    for day, holiday in _holidays_by_date(company_holidays).items():
        if not start <= day <= end:
            continue
        grouped[day].append(
            TeamEntry(
                subject_id=COMPANY_HOLIDAY_SUBJECT_ID,
                display_name=_clean(holiday.name) or COMPANY_HOLIDAY_LABEL,
                status=LeaveStatus.COMPANY_HOLIDAY,
            )
        )

    return [
        TeamDayRoster(date=day, entries=tuple(sorted(grouped[day], key=roster_sort_key)))
        for day in sorted(grouped)
    ]
