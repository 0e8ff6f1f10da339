"""Leave records and company holidays: storage access and the calendar views built on them."""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import col

from app.exceptions import AppError, PersistenceFailure
from app.models.enums import AWAY_STATUSES, SETTABLE_STATUSES, LeaveStatus
from app.models.holiday import CompanyHoliday
from app.models.leave import UserLeaveDate
from app.schemas.leave import (
    CompanyHolidayListResponse,
    CompanyHolidayResponse,
    DayStatusResponse,
    LeaveRecordResponse,
    TeamLeaveResponse,
    TeamLeaveUserResponse,
)
from app.services.identity import fetch_profiles
from app.services.leave_calendar import aggregate_team, merge_statuses, resolve_range

if TYPE_CHECKING:
    from collections.abc import Collection, Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

    from app.services.leave_calendar import DayStatus, TeamDayRoster

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Response builders
# ---------------------------------------------------------------------------


def _build_leave_record_response(record: UserLeaveDate) -> LeaveRecordResponse:
    return LeaveRecordResponse(
        id=record.id,
        user_id=record.user_id,
        date=record.date,
        status=LeaveStatus(record.status),
        updated_by=record.updated_by,
    )


def _build_day_status_response(day: DayStatus) -> DayStatusResponse:
    return DayStatusResponse(
        date=day.date,
        status=day.status,
        is_weekend=day.is_weekend,
        is_company_holiday=day.is_company_holiday,
        holiday_name=day.holiday_label,
    )


def _build_team_leave_response(roster: TeamDayRoster) -> TeamLeaveResponse:
    return TeamLeaveResponse(
        date=roster.date,
        users_on_leave=[
            TeamLeaveUserResponse(
                user_id=entry.subject_id,
                display_name=entry.display_name,
                status=entry.status,
                handle=entry.handle,
                first_name=entry.first_name,
                last_name=entry.last_name,
            )
            for entry in roster.entries
        ],
    )


def _build_holiday_response(holiday: CompanyHoliday) -> CompanyHolidayResponse:
    return CompanyHolidayResponse(id=holiday.id, date=holiday.date, name=holiday.name)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def find_leave_records(
    session: AsyncSession,
    start: date,
    end: date,
    *,
    user_id: str | None = None,
    statuses: Collection[LeaveStatus] | None = None,
) -> list[UserLeaveDate]:
    """Fetch per-user records dated within [start, end]. Order is not guaranteed."""
    filters = [col(UserLeaveDate.date) >= start, col(UserLeaveDate.date) <= end]
    if user_id is not None:
        filters.append(col(UserLeaveDate.user_id) == user_id)
    if statuses is not None:
        filters.append(col(UserLeaveDate.status).in_([s.value for s in statuses]))

    try:
        result = await session.execute(select(UserLeaveDate).where(*filters))
    except SQLAlchemyError as exc:
        logger.exception("Failed to load leave records for %s..%s", start, end)
        raise PersistenceFailure from exc
    return list(result.scalars().all())


async def find_company_holidays(session: AsyncSession, start: date, end: date) -> list[CompanyHoliday]:
    """Fetch company holidays dated within [start, end]. Order is not guaranteed."""
    try:
        result = await session.execute(
            select(CompanyHoliday).where(
                col(CompanyHoliday.date) >= start,
                col(CompanyHoliday.date) <= end,
            )
        )
    except SQLAlchemyError as exc:
        logger.exception("Failed to load company holidays for %s..%s", start, end)
        raise PersistenceFailure from exc
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Calendar views
# ---------------------------------------------------------------------------


async def get_leave_dates(
    session: AsyncSession,
    user_id: str,
    start: date | None = None,
    end: date | None = None,
) -> list[DayStatusResponse]:
    """Resolve one status per day in the range for a single user."""
    range_start, range_end = resolve_range(start, end)
    records = await find_leave_records(session, range_start, range_end, user_id=user_id)
    holidays = await find_company_holidays(session, range_start, range_end)
    return [_build_day_status_response(d) for d in merge_statuses(range_start, range_end, records, holidays)]


async def get_team_rosters(session: AsyncSession, start: date, end: date) -> list[TeamDayRoster]:
    """Build the team rosters for an already-resolved range."""
    records = await find_leave_records(session, start, end, statuses=AWAY_STATUSES)
    holidays = await find_company_holidays(session, start, end)
    profiles = await fetch_profiles([r.user_id for r in records])
    return aggregate_team(start, end, records, holidays, profiles)


async def get_team_leave(
    session: AsyncSession,
    start: date | None = None,
    end: date | None = None,
) -> list[TeamLeaveResponse]:
    """List everyone away, plus company holidays, grouped by date."""
    range_start, range_end = resolve_range(start, end)
    rosters = await get_team_rosters(session, range_start, range_end)
    return [_build_team_leave_response(r) for r in rosters]


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


async def set_leave_dates(
    session: AsyncSession,
    user_id: str,
    dates: Sequence[date],
    status: LeaveStatus,
    actor: str,
) -> list[LeaveRecordResponse]:
    """Create or update the user's status on each date."""
    if status not in SETTABLE_STATUSES:
        raise AppError("Status must be LEAVE, HOLIDAY, or AVAILABLE", status_code=400)

    unique_dates = list(dict.fromkeys(dates))
    now = datetime.now(UTC)

    try:
        result = await session.execute(
            select(UserLeaveDate).where(
                col(UserLeaveDate.user_id) == user_id,
                col(UserLeaveDate.date).in_(unique_dates),
            )
        )
        existing = {r.date: r for r in result.scalars().all()}

        records: list[UserLeaveDate] = []
        for d in unique_dates:
            record = existing.get(d)
            if record is None:
                record = UserLeaveDate(
                    user_id=user_id,
                    date=d,
                    status=status.value,
                    created_by=actor,
                    updated_by=actor,
                    created_at=now,
                    updated_at=now,
                )
            else:
                record.status = status.value
                record.updated_by = actor
                record.updated_at = now
            session.add(record)
            records.append(record)

        await session.flush()
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception("Failed to set leave dates for user %s", user_id)
        raise PersistenceFailure("Failed to set leave dates") from exc

    return [_build_leave_record_response(r) for r in sorted(records, key=lambda r: r.date)]


async def create_company_holidays(
    session: AsyncSession,
    dates: Sequence[date],
    name: str | None,
    actor: str,
) -> list[CompanyHolidayResponse]:
    """Mark dates as company holidays, leaving existing ones untouched."""
    unique_dates = list(dict.fromkeys(dates))

    try:
        result = await session.execute(select(CompanyHoliday).where(col(CompanyHoliday.date).in_(unique_dates)))
        holidays = {h.date: h for h in result.scalars().all()}

        for d in unique_dates:
            if d not in holidays:
                holidays[d] = CompanyHoliday(date=d, name=name, created_by=actor, updated_by=actor)
                session.add(holidays[d])

        await session.flush()
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception("Failed to create company holidays")
        raise PersistenceFailure("Failed to create company holidays") from exc

    return [_build_holiday_response(holidays[d]) for d in sorted(holidays)]


async def list_company_holidays(
    session: AsyncSession,
    start: date | None = None,
    end: date | None = None,
) -> CompanyHolidayListResponse:
    """List company holidays in the range, ascending."""
    range_start, range_end = resolve_range(start, end)
    holidays = sorted(await find_company_holidays(session, range_start, range_end), key=lambda h: h.date)
    return CompanyHolidayListResponse(items=[_build_holiday_response(h) for h in holidays], total=len(holidays))
