"""Scheduled notifications: the daily Slack leave digest and the month-end e-mail reminder.

Both jobs fire on every service instance. Each takes a per-day lock first and
quietly skips the run if another instance already has it. Nothing here
raises out of a job; failures end up in the logs only.
"""

from __future__ import annotations

import calendar
import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from app.config import get_settings
from app.exceptions import LockUnavailable
from app.models.enums import AWAY_STATUSES
from app.services.event_bus import get_event_bus_service
from app.services.identity import fetch_profiles, get_identity_service
from app.services.leave import find_leave_records
from app.services.leave_calendar import aggregate_team, is_last_utc_day_of_month, utc_day_bounds, utc_today
from app.services.lock import daily_lock_key, get_lock_store, hold_lock
from app.services.slack import get_slack_service

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from datetime import date

    from sqlalchemy.ext.asyncio import AsyncSession

    from app.services.identity import RoleMember

logger = logging.getLogger(__name__)

DIGEST_HEADER = "These users are on leave today:"

DAILY_SUMMARY_JOB = "daily-leave-summary"
MONTHLY_REMINDER_JOB = "monthly-leave-reminder"


class JobState(enum.StrEnum):
    """Where a scheduled job run ended up."""

    IDLE = "IDLE"
    LOCK_ATTEMPTED = "LOCK_ATTEMPTED"
    SKIPPED = "SKIPPED"
    RUNNING = "RUNNING"
    RELEASED = "RELEASED"


@dataclass
class JobRunResult:
    """Summary of one trigger firing."""

    job: str
    target_date: date
    lock_key: int | None = None
    state: JobState = JobState.IDLE
    delivered: bool = False
    message: str | None = None
    error: str | None = None


# ---------------------------------------------------------------------------
# Daily Slack digest
# ---------------------------------------------------------------------------


def compose_digest(names: Sequence[str]) -> str:
    """Render the digest text, one bulleted name per line."""
    lines = [f"* {name}" for name in names] or ["* None"]
    return "\n".join([DIGEST_HEADER, *lines])


async def build_daily_digest(session: AsyncSession, day: date) -> str:
    """Compose the digest of everyone on leave or holiday on *day*."""
    start, end = utc_day_bounds(day)
    records = await find_leave_records(session, start.date(), end.date(), statuses=AWAY_STATUSES)
    profiles = await fetch_profiles([r.user_id for r in records])
    rosters = aggregate_team(day, day, records, [], profiles)
    names = [entry.display_name for roster in rosters for entry in roster.entries if not entry.is_company_holiday]
    return compose_digest(names)


async def run_daily_leave_summary(session: AsyncSession, today: date | None = None) -> JobRunResult:
    """Post today's leave digest to Slack, at most once per day across all instances."""
    target = today if today is not None else utc_today()
    key = daily_lock_key(target, get_settings().daily_summary_lock_namespace)
    result = JobRunResult(job=DAILY_SUMMARY_JOB, target_date=target, lock_key=key)

    result.state = JobState.LOCK_ATTEMPTED
    try:
        async with hold_lock(get_lock_store(), key):
            result.state = JobState.RUNNING
            try:
                result.message = await build_daily_digest(session, target)
                result.delivered = await get_slack_service().send_notification(result.message)
            except Exception as exc:
                logger.exception("Failed to send daily leave Slack summary for %s", target)
                result.error = str(exc)
        result.state = JobState.RELEASED
    except LockUnavailable:
        logger.warning("Daily leave summary for %s skipped: lock %s is held by another instance", target, key)
        result.state = JobState.SKIPPED

    return result


# ---------------------------------------------------------------------------
# Monthly e-mail reminder
# ---------------------------------------------------------------------------


def unique_emails(members: Iterable[RoleMember]) -> list[str]:
    """Lower-cased member e-mails, deduplicated in first-seen order."""
    return list(dict.fromkeys(m.email.lower() for m in members if m.email))


def reminder_month_year(day: date, month_offset: int) -> tuple[str, str]:
    """Return the (English month name, year) *month_offset* months after *day*'s month."""
    index = day.month - 1 + month_offset
    year, month = day.year + index // 12, index % 12 + 1
    return calendar.month_name[month], str(year)


async def _send_reminder(target: date, template_id: str, result: JobRunResult) -> None:
    settings = get_settings()
    try:
        members = await get_identity_service().list_role_members(settings.leave_reminder_role)
    except Exception as exc:
        logger.exception("Failed to fetch %s members for leave reminder", settings.leave_reminder_role)
        result.error = str(exc)
        return

    recipients = unique_emails(members)
    if not recipients:
        logger.warning("Monthly leave reminder skipped: no %s e-mails found", settings.leave_reminder_role)
        return

    month, year = reminder_month_year(target, settings.leave_reminder_month_offset)
    try:
        await get_event_bus_service().send_email(template_id, recipients, {"month": month, "year": year})
    except Exception as exc:
        logger.exception("Failed to send monthly leave reminder e-mail")
        result.error = str(exc)
        return

    result.delivered = True
    logger.info("Monthly leave reminder sent to %d recipients", len(recipients))


async def send_monthly_leave_reminder(today: date | None = None) -> JobRunResult:
    """E-mail staff a reminder to record next month's leave, on the last UTC day of the month."""
    target = today if today is not None else utc_today()
    result = JobRunResult(job=MONTHLY_REMINDER_JOB, target_date=target)

    if not is_last_utc_day_of_month(target):
        result.state = JobState.SKIPPED
        return result

    settings = get_settings()
    template_id = settings.leave_reminder_template_id
    if not template_id:
        logger.warning("Monthly leave reminder skipped: LEAVE_REMINDER_TEMPLATE_ID is not set")
        result.state = JobState.SKIPPED
        return result

    result.lock_key = daily_lock_key(target, settings.monthly_reminder_lock_namespace)
    result.state = JobState.LOCK_ATTEMPTED
    try:
        async with hold_lock(get_lock_store(), result.lock_key):
            result.state = JobState.RUNNING
            await _send_reminder(target, template_id, result)
        result.state = JobState.RELEASED
    except LockUnavailable:
        logger.warning("Monthly leave reminder for %s skipped: lock is held by another instance", target)
        result.state = JobState.SKIPPED

    return result
