"""Worker process for scheduled notification jobs.

Runs an asyncio loop that wakes once a day at a fixed UTC hour and fires the
daily Slack leave digest (weekdays) and the month-end reminder. Every
instance runs the same loop; per-day locks keep each job to a single run.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from app.config import get_settings
from app.db import dispose_engine, get_session_factory
from app.integrations import configure_integrations
from app.log import configure_logging
from app.services.notifications import run_daily_leave_summary, send_monthly_leave_reminder

if TYPE_CHECKING:
    from datetime import date

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


def next_run_after(now: datetime, run_hour: int) -> datetime:
    """The first run_hour:00 UTC strictly after *now*."""
    now = now.astimezone(UTC)
    next_run = now.replace(hour=run_hour, minute=0, second=0, microsecond=0)
    if next_run <= now:
        next_run += timedelta(days=1)
    return next_run


def seconds_until_next_run(now: datetime, run_hour: int) -> float:
    """Seconds from *now* until the next occurrence of run_hour:00 UTC."""
    return (next_run_after(now, run_hour) - now.astimezone(UTC)).total_seconds()


async def sleep_until(target: datetime) -> None:
    """Return once the wall clock is at or past *target*.

    An early wake-up on the monotonic clock sleeps again for the remainder.
    """
    now = _utc_now()
    while now < target:
        await asyncio.sleep((target - now).total_seconds())
        now = _utc_now()


async def run_scheduled_jobs(session_factory: async_sessionmaker[AsyncSession], today: date) -> None:
    """Fire every job due on *today*. A failing job never stops the others."""
    # Slack digest runs Monday through Friday only.
    if today.weekday() < 5:
        try:
            async with session_factory() as session:
                result = await run_daily_leave_summary(session, today)
            logger.info("Daily leave summary for %s: state=%s delivered=%s", today, result.state, result.delivered)
        except Exception:
            logger.exception("Daily leave summary failed for %s", today)

    try:
        reminder = await send_monthly_leave_reminder(today)
        if reminder.delivered:
            logger.info("Monthly leave reminder for %s delivered", today)
    except Exception:
        logger.exception("Monthly leave reminder failed for %s", today)


async def run_notification_loop() -> None:
    """Main worker loop: sleep until each daily trigger, then run that day's jobs."""
    settings = get_settings()
    session_factory = get_session_factory()
    run_hour = settings.worker_run_hour_utc
    logger.info("Notification worker started; daily trigger at %02d:00 UTC", run_hour)

    try:
        next_run = next_run_after(_utc_now(), run_hour)
        while True:
            logger.info("Next notification run at %s", next_run.isoformat())
            await sleep_until(next_run)
            await run_scheduled_jobs(session_factory, next_run.date())
            # Missed triggers are not replayed.
            next_run = next_run_after(max(next_run, _utc_now()), run_hour)
    finally:
        await dispose_engine()


def main() -> None:
    """Entry point for the worker process."""
    settings = get_settings()
    configure_logging(settings)
    configure_integrations(settings)
    asyncio.run(run_notification_loop())


if __name__ == "__main__":
    main()
