"""Tests for the notification worker's scheduling."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from app import worker
from app.services.notifications import JobRunResult, JobState


@pytest.mark.parametrize(
    ("now", "run_hour", "expected"),
    [
        (datetime(2025, 12, 1, 23, 0, tzinfo=UTC), 0, 3600.0),
        (datetime(2025, 12, 1, 0, 0, tzinfo=UTC), 0, 86400.0),
        (datetime(2025, 12, 1, 5, 30, tzinfo=UTC), 6, 1800.0),
        (datetime(2025, 12, 1, 6, 0, 1, tzinfo=UTC), 6, 86399.0),
    ],
)
def test_seconds_until_next_run(now: datetime, run_hour: int, expected: float) -> None:
    assert worker.seconds_until_next_run(now, run_hour) == expected


def test_seconds_until_next_run_converts_to_utc() -> None:
    # 01:00 at UTC+2 is 23:00 UTC the previous day.
    now = datetime(2025, 12, 2, 1, 0, tzinfo=timezone(timedelta(hours=2)))
    assert worker.seconds_until_next_run(now, 0) == 3600.0


@pytest.fixture
def jobs(monkeypatch: pytest.MonkeyPatch) -> tuple[AsyncMock, AsyncMock]:
    daily = AsyncMock(return_value=JobRunResult(job="daily", target_date=date(2025, 12, 1), state=JobState.RELEASED))
    monthly = AsyncMock(return_value=JobRunResult(job="monthly", target_date=date(2025, 12, 1)))
    monkeypatch.setattr(worker, "run_daily_leave_summary", daily)
    monkeypatch.setattr(worker, "send_monthly_leave_reminder", monthly)
    return daily, monthly


def _session_factory() -> MagicMock:
    factory = MagicMock()
    factory.return_value.__aenter__ = AsyncMock(return_value=MagicMock())
    factory.return_value.__aexit__ = AsyncMock(return_value=False)
    return factory


async def test_weekday_runs_both_jobs(jobs: tuple[AsyncMock, AsyncMock]) -> None:
    daily, monthly = jobs
    monday = date(2025, 12, 1)

    await worker.run_scheduled_jobs(_session_factory(), monday)

    assert daily.await_count == 1
    assert daily.await_args.args[1] == monday
    monthly.assert_awaited_once_with(monday)


async def test_weekend_skips_daily_digest(jobs: tuple[AsyncMock, AsyncMock]) -> None:
    daily, monthly = jobs
    saturday_month_end = date(2026, 1, 31)

    await worker.run_scheduled_jobs(_session_factory(), saturday_month_end)

    daily.assert_not_awaited()
    monthly.assert_awaited_once_with(saturday_month_end)


async def test_failing_digest_does_not_block_reminder(
    jobs: tuple[AsyncMock, AsyncMock],
    caplog: pytest.LogCaptureFixture,
) -> None:
    daily, monthly = jobs
    daily.side_effect = RuntimeError("boom")

    await worker.run_scheduled_jobs(_session_factory(), date(2025, 12, 31))

    monthly.assert_awaited_once()
    assert "Daily leave summary failed" in caplog.text


# ---------------------------------------------------------------------------
# Notification loop
# ---------------------------------------------------------------------------


class _StopLoop(Exception):
    pass


@pytest.fixture
def loop_harness(monkeypatch: pytest.MonkeyPatch) -> tuple[list[datetime], list[float], list[date]]:
    """Drive run_notification_loop with a scripted wall clock; stop after the first run."""
    clock: list[datetime] = []
    sleeps: list[float] = []
    runs: list[date] = []

    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    async def fake_run(_factory: object, day: date) -> None:
        runs.append(day)
        raise _StopLoop

    monkeypatch.setattr(worker, "_utc_now", lambda: clock.pop(0))
    monkeypatch.setattr(worker, "asyncio", SimpleNamespace(sleep=fake_sleep))
    monkeypatch.setattr(worker, "run_scheduled_jobs", fake_run)
    monkeypatch.setattr(worker, "get_session_factory", MagicMock())
    monkeypatch.setattr(worker, "dispose_engine", AsyncMock())
    monkeypatch.setattr(worker.get_settings(), "worker_run_hour_utc", 0)
    return clock, sleeps, runs


async def test_loop_early_wake_runs_the_scheduled_day_once(
    loop_harness: tuple[list[datetime], list[float], list[date]],
) -> None:
    clock, sleeps, runs = loop_harness
    clock.extend(
        [
            datetime(2025, 12, 1, 0, 0, 1, tzinfo=UTC),
            datetime(2025, 12, 1, 0, 0, 1, tzinfo=UTC),
            # Woke just short of midnight on the wall clock.
            datetime(2025, 12, 1, 23, 59, 59, 999000, tzinfo=UTC),
            datetime(2025, 12, 2, 0, 0, 0, 1, tzinfo=UTC),
        ]
    )

    with pytest.raises(_StopLoop):
        await worker.run_notification_loop()

    assert runs == [date(2025, 12, 2)]
    assert sleeps == [pytest.approx(86399.0), pytest.approx(0.001)]
    worker.dispose_engine.assert_awaited_once()


async def test_loop_skips_sleep_when_already_due(
    loop_harness: tuple[list[datetime], list[float], list[date]],
) -> None:
    clock, sleeps, runs = loop_harness
    clock.extend([datetime(2025, 12, 1, 23, 59, 59, tzinfo=UTC), datetime(2025, 12, 2, 0, 0, 5, tzinfo=UTC)])

    with pytest.raises(_StopLoop):
        await worker.run_notification_loop()

    assert runs == [date(2025, 12, 2)]
    assert sleeps == []


def test_next_run_after_is_strictly_later() -> None:
    midnight = datetime(2025, 12, 2, 0, 0, tzinfo=UTC)
    assert worker.next_run_after(midnight, 0) == datetime(2025, 12, 3, 0, 0, tzinfo=UTC)
    assert worker.next_run_after(midnight - timedelta(microseconds=1), 0) == midnight


async def test_sleep_until_returns_only_after_target(monkeypatch: pytest.MonkeyPatch) -> None:
    target = datetime(2025, 12, 2, 0, 0, tzinfo=UTC)
    clock = [target - timedelta(seconds=10), target - timedelta(milliseconds=2), target]
    sleeps: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    monkeypatch.setattr(worker, "_utc_now", lambda: clock.pop(0))
    monkeypatch.setattr(worker, "asyncio", SimpleNamespace(sleep=fake_sleep))

    await worker.sleep_until(target)

    assert sleeps == [pytest.approx(10.0), pytest.approx(0.002)]
    assert clock == []
