"""Tests for daily lock keys, the lock stores, and the hold_lock guard."""

from __future__ import annotations

import asyncio
import logging
from datetime import date, timedelta
from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.exceptions import LockUnavailable
from app.services.lock import InMemoryLockStore, LockStore, PostgresAdvisoryLockStore, daily_lock_key, hold_lock

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.ext.asyncio import AsyncEngine

NAMESPACE = "test:daily-job"
TODAY = date(2025, 12, 1)


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------


def test_lock_key_is_reproducible() -> None:
    assert daily_lock_key(TODAY, NAMESPACE) == daily_lock_key(date(2025, 12, 1), NAMESPACE)


def test_lock_key_differs_per_day() -> None:
    keys = {daily_lock_key(date(2025, 1, 1) + timedelta(days=i), NAMESPACE) for i in range(730)}
    assert len(keys) == 730


def test_lock_key_differs_per_namespace() -> None:
    assert daily_lock_key(TODAY, "job-a") != daily_lock_key(TODAY, "job-b")


def test_lock_key_fits_signed_bigint() -> None:
    key = daily_lock_key(TODAY, NAMESPACE)
    assert -(2**63) <= key < 2**63


# ---------------------------------------------------------------------------
# InMemoryLockStore
# ---------------------------------------------------------------------------


def test_in_memory_store_satisfies_protocol() -> None:
    assert isinstance(InMemoryLockStore(), LockStore)


async def test_in_memory_concurrent_acquire_exactly_one_wins() -> None:
    store = InMemoryLockStore()
    results = await asyncio.gather(store.try_acquire(42), store.try_acquire(42))
    assert sorted(results) == [False, True]


async def test_in_memory_acquire_is_not_reentrant() -> None:
    store = InMemoryLockStore()
    assert await store.try_acquire(7) is True
    assert await store.try_acquire(7) is False


async def test_in_memory_release_frees_the_key() -> None:
    store = InMemoryLockStore()
    await store.try_acquire(7)
    await store.release(7)
    assert store.is_held(7) is False
    assert await store.try_acquire(7) is True


async def test_in_memory_release_unheld_key_is_noop() -> None:
    store = InMemoryLockStore()
    await store.release(99)
    await store.release(99)
    assert store.is_held(99) is False


# ---------------------------------------------------------------------------
# hold_lock
# ---------------------------------------------------------------------------


async def test_hold_lock_releases_after_block() -> None:
    store = InMemoryLockStore()
    async with hold_lock(store, 5) as key:
        assert key == 5
        assert store.is_held(5)
    assert not store.is_held(5)


async def test_hold_lock_raises_when_taken() -> None:
    store = InMemoryLockStore()
    await store.try_acquire(5)
    with pytest.raises(LockUnavailable):
        async with hold_lock(store, 5):
            pytest.fail("block must not run without the lock")


async def test_hold_lock_releases_when_block_raises() -> None:
    store = InMemoryLockStore()
    with pytest.raises(RuntimeError):
        async with hold_lock(store, 5):
            raise RuntimeError("boom")
    assert not store.is_held(5)


async def test_hold_lock_treats_store_error_as_unavailable(caplog: pytest.LogCaptureFixture) -> None:
    store = AsyncMock(spec=InMemoryLockStore)
    store.try_acquire.side_effect = ConnectionError("store unreachable")

    with caplog.at_level(logging.ERROR, logger="app.services.lock"), pytest.raises(LockUnavailable):
        async with hold_lock(store, 5):
            pytest.fail("block must not run without the lock")

    store.try_acquire.assert_awaited_once_with(5)
    store.release.assert_not_awaited()
    assert "Lock store error" in caplog.text


async def test_hold_lock_logs_release_failure(caplog: pytest.LogCaptureFixture) -> None:
    store = AsyncMock(spec=InMemoryLockStore)
    store.try_acquire.return_value = True
    store.release.side_effect = ConnectionError("connection dropped")

    with caplog.at_level(logging.ERROR, logger="app.services.lock"):
        async with hold_lock(store, 5):
            pass

    store.release.assert_awaited_once_with(5)
    assert "Failed to release lock 5" in caplog.text


# ---------------------------------------------------------------------------
# PostgresAdvisoryLockStore
# ---------------------------------------------------------------------------


@pytest.fixture
async def pg_stores(engine: AsyncEngine) -> AsyncIterator[tuple[PostgresAdvisoryLockStore, PostgresAdvisoryLockStore]]:
    """Two independent stores, standing in for two service instances."""
    first, second = PostgresAdvisoryLockStore(engine), PostgresAdvisoryLockStore(engine)
    yield first, second
    key = daily_lock_key(TODAY, NAMESPACE)
    await first.release(key)
    await second.release(key)


async def test_postgres_concurrent_acquire_exactly_one_wins(
    pg_stores: tuple[PostgresAdvisoryLockStore, PostgresAdvisoryLockStore],
) -> None:
    first, second = pg_stores
    key = daily_lock_key(TODAY, NAMESPACE)

    results = await asyncio.gather(first.try_acquire(key), second.try_acquire(key))
    assert sorted(results) == [False, True]


async def test_postgres_release_lets_another_instance_acquire(
    pg_stores: tuple[PostgresAdvisoryLockStore, PostgresAdvisoryLockStore],
) -> None:
    first, second = pg_stores
    key = daily_lock_key(TODAY, NAMESPACE)

    assert await first.try_acquire(key) is True
    assert await second.try_acquire(key) is False
    await first.release(key)
    assert await second.try_acquire(key) is True


async def test_postgres_acquire_is_not_reentrant(
    pg_stores: tuple[PostgresAdvisoryLockStore, PostgresAdvisoryLockStore],
) -> None:
    first, _ = pg_stores
    key = daily_lock_key(TODAY, NAMESPACE)

    assert await first.try_acquire(key) is True
    assert await first.try_acquire(key) is False


async def test_postgres_release_unheld_key_is_noop(
    pg_stores: tuple[PostgresAdvisoryLockStore, PostgresAdvisoryLockStore],
) -> None:
    first, second = pg_stores
    key = daily_lock_key(TODAY, NAMESPACE)

    await first.release(key)
    assert await second.try_acquire(key) is True
    # Releasing from a store that never acquired must not free the holder's lock.
    await first.release(key)
    assert await first.try_acquire(key) is False


async def test_postgres_exhausted_pool_is_not_acquired(caplog: pytest.LogCaptureFixture) -> None:
    engine = MagicMock()
    engine.connect.side_effect = lambda: asyncio.sleep(3600)
    store = PostgresAdvisoryLockStore(engine, connect_timeout=0.01)

    with caplog.at_level(logging.WARNING, logger="app.services.lock"):
        assert await store.try_acquire(daily_lock_key(TODAY, NAMESPACE)) is False

    assert "not acquired" in caplog.text
    # Nothing is pinned, so a later release is still a no-op.
    await store.release(daily_lock_key(TODAY, NAMESPACE))
