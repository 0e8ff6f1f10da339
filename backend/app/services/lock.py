"""Cross-process locks that keep a scheduled job to one run per calendar day.

Every service instance fires the same daily trigger. Before doing anything
with side effects an instance must win the day's lock; losers skip the run
without waiting. Locks live in a store all instances share (Postgres
advisory locks in production) and are scoped to a store session, so a holder
that dies loses its lock when the server notices the session is gone.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from sqlalchemy import text

from app.db import get_engine
from app.exceptions import LockUnavailable

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from datetime import date

    from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

logger = logging.getLogger(__name__)


def daily_lock_key(day: date, namespace: str) -> int:
    """Derive the signed 64-bit lock key for *day* within *namespace*."""
    digest = hashlib.sha256(f"{namespace}:{day.isoformat()}".encode()).digest()
    return int.from_bytes(digest[:8], "big", signed=True)


@runtime_checkable
class LockStore(Protocol):
    """A shared store granting named, non-blocking, non-reentrant locks."""

    async def try_acquire(self, key: int) -> bool:
        """Take the lock if it is free. Never waits."""
        ...

    async def release(self, key: int) -> None:
        """Give the lock back. Releasing a lock this store does not hold is a no-op."""
        ...


class InMemoryLockStore:
    """Process-local lock store for development and tests.

    Several runners sharing one instance behave like several service
    instances sharing one database.
    """

    def __init__(self) -> None:
        self._held: set[int] = set()

    def is_held(self, key: int) -> bool:
        return key in self._held

    async def try_acquire(self, key: int) -> bool:
        if key in self._held:
            return False
        self._held.add(key)
        return True

    async def release(self, key: int) -> None:
        self._held.discard(key)


class PostgresAdvisoryLockStore:
    """Session-level Postgres advisory locks.

    Each held key pins its own connection until release, since Postgres ties
    the lock to the session that took it. Checking out that connection waits
    at most *connect_timeout* seconds; a pool that cannot supply one in time
    counts as "not acquired".
    """

    def __init__(self, engine: AsyncEngine | None = None, *, connect_timeout: float = 2.0) -> None:
        self._engine = engine
        self._connect_timeout = connect_timeout
        self._connections: dict[int, AsyncConnection] = {}

    @property
    def engine(self) -> AsyncEngine:
        return self._engine if self._engine is not None else get_engine()

    async def try_acquire(self, key: int) -> bool:
        if key in self._connections:
            return False

        try:
            conn = await asyncio.wait_for(self.engine.connect(), timeout=self._connect_timeout)
        except TimeoutError:
            logger.warning("No connection for lock %s within %.1fs; not acquired", key, self._connect_timeout)
            return False

        try:
            result = await conn.execute(text("SELECT pg_try_advisory_lock(:key)"), {"key": key})
            acquired = bool(result.scalar_one())
            # Session locks outlive the transaction; don't sit idle in one.
            await conn.commit()
        except Exception:
            await conn.close()
            raise

        if not acquired:
            await conn.close()
            return False

        self._connections[key] = conn
        return True

    async def release(self, key: int) -> None:
        conn = self._connections.pop(key, None)
        if conn is None:
            return

        try:
            await conn.execute(text("SELECT pg_advisory_unlock(:key)"), {"key": key})
            await conn.commit()
        except Exception:
            # Drop the DBAPI connection so the server ends the session and frees the lock.
            await conn.invalidate()
            raise
        finally:
            await conn.close()


@asynccontextmanager
async def hold_lock(store: LockStore, key: int) -> AsyncIterator[int]:
    """Hold *key* for the duration of the block.

    Raises LockUnavailable without waiting when the key is taken or the store
    cannot be reached. Release is always attempted on exit; a failed release
    is logged, not raised.
    """
    try:
        acquired = await store.try_acquire(key)
    except Exception:
        logger.exception("Lock store error while acquiring lock %s", key)
        acquired = False

    if not acquired:
        raise LockUnavailable(key)

    try:
        yield key
    finally:
        try:
            await store.release(key)
        except Exception:
            logger.exception("Failed to release lock %s", key)


_lock_store: LockStore = PostgresAdvisoryLockStore()


def get_lock_store() -> LockStore:
    """Return the configured lock store."""
    return _lock_store


def set_lock_store(store: LockStore) -> None:
    """Override the store (for testing or production wiring)."""
    global _lock_store
    _lock_store = store
