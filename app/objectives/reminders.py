"""Reminder sweep: DM users whose objectives went too long without a submission.

`sweep` is one pass over the table. `ReminderScheduler` owns the periodic
task that runs it; the clock, notifier and session factory are injected so
both can be driven from tests without real time or network.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.objectives import store
from app.objectives.errors import NotificationError, StorageError
from app.objectives.models import SweepReport
from app.objectives.notifier import Notifier, reminder_text
from app.objectives.service import KeyedLock, now_ms, objective_locks

logger = logging.getLogger(__name__)

HOUR_MS = 60 * 60 * 1000
STALE_AFTER_MS = 24 * HOUR_MS


async def sweep(
    session: AsyncSession,
    notifier: Notifier,
    *,
    now: int | None = None,
    stale_after_ms: int = STALE_AFTER_MS,
    locks: KeyedLock = objective_locks,
) -> SweepReport:
    """Remind every stale objective once; a failed record stays eligible for the next run."""
    at = now_ms() if now is None else now
    report = SweepReport(checked_at=at)
    hours = stale_after_ms // HOUR_MS

    stale = await store.find_stale_objectives(session, at - stale_after_ms)
    for record in stale:
        try:
            await notifier.send_direct_message(record.user_id, reminder_text(record.name, hours))
            async with locks.hold(record.key):
                await store.mark_reminded(session, record.user_id, record.name, at)
        except (NotificationError, StorageError) as exc:
            logger.warning("Failed to remind user %s for %r: %s", record.user_id, record.name, exc)
            report.failed.append(record.key)
            continue
        except Exception:
            logger.exception("Unexpected error reminding user %s for %r", record.user_id, record.name)
            report.failed.append(record.key)
            continue
        report.reminded.append(record.key)

    logger.info(
        "reminder sweep: %d stale, %d reminded, %d failed",
        len(stale),
        len(report.reminded),
        len(report.failed),
    )
    return report


class ReminderScheduler:
    """Runs `sweep` every `interval` seconds on an asyncio task until stopped."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        notifier: Notifier,
        *,
        interval: float = 3600.0,
        stale_after_ms: int = STALE_AFTER_MS,
        clock: Callable[[], int] = now_ms,
    ):
        self._session_factory = session_factory
        self._notifier = notifier
        self._interval = interval
        self._stale_after_ms = stale_after_ms
        self._clock = clock
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> SweepReport:
        async with self._session_factory() as session:
            return await sweep(
                session,
                self._notifier,
                now=self._clock(),
                stale_after_ms=self._stale_after_ms,
            )

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.run_once()
            except Exception:
                logger.exception("reminder sweep failed; retrying next interval")

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="reminder-sweep")
        logger.info("reminder scheduler started (every %ss)", self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("reminder scheduler stopped")
