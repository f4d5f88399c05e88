"""Objective commands: submission transaction plus create / list / delete.

Each command reads the record through the store, applies the cooldown
policy and streak engine, and writes back at most once. Failures are raised
as ObjectiveError subclasses before any write happens.
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession

from app.objectives import cooldown, store, streaks
from app.objectives.errors import (
    CooldownActive,
    InvalidFrequency,
    MissingArguments,
    ObjectiveExists,
    ObjectiveNotFound,
)
from app.objectives.models import (
    ObjectiveRecord,
    ObjectiveStatus,
    SubmissionResult,
    parse_frequency,
)


def now_ms() -> int:
    return int(time.time() * 1000)


def _clean(value: str | None) -> str:
    return value.strip() if isinstance(value, str) else ""


class KeyedLock:
    """One asyncio.Lock per key, dropped once nobody holds or waits on it."""

    def __init__(self) -> None:
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}
        self._holders: dict[tuple[str, str], int] = {}

    @asynccontextmanager
    async def hold(self, key: tuple[str, str]) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if not self._holders[key]:
                del self._holders[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


# Shared by submissions and the reminder sweep (single process).
objective_locks = KeyedLock()


# ---------------------------------------------------------------------------
# submit
# ---------------------------------------------------------------------------


def apply_submission(record: ObjectiveRecord, now: int) -> int:
    """Mutate `record` for an accepted submission at `now`; return the new next_allowed.

    Raises CooldownActive (record untouched) while the cooldown window is open.
    """
    if not cooldown.is_eligible(record.frequency, record.last_submitted, now):
        raise CooldownActive(record.name, cooldown.next_allowed(record.frequency, record.last_submitted))

    today = streaks.streak_day(now)
    consecutive = streaks.is_consecutive(record.frequency, record.last_streak_day, today)

    record.last_submitted = now
    record.streak = streaks.next_streak(record.streak, consecutive)
    record.last_streak_day = today
    return cooldown.next_allowed(record.frequency, record.last_submitted)


async def submit(
    session: AsyncSession,
    user_id: str,
    objective: str | None,
    attachment_url: str | None,
    *,
    now: int | None = None,
    locks: KeyedLock = objective_locks,
) -> SubmissionResult:
    name = _clean(objective)
    url = _clean(attachment_url)

    if not url and not name:
        raise MissingArguments(("image", "objective"))
    if not url:
        raise MissingArguments(("image",))
    if not name:
        raise MissingArguments(("objective",))

    async with locks.hold((user_id, name)):
        record = await store.get_objective(session, user_id, name)
        if record is None:
            raise ObjectiveNotFound(user_id, name)

        at = now_ms() if now is None else now
        next_allowed = apply_submission(record, at)
        await store.upsert_objective(session, record)

    return SubmissionResult(
        objective=name,
        streak=record.streak,
        next_allowed=next_allowed,
        attachment_url=url,
    )


# ---------------------------------------------------------------------------
# create / list / delete
# ---------------------------------------------------------------------------


async def create(session: AsyncSession, user_id: str, name: str | None, frequency: str | None) -> ObjectiveRecord:
    clean_name = _clean(name)
    clean_freq = _clean(frequency)
    if not clean_name or not clean_freq:
        raise MissingArguments(tuple(k for k, v in (("name", clean_name), ("frequency", clean_freq)) if not v))

    freq = parse_frequency(clean_freq)
    if freq is None:
        raise InvalidFrequency(clean_freq)

    if await store.get_objective(session, user_id, clean_name) is not None:
        raise ObjectiveExists(user_id, clean_name)
    return await store.create_objective(session, user_id, clean_name, freq.value)


def objective_status(record: ObjectiveRecord, now: int) -> ObjectiveStatus:
    if cooldown.is_eligible(record.frequency, record.last_submitted, now):
        available_at = None
    else:
        available_at = cooldown.next_allowed(record.frequency, record.last_submitted)
    return ObjectiveStatus(
        name=record.name,
        frequency=record.frequency,
        available_at=available_at,
        streak=record.streak,
    )


async def list_statuses(session: AsyncSession, user_id: str, *, now: int | None = None) -> list[ObjectiveStatus]:
    """Per-objective availability for a user. An empty list means no objectives."""
    at = now_ms() if now is None else now
    records = await store.list_objectives_for_user(session, user_id)
    return [objective_status(r, at) for r in records]


async def delete(session: AsyncSession, user_id: str, name: str | None) -> None:
    clean_name = _clean(name)
    if not clean_name:
        raise MissingArguments(("name",))
    if await store.get_objective(session, user_id, clean_name) is None:
        raise ObjectiveNotFound(user_id, clean_name)
    await store.delete_objective(session, user_id, clean_name)
