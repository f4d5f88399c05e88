"""Objective store — async access to the objectives table.

Schema: userId, name, frequency, lastSubmitted (epoch ms), streak,
lastStreakDay (YYYY-MM-DD text), lastReminded (epoch ms); primary key
(userId, name). Column names are camelCase and therefore quoted so they
survive Postgres identifier folding. Every write commits immediately.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Sequence

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from app.objectives.errors import ObjectiveExists, StorageError
from app.objectives.models import ObjectiveRecord

logger = logging.getLogger(__name__)

_COLUMNS = (
    '"userId", "name", "frequency", "lastSubmitted", "streak", "lastStreakDay", "lastReminded"'
)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS objectives (
    "userId" TEXT NOT NULL,
    "name" TEXT NOT NULL,
    "frequency" TEXT NOT NULL,
    "lastSubmitted" BIGINT,
    "streak" INTEGER NOT NULL DEFAULT 0,
    "lastStreakDay" TEXT,
    "lastReminded" BIGINT,
    PRIMARY KEY ("userId", "name")
)
"""


async def init_schema(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.execute(text(SCHEMA_SQL))
    logger.info("objectives schema ready")


def _row_to_record(row: dict[str, Any]) -> ObjectiveRecord:
    day = row["lastStreakDay"]
    return ObjectiveRecord(
        user_id=row["userId"],
        name=row["name"],
        frequency=row["frequency"],
        last_submitted=row["lastSubmitted"],
        streak=row["streak"] or 0,
        last_streak_day=date.fromisoformat(day) if day else None,
        last_reminded=row["lastReminded"],
    )


def _record_params(record: ObjectiveRecord) -> dict[str, Any]:
    return {
        "user_id": record.user_id,
        "name": record.name,
        "frequency": str(getattr(record.frequency, "value", record.frequency)),
        "last_submitted": record.last_submitted,
        "streak": record.streak,
        "last_streak_day": record.last_streak_day.isoformat() if record.last_streak_day else None,
        "last_reminded": record.last_reminded,
    }


async def _fetch(session: AsyncSession, query: str, params: dict[str, Any]) -> list[ObjectiveRecord]:
    try:
        result = await session.execute(text(query), params)
        columns = list(result.keys())
        rows = [dict(zip(columns, r)) for r in result.fetchall()]
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error("objectives read failed: %s", exc)
        raise StorageError(str(exc)) from exc
    return [_row_to_record(r) for r in rows]


async def _write(session: AsyncSession, query: str, params: dict[str, Any]) -> int:
    try:
        result = await session.execute(text(query), params)
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        raise
    return result.rowcount


async def get_objective(session: AsyncSession, user_id: str, name: str) -> ObjectiveRecord | None:
    """Fetch one objective by key. Returns None when absent."""
    rows = await _fetch(
        session,
        f'SELECT {_COLUMNS} FROM objectives WHERE "userId" = :user_id AND "name" = :name',
        {"user_id": user_id, "name": name},
    )
    return rows[0] if rows else None


async def list_objectives_for_user(session: AsyncSession, user_id: str) -> Sequence[ObjectiveRecord]:
    """All objectives owned by a user, ordered by name. Empty list when none."""
    return await _fetch(
        session,
        f'SELECT {_COLUMNS} FROM objectives WHERE "userId" = :user_id ORDER BY "name"',
        {"user_id": user_id},
    )


async def create_objective(session: AsyncSession, user_id: str, name: str, frequency: str) -> ObjectiveRecord:
    """Insert a fresh objective. Raises ObjectiveExists if the key is taken."""
    record = ObjectiveRecord(user_id=user_id, name=name, frequency=frequency)
    try:
        await _write(
            session,
            f"INSERT INTO objectives ({_COLUMNS}) "
            "VALUES (:user_id, :name, :frequency, NULL, 0, NULL, NULL)",
            _record_params(record),
        )
    except IntegrityError as exc:
        raise ObjectiveExists(user_id, name) from exc
    except SQLAlchemyError as exc:
        logger.error("create failed for %s/%s: %s", user_id, name, exc)
        raise StorageError(str(exc)) from exc
    return record


async def upsert_objective(session: AsyncSession, record: ObjectiveRecord) -> None:
    """Insert or fully replace the non-key fields of a record."""
    try:
        await _write(
            session,
            f"INSERT INTO objectives ({_COLUMNS}) "
            "VALUES (:user_id, :name, :frequency, :last_submitted, :streak, :last_streak_day, :last_reminded) "
            'ON CONFLICT ("userId", "name") DO UPDATE SET '
            '"frequency" = excluded."frequency", '
            '"lastSubmitted" = excluded."lastSubmitted", '
            '"streak" = excluded."streak", '
            '"lastStreakDay" = excluded."lastStreakDay", '
            '"lastReminded" = excluded."lastReminded"',
            _record_params(record),
        )
    except SQLAlchemyError as exc:
        logger.error("upsert failed for %s/%s: %s", record.user_id, record.name, exc)
        raise StorageError(str(exc)) from exc


async def delete_objective(session: AsyncSession, user_id: str, name: str) -> bool:
    """Remove an objective. Safe when absent; returns whether a row went away."""
    try:
        deleted = await _write(
            session,
            'DELETE FROM objectives WHERE "userId" = :user_id AND "name" = :name',
            {"user_id": user_id, "name": name},
        )
    except SQLAlchemyError as exc:
        logger.error("delete failed for %s/%s: %s", user_id, name, exc)
        raise StorageError(str(exc)) from exc
    return deleted > 0


async def find_stale_objectives(session: AsyncSession, cutoff: int) -> Sequence[ObjectiveRecord]:
    """Objectives neither submitted nor reminded since `cutoff` (epoch ms)."""
    return await _fetch(
        session,
        f"SELECT {_COLUMNS} FROM objectives "
        'WHERE ("lastSubmitted" IS NULL OR "lastSubmitted" < :cutoff) '
        'AND ("lastReminded" IS NULL OR "lastReminded" < :cutoff) '
        'ORDER BY "userId", "name"',
        {"cutoff": cutoff},
    )


async def mark_reminded(session: AsyncSession, user_id: str, name: str, now: int) -> None:
    """Set lastReminded only, leaving submission state alone."""
    try:
        await _write(
            session,
            'UPDATE objectives SET "lastReminded" = :now WHERE "userId" = :user_id AND "name" = :name',
            {"now": now, "user_id": user_id, "name": name},
        )
    except SQLAlchemyError as exc:
        logger.error("mark_reminded failed for %s/%s: %s", user_id, name, exc)
        raise StorageError(str(exc)) from exc
