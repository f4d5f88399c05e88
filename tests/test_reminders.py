"""Tests for the reminder sweep and its scheduler."""

from __future__ import annotations

import asyncio
from unittest.mock import patch

from sqlalchemy import text

from app.objectives import store
from app.objectives.errors import StorageError
from app.objectives.models import ObjectiveRecord
from app.objectives.notifier import reminder_text
from app.objectives.reminders import ReminderScheduler, sweep
from tests.conftest import HOUR, FakeNotifier, utc

NOW = utc(2026, 3, 10)


class TestSweep:
    async def test_stale_record_reminded_once(self, session, notifier):
        await store.upsert_objective(session, ObjectiveRecord("u1", "Run", "daily", last_submitted=NOW - 25 * HOUR))

        report = await sweep(session, notifier, now=NOW)
        assert report.reminded == [("u1", "Run")]
        assert notifier.sent == [("u1", reminder_text("Run"))]
        assert (await store.get_objective(session, "u1", "Run")).last_reminded == NOW

        again = await sweep(session, notifier, now=NOW + 23 * HOUR)
        assert again.reminded == []
        assert len(notifier.sent) == 1

    async def test_reminded_again_after_another_day(self, session, notifier):
        await store.upsert_objective(
            session,
            ObjectiveRecord("u1", "Run", "daily", last_submitted=NOW - 50 * HOUR, last_reminded=NOW - 25 * HOUR),
        )
        report = await sweep(session, notifier, now=NOW)
        assert report.reminded == [("u1", "Run")]

    async def test_never_submitted_is_stale(self, session, notifier):
        await store.create_objective(session, "u1", "Read", "weekly")
        report = await sweep(session, notifier, now=NOW)
        assert report.reminded == [("u1", "Read")]

    async def test_recent_submission_skipped(self, session, notifier):
        await store.upsert_objective(session, ObjectiveRecord("u1", "Run", "daily", last_submitted=NOW - 23 * HOUR))
        report = await sweep(session, notifier, now=NOW)
        assert report.reminded == []
        assert notifier.attempts == []

    async def test_failure_is_isolated(self, session):
        notifier = FakeNotifier(failing={"u1"})
        await store.create_objective(session, "u1", "Run", "daily")
        await store.create_objective(session, "u2", "Read", "daily")

        report = await sweep(session, notifier, now=NOW)
        assert report.failed == [("u1", "Run")]
        assert report.reminded == [("u2", "Read")]
        assert (await store.get_objective(session, "u1", "Run")).last_reminded is None
        assert (await store.get_objective(session, "u2", "Read")).last_reminded == NOW

    async def test_failed_record_retried_next_sweep(self, session):
        notifier = FakeNotifier(failing={"u1"})
        await store.create_objective(session, "u1", "Run", "daily")
        await sweep(session, notifier, now=NOW)

        notifier.failing.clear()
        report = await sweep(session, notifier, now=NOW + HOUR)
        assert report.reminded == [("u1", "Run")]

    async def test_storage_failure_does_not_stop_later_records(self, session, notifier):
        await store.create_objective(session, "a", "Run", "daily")
        await store.create_objective(session, "b", "Run", "daily")
        mark_reminded = store.mark_reminded

        async def flaky_mark(s, user_id, name, now):
            if user_id == "a":
                raise StorageError("disk full")
            await mark_reminded(s, user_id, name, now)

        with patch("app.objectives.reminders.store.mark_reminded", side_effect=flaky_mark):
            report = await sweep(session, notifier, now=NOW)

        assert notifier.attempts == ["a", "b"]
        assert report.failed == [("a", "Run")]
        assert report.reminded == [("b", "Run")]
        assert (await store.get_objective(session, "b", "Run")).last_reminded == NOW

    async def test_unexpected_notifier_error_does_not_stop_later_records(self, session):
        class ExplodingNotifier(FakeNotifier):
            async def send_direct_message(self, user_id, text):
                if user_id == "a":
                    self.attempts.append(user_id)
                    raise RuntimeError("gateway exploded")
                await super().send_direct_message(user_id, text)

        notifier = ExplodingNotifier()
        await store.create_objective(session, "a", "Run", "daily")
        await store.create_objective(session, "b", "Run", "daily")

        report = await sweep(session, notifier, now=NOW)
        assert notifier.attempts == ["a", "b"]
        assert report.failed == [("a", "Run")]
        assert report.reminded == [("b", "Run")]
        assert (await store.get_objective(session, "a", "Run")).last_reminded is None

    async def test_reminder_text_follows_staleness_window(self, session, notifier):
        await store.create_objective(session, "u1", "Run", "daily")
        await sweep(session, notifier, now=NOW, stale_after_ms=48 * HOUR)
        assert notifier.sent == [("u1", reminder_text("Run", 48))]
        assert "last 48 hours" in notifier.sent[0][1]

    async def test_sweep_does_not_touch_submission_state(self, session, notifier):
        rec = ObjectiveRecord("u1", "Run", "daily", last_submitted=NOW - 30 * HOUR, streak=7)
        await store.upsert_objective(session, rec)
        await sweep(session, notifier, now=NOW)
        got = await store.get_objective(session, "u1", "Run")
        assert got.streak == 7
        assert got.last_submitted == NOW - 30 * HOUR


class TestReminderScheduler:
    async def test_run_once_uses_injected_clock(self, session_factory, notifier):
        async with session_factory() as s:
            await store.create_objective(s, "u1", "Run", "daily")

        scheduler = ReminderScheduler(session_factory, notifier, clock=lambda: NOW)
        report = await scheduler.run_once()
        assert report.checked_at == NOW
        assert report.reminded == [("u1", "Run")]

    async def test_start_and_stop(self, session_factory, notifier):
        async with session_factory() as s:
            await store.create_objective(s, "u1", "Run", "daily")

        scheduler = ReminderScheduler(session_factory, notifier, interval=0.01, clock=lambda: NOW)
        scheduler.start()
        assert scheduler.running
        for _ in range(200):
            if notifier.sent:
                break
            await asyncio.sleep(0.01)
        await scheduler.stop()

        assert not scheduler.running
        # Later passes at the same instant find nothing new.
        assert notifier.sent == [("u1", reminder_text("Run"))]

    async def test_stop_without_start(self, session_factory, notifier):
        scheduler = ReminderScheduler(session_factory, notifier)
        await scheduler.stop()
        assert not scheduler.running

    async def test_failed_run_does_not_kill_loop(self, session_factory, engine, notifier):
        calls = 0

        def clock():
            nonlocal calls
            calls += 1
            return NOW

        async with engine.begin() as conn:
            await conn.execute(text("DROP TABLE objectives"))

        scheduler = ReminderScheduler(session_factory, notifier, interval=0.01, clock=clock)
        scheduler.start()
        for _ in range(200):
            if calls >= 2:
                break
            await asyncio.sleep(0.01)
        assert scheduler.running
        await scheduler.stop()
        assert calls >= 2
