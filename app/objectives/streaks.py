"""Streak engine: calendar-day consecutiveness per cadence. Never raises."""

from __future__ import annotations

from datetime import date, datetime, timezone


def streak_day(now_ms: int) -> date:
    """UTC calendar date of an epoch-millis instant."""
    return datetime.fromtimestamp(now_ms / 1000, tz=timezone.utc).date()


def is_consecutive(frequency: str, last_streak_day: date | None, today: date) -> bool:
    """Whether a submission on `today` continues the streak ending on `last_streak_day`.

    weekly accepts any gap of 7–13 days (whole-week count of 1).
    monthly compares month numbers within one year, so December → January
    does not continue a streak.
    """
    if last_streak_day is None:
        return False

    days = (today - last_streak_day).days

    if frequency == "daily":
        return days == 1
    if frequency == "weekly":
        return days // 7 == 1
    if frequency == "monthly":
        return today.month == last_streak_day.month + 1 and today.year == last_streak_day.year
    return False


def next_streak(streak: int, consecutive: bool) -> int:
    return streak + 1 if consecutive else 1
