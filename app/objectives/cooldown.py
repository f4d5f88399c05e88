"""Cooldown policy — pure functions over (frequency, last_submitted).

Windows are deliberately shorter than the cadence they guard (22h for a
day, 7d-6h for a week, 30d-6h for a month) so a user who submits as soon as
they are allowed never drifts later in the day from cycle to cycle.
"""

from __future__ import annotations

HOUR_MS = 60 * 60 * 1000

COOLDOWN_HOURS: dict[str, int] = {
    "daily": 22,
    "weekly": 7 * 24 - 6,
    "monthly": 30 * 24 - 6,
}

NOMINAL_PERIOD_HOURS: dict[str, int] = {
    "daily": 24,
    "weekly": 7 * 24,
    "monthly": 30 * 24,
}


def cooldown_ms(frequency: str) -> int | None:
    """Cooldown window in millis, or None for an unknown frequency."""
    hours = COOLDOWN_HOURS.get(frequency)
    return None if hours is None else hours * HOUR_MS


def next_allowed(frequency: str, last_submitted: int | None) -> int:
    """Earliest epoch-millis at which another submission is accepted.

    0 when the objective was never submitted or its frequency is unknown.
    """
    if last_submitted is None:
        return 0
    window = cooldown_ms(frequency)
    if window is None:
        return 0
    return last_submitted + window


def is_eligible(frequency: str, last_submitted: int | None, now: int) -> bool:
    if last_submitted is None:
        return True
    return now >= next_allowed(frequency, last_submitted)
