"""Objective record and API contracts: dataclasses for rows, Pydantic v2 for the wire."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from pydantic import BaseModel, Field


class Frequency(str, Enum):
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"


def parse_frequency(value: str | None) -> Frequency | None:
    """Return the matching Frequency, or None for blank/unknown values."""
    try:
        return Frequency(value)
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Rows
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class ObjectiveRecord:
    """One row of the objectives table, keyed by (user_id, name).

    frequency stays a plain string so rows written with a cadence this
    version does not know still load (they are treated as always eligible).
    """

    user_id: str
    name: str
    frequency: str
    last_submitted: int | None = None  # epoch millis
    streak: int = 0
    last_streak_day: date | None = None
    last_reminded: int | None = None  # epoch millis

    @property
    def key(self) -> tuple[str, str]:
        return (self.user_id, self.name)


@dataclass(frozen=True, slots=True)
class SubmissionResult:
    objective: str
    streak: int
    next_allowed: int
    attachment_url: str


@dataclass(frozen=True, slots=True)
class ObjectiveStatus:
    name: str
    frequency: str
    available_at: int | None  # None means available now
    streak: int

    @property
    def available_now(self) -> bool:
        return self.available_at is None


@dataclass(slots=True)
class SweepReport:
    checked_at: int
    reminded: list[tuple[str, str]] = field(default_factory=list)
    failed: list[tuple[str, str]] = field(default_factory=list)


# ---------------------------------------------------------------------------
# JSON API
# ---------------------------------------------------------------------------


class ObjectiveCreate(BaseModel):
    name: str = Field(..., description="Objective label, unique per user")
    frequency: str = Field(..., description="daily | weekly | monthly")


class ObjectiveOut(BaseModel):
    user_id: str
    name: str
    frequency: str
    last_submitted: int | None = None
    streak: int = 0
    last_streak_day: date | None = None
    last_reminded: int | None = None


class ObjectiveStatusOut(BaseModel):
    name: str
    frequency: str
    available: str | int  # "now" or epoch millis of next eligibility
    streak: int


class SubmissionCreate(BaseModel):
    attachment_url: str = Field(..., description="URL of the proof-of-completion image")


class SubmissionOut(BaseModel):
    objective: str
    streak: int
    next_allowed: int
    attachment_url: str


class SweepReportOut(BaseModel):
    checked_at: int
    reminded: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
