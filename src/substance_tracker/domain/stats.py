"""Domain models for derived statistics."""

from dataclasses import dataclass
from datetime import date, datetime

from substance_tracker.domain.models import Entry, Substance


@dataclass(frozen=True)
class DepletionProjection:
    """Projected depletion of a substance.

    ``days_remaining`` and ``date`` are None when there is not enough usage
    history to project.
    """

    depleted: bool
    days_remaining: int | None
    date: date | None


@dataclass(frozen=True)
class ActualMassUsage:
    """Mass used by a substance, reconciled against a recorded final mass."""

    actual_mass_used: float
    used_from_entries: float
    has_final_mass: bool
    session_count: int
    avg_session_mass: float


@dataclass(frozen=True)
class SubstanceSummary:
    """Entry totals for one substance."""

    total_entries: int
    total_used: float
    remaining: float
    average_usage: float
    last_entry: Entry | None


@dataclass(frozen=True)
class OverallStats:
    """Usage totals for one person across all substances."""

    total_mass: float
    total_sessions: int
    first_entry: datetime | None
    last_entry: datetime | None
    calendar_days: int
    active_days: int
    mass_per_day: float
    sessions_per_day: float
    mass_per_active_day: float
    sessions_per_active_day: float


@dataclass(frozen=True)
class SubstanceUsage:
    """One person's usage of one substance."""

    substance: Substance
    total_mass: float
    sessions: int
    mass_per_day: float
    sessions_per_day: float
    actual_mass_used: float
    avg_session_mass: float


@dataclass(frozen=True)
class WeekTotals:
    """Mass and session totals for a week."""

    start: datetime
    end: datetime
    mass: float
    sessions: int


@dataclass(frozen=True)
class WeeklyComparison:
    """Current week against the previous week, with percentage changes."""

    current: WeekTotals
    previous: WeekTotals
    mass_change: float
    sessions_change: float


@dataclass(frozen=True)
class MassSegment:
    """A named share of a substance's mass."""

    name: str
    value: float


@dataclass(frozen=True)
class DayOfWeekUsage:
    """Average usage on one weekday."""

    day: str
    avg_mass: float
    avg_sessions: float


@dataclass(frozen=True)
class SubstanceReport:
    """All per-substance statistics."""

    substance: Substance
    remaining: float
    usage_rate: float
    depletion: DepletionProjection
    distribution: list[MassSegment]
    summary: SubstanceSummary
    actual_usage: ActualMassUsage


@dataclass(frozen=True)
class PersonReport:
    """All per-person statistics."""

    person: str
    overall: OverallStats
    per_substance: list[SubstanceUsage]
    weekly: WeeklyComparison
    day_of_week: list[DayOfWeekUsage]
