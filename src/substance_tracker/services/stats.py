"""Statistics derived from substances and entries.

The module-level functions are pure: they take domain objects and return new
values without touching their inputs. Masses are rounded to 2 decimals, rates
to 3 and percentage changes to 1.
"""

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo

from substance_tracker.domain.errors import NotFoundError
from substance_tracker.domain.models import Entry, Substance, round_mass
from substance_tracker.domain.stats import (
    ActualMassUsage,
    DayOfWeekUsage,
    DepletionProjection,
    MassSegment,
    OverallStats,
    PersonReport,
    SubstanceReport,
    SubstanceSummary,
    SubstanceUsage,
    WeeklyComparison,
    WeekTotals,
)
from substance_tracker.domain.timestamps import now_local
from substance_tracker.services.store import DatasetStore

RATE_PLACES = 3
PERCENT_PLACES = 1
REMAINING_SEGMENT = "Remaining"
DAY_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")


def entries_for_substance(entries: Sequence[Entry], substance_id: str) -> list[Entry]:
    """Return entries recorded against a substance."""
    return [entry for entry in entries if entry.substance_id == substance_id]


def entries_for_person(entries: Sequence[Entry], person: str) -> list[Entry]:
    """Return a person's entries, oldest first."""
    return _chronological(entry for entry in entries if entry.person == person)


def entries_in_range(
    entries: Sequence[Entry], start: datetime, end: datetime
) -> list[Entry]:
    """Return entries logged between ``start`` and ``end`` inclusive."""
    return [entry for entry in entries if start <= entry.logged_at <= end]


def unique_people(entries: Sequence[Entry]) -> list[str]:
    """Return the sorted distinct people that recorded entries."""
    return sorted({entry.person for entry in entries})


def remaining(substance: Substance, entries: Sequence[Entry]) -> float:
    """Advertised mass minus all recorded deltas. May be negative."""
    used = _sum_deltas(entries_for_substance(entries, substance.id))
    return round_mass(substance.advertised_mass - used)


def usage_rate(substance: Substance, entries: Sequence[Entry]) -> float:
    """Grams per day between the first and last entry for a substance.

    Returns 0 with fewer than two entries or when every entry falls on the
    same calendar day.
    """
    substance_entries = _chronological(entries_for_substance(entries, substance.id))
    if len(substance_entries) < 2:  # noqa: PLR2004
        return 0.0
    elapsed_days = (
        substance_entries[-1].logged_at.date() - substance_entries[0].logged_at.date()
    ).days
    if elapsed_days == 0:
        return 0.0
    return round_mass(_sum_deltas(substance_entries) / elapsed_days, RATE_PLACES)


def projected_depletion(
    substance: Substance,
    entries: Sequence[Entry],
    today: date | None = None,
    tz: tzinfo | None = None,
) -> DepletionProjection:
    """Project when a substance runs out at its current usage rate.

    ``today`` defaults to the current date in ``tz``.
    """
    left = remaining(substance, entries)
    if left <= 0:
        return DepletionProjection(depleted=True, days_remaining=0, date=None)
    rate = usage_rate(substance, entries)
    if rate == 0 or len(entries) < 2:  # noqa: PLR2004
        return DepletionProjection(depleted=False, days_remaining=None, date=None)
    days_remaining = math.ceil(left / rate)
    start = today or now_local(tz).date()
    return DepletionProjection(
        depleted=False,
        days_remaining=days_remaining,
        date=start + timedelta(days=days_remaining),
    )


def actual_mass_used(substance: Substance, entries: Sequence[Entry]) -> ActualMassUsage:
    """Mass used by a substance across everyone.

    With a recorded final mass the usage is measured against the container;
    otherwise it is the sum of deltas.
    """
    substance_entries = entries_for_substance(entries, substance.id)
    used_from_entries = _sum_deltas(substance_entries)
    if substance.gross_final_mass is not None:
        actual = substance.reference_mass - substance.gross_final_mass
    else:
        actual = used_from_entries
    count = len(substance_entries)
    return ActualMassUsage(
        actual_mass_used=round_mass(actual),
        used_from_entries=round_mass(used_from_entries),
        has_final_mass=substance.has_final_mass,
        session_count=count,
        avg_session_mass=round_mass(actual / count, RATE_PLACES) if count else 0.0,
    )


def substance_summary(
    substance: Substance, entries: Sequence[Entry]
) -> SubstanceSummary:
    """Entry count, totals and the most recent entry for a substance."""
    substance_entries = _chronological(entries_for_substance(entries, substance.id))
    total_used = _sum_deltas(substance_entries)
    count = len(substance_entries)
    return SubstanceSummary(
        total_entries=count,
        total_used=round_mass(total_used),
        remaining=remaining(substance, entries),
        average_usage=round_mass(total_used / count) if count else 0.0,
        last_entry=substance_entries[-1] if substance_entries else None,
    )


def overall_stats(entries: Sequence[Entry], person: str) -> OverallStats:
    """Totals and daily averages for one person's entries.

    Daily averages are given against the calendar span from the first to the
    last entry and against the number of days with at least one entry.
    """
    person_entries = entries_for_person(entries, person)
    if not person_entries:
        return OverallStats(
            total_mass=0.0,
            total_sessions=0,
            first_entry=None,
            last_entry=None,
            calendar_days=0,
            active_days=0,
            mass_per_day=0.0,
            sessions_per_day=0.0,
            mass_per_active_day=0.0,
            sessions_per_active_day=0.0,
        )
    total_mass = _sum_deltas(person_entries)
    sessions = len(person_entries)
    calendar_days = _calendar_days(person_entries)
    active_days = len({entry.logged_at.date() for entry in person_entries})
    return OverallStats(
        total_mass=round_mass(total_mass),
        total_sessions=sessions,
        first_entry=person_entries[0].logged_at,
        last_entry=person_entries[-1].logged_at,
        calendar_days=calendar_days,
        active_days=active_days,
        mass_per_day=round_mass(total_mass / calendar_days, RATE_PLACES),
        sessions_per_day=round_mass(sessions / calendar_days, RATE_PLACES),
        mass_per_active_day=round_mass(total_mass / active_days, RATE_PLACES),
        sessions_per_active_day=round_mass(sessions / active_days, RATE_PLACES),
    )


def per_substance_stats(
    entries: Sequence[Entry],
    person: str,
    substances: Sequence[Substance],
    include_inactive: bool = False,
) -> list[SubstanceUsage]:
    """Per-substance usage for one person, heaviest first."""
    person_entries = entries_for_person(entries, person)
    rows = []
    for substance in substances:
        if not (include_inactive or substance.active):
            continue
        substance_entries = entries_for_substance(person_entries, substance.id)
        if not substance_entries:
            rows.append(
                SubstanceUsage(
                    substance=substance,
                    total_mass=0.0,
                    sessions=0,
                    mass_per_day=0.0,
                    sessions_per_day=0.0,
                    actual_mass_used=0.0,
                    avg_session_mass=0.0,
                )
            )
            continue
        total_mass = _sum_deltas(substance_entries)
        days = _calendar_days(substance_entries)
        actual = actual_mass_used(substance, entries)
        rows.append(
            SubstanceUsage(
                substance=substance,
                total_mass=round_mass(total_mass),
                sessions=len(substance_entries),
                mass_per_day=round_mass(total_mass / days, RATE_PLACES),
                sessions_per_day=round_mass(len(substance_entries) / days, RATE_PLACES),
                actual_mass_used=actual.actual_mass_used,
                avg_session_mass=actual.avg_session_mass,
            )
        )
    return sorted(rows, key=lambda row: row.total_mass, reverse=True)


def weekly_comparison(
    entries: Sequence[Entry],
    person: str,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> WeeklyComparison:
    """Compare the current Sunday-start week with the week before it."""
    current_time = now or now_local(tz)
    days_since_sunday = (current_time.weekday() + 1) % 7
    current_start = (current_time - timedelta(days=days_since_sunday)).replace(
        hour=0, minute=0, second=0, microsecond=0
    )
    previous_start = current_start - timedelta(days=7)

    person_entries = entries_for_person(entries, person)
    current = [e for e in person_entries if e.logged_at >= current_start]
    previous = [
        e for e in person_entries if previous_start <= e.logged_at < current_start
    ]
    current_mass = _sum_deltas(current)
    previous_mass = _sum_deltas(previous)

    return WeeklyComparison(
        current=WeekTotals(
            start=current_start,
            end=current_time,
            mass=round_mass(current_mass),
            sessions=len(current),
        ),
        previous=WeekTotals(
            start=previous_start,
            end=current_start,
            mass=round_mass(previous_mass),
            sessions=len(previous),
        ),
        mass_change=_percent_change(current_mass, previous_mass),
        sessions_change=_percent_change(len(current), len(previous)),
    )


def mass_distribution(
    substance: Substance, entries: Sequence[Entry]
) -> list[MassSegment]:
    """Split a substance's mass by person, plus what remains."""
    totals: dict[str, float] = {}
    for entry in entries_for_substance(entries, substance.id):
        totals[entry.person] = totals.get(entry.person, 0.0) + entry.delta
    segments = [
        MassSegment(name=person, value=round_mass(totals[person]))
        for person in sorted(totals)
    ]
    left = max(0.0, substance.advertised_mass - sum(totals.values()))
    segments.append(MassSegment(name=REMAINING_SEGMENT, value=round_mass(left)))
    return segments


def day_of_week_breakdown(
    entries: Sequence[Entry], person: str
) -> list[DayOfWeekUsage]:
    """Average mass and sessions per active day, for each weekday Sun..Sat."""
    mass = [0.0] * 7
    sessions = [0] * 7
    days: list[set[date]] = [set() for _ in range(7)]
    for entry in entries_for_person(entries, person):
        logged_at = entry.logged_at
        index = (logged_at.weekday() + 1) % 7
        mass[index] += entry.delta
        sessions[index] += 1
        days[index].add(logged_at.date())
    return [
        DayOfWeekUsage(
            day=DAY_NAMES[index],
            avg_mass=round_mass(mass[index] / len(days[index])) if days[index] else 0.0,
            avg_sessions=(
                round_mass(sessions[index] / len(days[index]), RATE_PLACES)
                if days[index]
                else 0.0
            ),
        )
        for index in range(7)
    ]


@dataclass
class StatsService:
    """Computes statistics over the stored dataset."""

    store: DatasetStore

    def substance_report(
        self, substance_id: str, today: date | None = None
    ) -> SubstanceReport:
        """Return every per-substance statistic for one substance."""
        dataset = self.store.load()
        substance = dataset.find_substance(substance_id)
        if substance is None:
            raise NotFoundError(f"Substance {substance_id} not found")
        entries = dataset.entries
        return SubstanceReport(
            substance=substance,
            remaining=remaining(substance, entries),
            usage_rate=usage_rate(substance, entries),
            depletion=projected_depletion(
                substance, entries, today=today, tz=self.store.timezone
            ),
            distribution=mass_distribution(substance, entries),
            summary=substance_summary(substance, entries),
            actual_usage=actual_mass_used(substance, entries),
        )

    def person_report(
        self,
        person: str,
        include_inactive: bool = False,
        now: datetime | None = None,
    ) -> PersonReport:
        """Return every per-person statistic for one person."""
        dataset = self.store.load()
        entries = dataset.entries
        return PersonReport(
            person=person,
            overall=overall_stats(entries, person),
            per_substance=per_substance_stats(
                entries, person, dataset.substances, include_inactive
            ),
            weekly=weekly_comparison(
                entries, person, now=now, tz=self.store.timezone
            ),
            day_of_week=day_of_week_breakdown(entries, person),
        )

    def people(self) -> list[str]:
        """Return everyone who has recorded an entry."""
        return unique_people(self.store.load().entries)


def _chronological(entries: Iterable[Entry]) -> list[Entry]:
    return sorted(entries, key=lambda entry: entry.logged_at)


def _sum_deltas(entries: Sequence[Entry]) -> float:
    return sum((entry.delta for entry in entries), 0.0)


def _calendar_days(entries: list[Entry]) -> int:
    """Inclusive day count from the first to the last of sorted entries."""
    return (entries[-1].logged_at.date() - entries[0].logged_at.date()).days + 1


def _percent_change(current: float, previous: float) -> float:
    if previous <= 0:
        return 0.0
    return round_mass((current - previous) / previous * 100, PERCENT_PLACES)
