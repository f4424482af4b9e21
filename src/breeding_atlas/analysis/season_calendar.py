"""Per-species partition of the year into five breeding phases.

Each species' calendar is derived from two safe dates (``breeding_start``,
``breeding_end``) and two optional recorded extremes (``early_record``,
``late_record``):

    1 ... early ... | pre ... | breeding ... | post ... | late ... 366
                    ^er       ^bs          ^be        ^lr

When ``breeding_start`` falls on or after ``breeding_end`` the safe dates
span the new year (owls, some winter breeders). Early and pre-breeding are
then absent, breeding is the two-piece union ``[1, be] ∪ [bs, 366]`` and
post/late fill the gap between them.

Days are leap-adjusted: every month-day is placed in a leap reference year,
so Mar 1 is always day 61 and Dec 31 always day 366 regardless of the
observation's year.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from datetime import date

from breeding_atlas.exceptions import PartitionError
from breeding_atlas.reference.tables import ANCHOR_YEAR, CalendarAnchors
from breeding_atlas.schemas import Observation, Phase

logger = logging.getLogger(__name__)

DAYS_IN_YEAR = 366


def day_of_year(d: date) -> int:
    """Leap-adjusted day of year (1-366)."""
    return date(ANCHOR_YEAR, d.month, d.day).timetuple().tm_yday


@dataclass(frozen=True)
class DayRange:
    """Inclusive range of days of year."""

    start: int
    end: int

    def __len__(self) -> int:
        return self.end - self.start + 1

    def __contains__(self, day: object) -> bool:
        return isinstance(day, int) and self.start <= day <= self.end

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


def _span(start: int, end: int) -> tuple[DayRange, ...]:
    """Zero or one DayRange; empty when ``end < start``."""
    return (DayRange(start, end),) if start <= end else ()


@dataclass(frozen=True)
class SpeciesCalendar:
    """Five phases for one species; an absent phase has no ranges."""

    species: str
    phases: Mapping[Phase, tuple[DayRange, ...]]
    wraps: bool = False

    def ranges(self, phase: Phase) -> tuple[DayRange, ...]:
        return self.phases.get(phase, ())

    def length(self, phase: Phase) -> int:
        return sum(len(r) for r in self.ranges(phase))

    def phase_of(self, day: int) -> Phase | None:
        for phase in Phase:
            if any(day in r for r in self.ranges(phase)):
                return phase
        return None

    def describe(self) -> dict[str, str]:
        """Human-readable intervals, e.g. ``{"breeding": "1-60, 300-366"}``."""
        return {
            phase.value: ", ".join(str(r) for r in self.ranges(phase)) or "absent"
            for phase in Phase
        }


def build_species_calendar(anchors: CalendarAnchors) -> SpeciesCalendar:
    """Derive and validate the five-phase partition for one species.

    Raises:
        PartitionError: If the derived phases do not cover 1-366 exactly once.
    """
    bs = day_of_year(anchors.breeding_start)
    be = day_of_year(anchors.breeding_end)
    er = day_of_year(anchors.early_record) if anchors.early_record else None
    lr = day_of_year(anchors.late_record) if anchors.late_record else None

    if bs < be:
        pre_start = er if er is not None and er < bs else None
        pre_end = bs - 1
        post_end = lr if lr is not None and lr > be else None
        phases = {
            Phase.EARLY: _span(1, (pre_start or bs) - 1),
            Phase.PRE: _span(pre_start, pre_end) if pre_start else (),
            Phase.BREEDING: _span(bs, be),
            Phase.POST: _span(be + 1, post_end) if post_end else (),
            Phase.LATE: _span((post_end or be) + 1, DAYS_IN_YEAR),
        }
        wraps = False
    else:
        # Post-breeding ends at the late record when it falls in the gap,
        # otherwise it runs up to the day before breeding resumes.
        post_end = bs - 1
        if lr is not None and be < lr < bs:
            post_end = min(bs - 1, lr)
        phases = {
            Phase.EARLY: (),
            Phase.PRE: (),
            Phase.BREEDING: _span(1, be) + _span(max(bs, be + 1), DAYS_IN_YEAR),
            Phase.POST: _span(be + 1, post_end),
            Phase.LATE: _span(post_end + 1, bs - 1),
        }
        wraps = True

    calendar = SpeciesCalendar(species=anchors.species, phases=phases, wraps=wraps)
    validate_partition(calendar)
    return calendar


def validate_partition(calendar: SpeciesCalendar) -> None:
    """Check that the phases cover every day 1-366 exactly once.

    Raises:
        PartitionError: With the species and its computed intervals.
    """
    coverage = [0] * (DAYS_IN_YEAR + 1)
    total = 0
    for phase in Phase:
        for r in calendar.ranges(phase):
            if r.start < 1 or r.end > DAYS_IN_YEAR:
                msg = f"{phase} range {r} falls outside 1-{DAYS_IN_YEAR}"
                raise PartitionError(msg, calendar.species, calendar.describe())
            total += len(r)
            for day in range(r.start, r.end + 1):
                coverage[day] += 1

    if total == 0:
        raise PartitionError("All phases absent", calendar.species, calendar.describe())
    if total != DAYS_IN_YEAR:
        msg = f"Phase lengths sum to {total}, not {DAYS_IN_YEAR}"
        raise PartitionError(msg, calendar.species, calendar.describe())
    gaps = [day for day in range(1, DAYS_IN_YEAR + 1) if coverage[day] != 1]
    if gaps:
        msg = f"Days covered zero or several times: {gaps[:10]}"
        raise PartitionError(msg, calendar.species, calendar.describe())


class SeasonCalendar:
    """Phase lookup across all species with configured anchors."""

    def __init__(self, calendars: Mapping[str, SpeciesCalendar]) -> None:
        self._calendars = dict(calendars)

    def __contains__(self, species: object) -> bool:
        return species in self._calendars

    def get(self, species: str) -> SpeciesCalendar | None:
        return self._calendars.get(species)

    def __iter__(self) -> Iterator[SpeciesCalendar]:
        return (self._calendars[s] for s in sorted(self._calendars))

    @property
    def species(self) -> list[str]:
        return sorted(self._calendars)

    def classify_day(self, species: str, day: int) -> Phase | None:
        """Phase of a day for a species; None only for species without a calendar."""
        if not 1 <= day <= DAYS_IN_YEAR:
            msg = f"Day of year must be within 1-{DAYS_IN_YEAR}, got {day}"
            raise ValueError(msg)
        calendar = self._calendars.get(species)
        if calendar is None:
            return None
        phase = calendar.phase_of(day)
        if phase is None:
            raise PartitionError(f"Day {day} has no phase", species, calendar.describe())
        return phase

    def classify(self, observation: Observation) -> Phase | None:
        if observation.species is None or observation.observed_on is None:
            return None
        return self.classify_day(observation.species, day_of_year(observation.observed_on))


def build_season_calendar(
    anchors: Mapping[str, CalendarAnchors] | Iterable[CalendarAnchors],
) -> tuple[SeasonCalendar, list[PartitionError]]:
    """Build calendars for every species, collecting partition failures.

    A species whose anchors fail validation is left out of the calendar and
    its error is returned so the caller can abort that species alone.
    """
    items = anchors.values() if isinstance(anchors, Mapping) else anchors
    calendars: dict[str, SpeciesCalendar] = {}
    errors: list[PartitionError] = []
    for species_anchors in items:
        try:
            calendars[species_anchors.species] = build_species_calendar(species_anchors)
        except PartitionError as exc:
            logger.error("Season calendar rejected: %s", exc)
            errors.append(exc)
    return SeasonCalendar(calendars), errors
