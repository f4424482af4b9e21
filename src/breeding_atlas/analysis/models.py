"""Result structures produced by the analysis stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import date

    from breeding_atlas.analysis.season_calendar import SeasonCalendar
    from breeding_atlas.schemas import Observation


@dataclass(frozen=True)
class DataQualityWarning:
    """Recoverable problem with a single record or species.

    The affected record keeps null derived fields; processing continues.
    """

    kind: str
    message: str
    species: str | None = None
    observation_id: str | None = None


@dataclass(frozen=True)
class IntegrityFault:
    """Fatal problem that aborted processing for one species."""

    species: str
    error: str
    message: str
    observation_count: int = 0


@dataclass(frozen=True, order=True)
class ColonyDiscovery:
    """A block newly recognised as a colony during this run."""

    species: str
    block: str
    first_confirmed: date
    observation_id: str | None = field(default=None, compare=False)


@dataclass(frozen=True)
class ReviewItem:
    """An observation routed to manual review, with the context a reviewer needs."""

    observation_id: str | None
    species: str | None
    reported_code: str | None
    resolved_code: str | None
    observed_on: date | None
    region: str | None
    block: str | None
    phase: str | None
    expectation_tier: str | None
    confidence_tier: str | None
    expected_here: bool | None
    has_media: bool
    has_comments: bool
    review_reason: str


@dataclass
class PipelineResult:
    """Everything one pipeline run produces."""

    observations: list[Observation]
    review_queue: list[ReviewItem] = field(default_factory=list)
    colonies: list[ColonyDiscovery] = field(default_factory=list)
    warnings: list[DataQualityWarning] = field(default_factory=list)
    faults: list[IntegrityFault] = field(default_factory=list)
    calendar: SeasonCalendar | None = None

    @property
    def auto_resolved(self) -> list[Observation]:
        """Adjudicated observations that did not need a reviewer."""
        queued = {item.observation_id for item in self.review_queue}
        return [
            obs
            for obs in self.observations
            if obs.breeding_category is not None
            and (obs.expectation_tier is None or obs.confidence_tier is not None)
            and obs.id not in queued
        ]

    def summary(self) -> dict[str, int]:
        return {
            "observations": len(self.observations),
            "auto_resolved": len(self.auto_resolved),
            "needs_review": len(self.review_queue),
            "new_colonies": len(self.colonies),
            "warnings": len(self.warnings),
            "faults": len(self.faults),
        }
