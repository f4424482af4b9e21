"""Compose the four stages into one batch run.

Records are screened for shape problems first, then processed one species
at a time. An integrity error (bad calendar, missing adjustment, forbidden
state transition) aborts only the species that raised it: its records are
reset to null derived fields and an IntegrityFault is reported. Every
other species still completes.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence
from typing import Any

from breeding_atlas.analysis.adjudicator import Adjudicator
from breeding_atlas.analysis.code_classifier import CodeClassifier
from breeding_atlas.analysis.models import (
    DataQualityWarning,
    IntegrityFault,
    PipelineResult,
    ReviewItem,
)
from breeding_atlas.analysis.season_calendar import SeasonCalendar, build_season_calendar
from breeding_atlas.analysis.tier_evaluator import TierEvaluator
from breeding_atlas.exceptions import IntegrityError
from breeding_atlas.reference.tables import ReferenceTables
from breeding_atlas.schemas import Observation

logger = logging.getLogger(__name__)


def parse_observations(
    rows: Iterable[dict[str, Any]], warnings: list[DataQualityWarning]
) -> list[Observation]:
    """Validate raw observation rows without dropping any of them.

    Fields that fail to parse are nulled and reported as warnings, as are
    identifiers already used by an earlier row.
    """
    observations = []
    seen: set[str] = set()
    for row in rows:
        obs, bad_fields = Observation.parse_lenient(row)
        if bad_fields:
            message = f"Unparseable fields {bad_fields}"
            logger.warning("%s (observation %s)", message, obs.id)
            warnings.append(DataQualityWarning("bad-field", message, obs.species, obs.id))
        if obs.id is not None:
            if obs.id in seen:
                message = f"Identifier {obs.id!r} used by more than one record"
                logger.warning("%s (observation %s)", message, obs.id)
                warnings.append(DataQualityWarning("duplicate-id", message, obs.species, obs.id))
            seen.add(obs.id)
        observations.append(obs)
    return observations


def screen(
    observations: Iterable[Observation],
    first_year: int,
    last_year: int,
    warnings: list[DataQualityWarning],
) -> list[Observation]:
    """Return the records fit for classification, warning about the rest."""
    fit = []
    for obs in observations:
        missing = obs.missing_fields()
        if missing:
            message = f"Missing required fields {missing}"
        elif not first_year <= (obs.year or 0) <= last_year:
            message = f"Observed {obs.observed_on} outside {first_year}-{last_year}"
        else:
            fit.append(obs)
            continue
        logger.warning("%s (observation %s)", message, obs.id)
        warnings.append(DataQualityWarning("shape", message, obs.species, obs.id))
    return fit


def run_pipeline(
    observations: Sequence[Observation],
    tables: ReferenceTables,
    first_year: int,
    last_year: int,
    calendar: SeasonCalendar | None = None,
) -> PipelineResult:
    """Classify, evaluate and adjudicate a batch of observations in place.

    Args:
        observations: Parsed observation records; mutated in place.
        tables: Frozen reference tables for the run.
        first_year: First year of the collection window.
        last_year: Last year of the collection window.
        calendar: Prebuilt season calendar; built from ``tables`` if omitted.

    Returns:
        PipelineResult with the review queue, colony discoveries, warnings
        and per-species integrity faults.
    """
    result = PipelineResult(observations=list(observations))
    warnings = result.warnings

    failed: dict[str, IntegrityError] = {}
    if calendar is None:
        calendar, partition_errors = build_season_calendar(tables.anchors)
        for error in partition_errors:
            failed[error.species or ""] = error

    result.calendar = calendar

    by_species: dict[str, list[Observation]] = defaultdict(list)
    for obs in screen(result.observations, first_year, last_year, warnings):
        by_species[obs.species or ""].append(obs)

    classifier = CodeClassifier(tables, warnings)
    evaluator = TierEvaluator(tables, calendar, warnings)
    adjudicator = Adjudicator(tables)

    for species in sorted(set(by_species) | set(failed)):
        members = by_species.get(species, [])
        if species in failed:
            _abort(result, species, members, failed[species])
            continue
        try:
            for obs in members:
                classifier.classify(obs)
            discoveries = evaluator.settle(members)
            queue: list[ReviewItem] = adjudicator.adjudicate_all(members)
        except IntegrityError as exc:
            _abort(result, species, members, exc)
            continue
        result.colonies.extend(discoveries)
        result.review_queue.extend(queue)

    logger.info("Pipeline finished: %s", result.summary())
    return result


def _abort(
    result: PipelineResult, species: str, members: list[Observation], error: IntegrityError
) -> None:
    for obs in members:
        obs.reset_derived()
    logger.error("Aborted %d records of %r: %s", len(members), species, error)
    result.faults.append(
        IntegrityFault(
            species=species,
            error=type(error).__name__,
            message=str(error),
            observation_count=len(members),
        )
    )
