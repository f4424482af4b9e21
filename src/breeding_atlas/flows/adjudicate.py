"""
Prefect flow for adjudicating a batch of atlas observations.

Reads reference tables and raw observations from the data store, runs the
classification pipeline and writes the derived outputs back.

Run locally:
    python -m breeding_atlas.flows.adjudicate
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from prefect import flow, task
from prefect.cache_policies import NO_CACHE

from breeding_atlas.analysis.models import DataQualityWarning, PipelineResult
from breeding_atlas.analysis.pipeline import parse_observations, run_pipeline
from breeding_atlas.config import get_settings
from breeding_atlas.reference.tables import ReferenceTables, load_reference_tables
from breeding_atlas.serialization import (
    calendar_to_dict,
    colonies_to_list,
    faults_to_dict,
    observation_to_dict,
    review_item_to_dict,
)
from breeding_atlas.store import DataStore

SOURCE = "breeding-atlas"

# Paths relative to the store base
OBSERVATIONS_PATH = Path("raw/observations.json")
ADJUDICATED_PATH = Path("derived/observations.json")
REVIEW_QUEUE_PATH = Path("derived/review_queue.json")
COLONIES_PATH = Path("derived/colonies.json")
FAULTS_PATH = Path("derived/faults.json")
CALENDARS_PATH = Path("derived/calendars.json")


# =============================================================================
# Loading tasks
# =============================================================================


@task(name="load-reference-tables", cache_policy=NO_CACHE)
def load_tables(store: DataStore, escalation_threshold: str | None = None) -> ReferenceTables:
    """Load and validate every reference table."""
    return load_reference_tables(store, escalation_threshold)


@task(name="load-observations", cache_policy=NO_CACHE)
def load_observation_rows(store: DataStore) -> list[dict[str, Any]]:
    """Load raw observation rows; an absent file means an empty batch."""
    rows: list[dict[str, Any]] = store.read(OBSERVATIONS_PATH) or []
    return rows


# =============================================================================
# Processing and saving
# =============================================================================


@task(name="run-pipeline", cache_policy=NO_CACHE)
def adjudicate_rows(
    rows: list[dict[str, Any]],
    tables: ReferenceTables,
    first_year: int,
    last_year: int,
) -> PipelineResult:
    """Parse rows and run every stage of the pipeline."""
    warnings: list[DataQualityWarning] = []
    observations = parse_observations(rows, warnings)
    result = run_pipeline(observations, tables, first_year, last_year)
    result.warnings[:0] = warnings
    return result


@task(name="save-results", cache_policy=NO_CACHE)
def save_results(store: DataStore, result: PipelineResult) -> Path:
    """Write adjudicated observations, review queue, colonies, faults and calendars."""
    summary = result.summary()
    store.write(
        CALENDARS_PATH,
        [calendar_to_dict(c) for c in result.calendar or []],
        source=SOURCE,
    )
    store.write(
        REVIEW_QUEUE_PATH,
        [review_item_to_dict(item) for item in result.review_queue],
        source=SOURCE,
        count=summary["needs_review"],
    )
    store.write(COLONIES_PATH, colonies_to_list(result.colonies), source=SOURCE)
    store.write(FAULTS_PATH, faults_to_dict(result.faults, result.warnings), source=SOURCE)
    return store.write(
        ADJUDICATED_PATH,
        [observation_to_dict(obs) for obs in result.observations],
        source=SOURCE,
        summary=summary,
    )


@flow(name="adjudicate-observations", log_prints=True)
def adjudicate_flow(data_dir: Path | None = None) -> dict[str, int]:
    """Adjudicate the raw observations in ``data_dir`` and save the results.

    Returns:
        Counts of observations, auto-resolved records, review items, new
        colonies, warnings and faults.
    """
    settings = get_settings()
    store = DataStore(data_dir or settings.data_dir)

    tables = load_tables(store, settings.escalation_threshold)
    rows = load_observation_rows(store)
    result = adjudicate_rows(rows, tables, settings.first_year, settings.last_year)
    save_results(store, result)

    summary = result.summary()
    print(f"Adjudicated {summary['observations']} observations: {summary}")
    return summary


if __name__ == "__main__":
    adjudicate_flow()
