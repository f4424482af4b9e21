"""JSON serialization helpers for pipeline outputs."""

from __future__ import annotations

from dataclasses import asdict
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from breeding_atlas.analysis.models import (
        ColonyDiscovery,
        DataQualityWarning,
        IntegrityFault,
        ReviewItem,
    )
    from breeding_atlas.analysis.season_calendar import SpeciesCalendar
    from breeding_atlas.schemas import Observation


def observation_to_dict(observation: Observation) -> dict[str, Any]:
    """Serialize an observation, derived fields included."""
    return observation.model_dump(mode="json")


def review_item_to_dict(item: ReviewItem) -> dict[str, Any]:
    data = asdict(item)
    data["observed_on"] = item.observed_on.isoformat() if item.observed_on else None
    return data


def colonies_to_list(colonies: list[ColonyDiscovery]) -> list[dict[str, Any]]:
    """Serialize colony discoveries, sorted by species then block."""
    return [
        {
            "species": c.species,
            "block": c.block,
            "first_confirmed": c.first_confirmed.isoformat(),
            "observation_id": c.observation_id,
        }
        for c in sorted(colonies)
    ]


def faults_to_dict(
    faults: list[IntegrityFault], warnings: list[DataQualityWarning]
) -> dict[str, Any]:
    """Integrity faults and data-quality warnings, kept in separate lists."""
    return {
        "faults": [asdict(f) for f in faults],
        "warnings": [asdict(w) for w in warnings],
    }


def calendar_to_dict(calendar: SpeciesCalendar) -> dict[str, Any]:
    return {
        "species": calendar.species,
        "wraps": calendar.wraps,
        "phases": {
            phase.value: [[r.start, r.end] for r in ranges]
            for phase, ranges in calendar.phases.items()
        },
    }
