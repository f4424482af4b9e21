"""Shared fixtures: a small but complete set of reference tables.

Day-of-year values below are leap-adjusted (Mar 1 = 61, Dec 31 = 366).

Wood Thrush (ordinary):
    early 1-115 | pre 116-140 | breeding 141-223 | post 224-249 | late 250-366
Great Horned Owl (wraps the year end):
    breeding 1-91 and 350-366 | post 92-136 | late 137-349
Great Blue Heron (colonial):
    early 1-60 | pre 61-91 | breeding 92-213 | post 214-244 | late 245-366
Black Vulture:
    early 1-74 | breeding 75-197 | late 198-366
"""

from __future__ import annotations

from datetime import date
from typing import Any

import pytest

from breeding_atlas.reference.tables import ReferenceTables
from breeding_atlas.schemas import Observation

EXPECTATION_ROWS: list[dict[str, Any]] = [
    *(
        {"species": "Wood Thrush", "code": code, "tier": 1}
        for code in ("F", "H", "S", "S7", "P", "T", "C", "N", "A", "CN", "CF", "FY", "NY", "ON")
    ),
    {"species": "Wood Thrush", "code": "NB", "tier": 2},
    {"species": "Wood Thrush", "code": "FL", "tier": 2},
    {"species": "Wood Thrush", "code": "UN", "tier": 3},
    {"species": "Wood Thrush", "code": "B", "tier": 3},
    {"species": "Wood Thrush", "code": "DD", "tier": 3},
    *(
        {"species": "Great Horned Owl", "code": code, "tier": 1}
        for code in ("H", "S", "P", "CN", "ON", "FL", "NY")
    ),
    *(
        {"species": "Great Blue Heron", "code": code, "tier": 1}
        for code in ("F", "H", "P", "N", "CN", "NB", "ON", "NY")
    ),
    *({"species": "Black Vulture", "code": code, "tier": 1} for code in ("H", "N", "NY")),
]

ANCHOR_ROWS: list[dict[str, Any]] = [
    {
        "species": "Wood Thrush",
        "breeding_start": "05-20",
        "breeding_end": "08-10",
        "early_record": "04-25",
        "late_record": "09-05",
    },
    {
        "species": "Great Horned Owl",
        "breeding_start": "12-15",
        "breeding_end": "03-31",
        "late_record": "05-15",
    },
    {
        "species": "Great Blue Heron",
        "breeding_start": "04-01",
        "breeding_end": "07-31",
        "early_record": "03-01",
        "late_record": "08-31",
    },
    {"species": "Black Vulture", "breeding_start": "03-15", "breeding_end": "07-15"},
]

LOCATION_ROWS: list[dict[str, Any]] = [
    {"species": "Wood Thrush", "region": "Frederick", "expected": True},
    {"species": "Wood Thrush", "region": "Garrett", "expected": False},
    {"species": "Great Horned Owl", "region": "Frederick", "expected": True},
    {"species": "Great Blue Heron", "region": "Frederick", "expected": True},
    {"species": "Black Vulture", "region": "Frederick", "expected": True},
]

COLONY_ROWS: list[dict[str, Any]] = [
    {"species": "Great Blue Heron", "block": "BLK-HERONRY"},
]

ADJUSTMENT_ROWS: list[dict[str, Any]] = [
    {"variant": "improbable", "species": "Wood Thrush", "code": "UN", "replacement": "NC", "reason": "notlocal"},
    {"variant": "improbable", "species": "Wood Thrush", "code": "B", "replacement": "S", "reason": "wrongcode"},
    {"variant": "plausible", "species": "Wood Thrush", "code": "NB", "replacement": "C", "reason": "nobuild"},
]

SPECIES_ROWS: list[dict[str, Any]] = [
    {"species": "Wood Thrush"},
    {"species": "Great Horned Owl"},
    {"species": "Great Blue Heron", "colonial": True},
    {"species": "Black Vulture"},
    {"species": "Herring Gull", "colonial": True},
]


def build_tables(**overrides: Any) -> ReferenceTables:
    """ReferenceTables from the fixture rows, with any table replaced."""
    kwargs: dict[str, Any] = {
        "expectation": EXPECTATION_ROWS,
        "anchors": ANCHOR_ROWS,
        "locations": LOCATION_ROWS,
        "colonies": COLONY_ROWS,
        "adjustments": ADJUSTMENT_ROWS,
        "species": SPECIES_ROWS,
    }
    kwargs.update(overrides)
    return ReferenceTables.from_rows(**kwargs)


@pytest.fixture
def tables() -> ReferenceTables:
    return build_tables()


def make_obs(**fields: Any) -> Observation:
    """Observation with sensible defaults: a Wood Thrush CN in core breeding."""
    data: dict[str, Any] = {
        "id": "obs-1",
        "species": "Wood Thrush",
        "reported_code": "CN",
        "observed_on": date(2022, 6, 15),
        "region": "Frederick",
        "block": "BLK-1",
    }
    data.update(fields)
    return Observation(**data)
