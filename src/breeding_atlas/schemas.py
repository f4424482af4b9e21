"""
Domain models for breeding atlas adjudication.

Pydantic models for observation records and the enums naming every derived
state. Observations are mutated in place as they move through the pipeline;
the derived tiers only ever move forward (see the transition tables below).
"""

from __future__ import annotations

from datetime import date
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from breeding_atlas.exceptions import StateTransitionError

# =============================================================================
# Derived states
# =============================================================================


class Phase(StrEnum):
    """Species-specific day-of-year phase, in calendar order."""

    EARLY = "early"
    PRE = "pre"
    BREEDING = "breeding"
    POST = "post"
    LATE = "late"


class CodeTier(StrEnum):
    """Coarse severity grouping of breeding codes."""

    POSSIBLE = "possible"
    PROBABLE = "probable"
    CONFIRMED = "confirmed"


class ExpectationTier(StrEnum):
    """How consistent a reported code is with the species' known behaviour."""

    EXPECTED = "expected"
    PLAUSIBLE = "plausible"
    IMPROBABLE = "improbable"

    @classmethod
    def from_matrix_value(cls, value: int) -> ExpectationTier:
        """Map the 1/2/3 matrix encoding onto a tier."""
        try:
            return _MATRIX_VALUES[value]
        except KeyError:
            msg = f"Expectation matrix value must be 1, 2 or 3, got {value!r}"
            raise ValueError(msg) from None


_MATRIX_VALUES = {
    1: ExpectationTier.EXPECTED,
    2: ExpectationTier.PLAUSIBLE,
    3: ExpectationTier.IMPROBABLE,
}


class ConfidenceTier(StrEnum):
    """Final spatiotemporal trust level of an observation."""

    CONFIDENT = "confident"
    UNCERTAIN = "uncertain"
    UNLIKELY = "unlikely"


# Allowed forward moves. None is the unset state; a terminal state maps to
# an empty set. Re-assigning the current value is always a no-op.
EXPECTATION_TRANSITIONS: dict[ExpectationTier | None, frozenset[ExpectationTier]] = {
    None: frozenset(ExpectationTier),
    ExpectationTier.IMPROBABLE: frozenset({ExpectationTier.EXPECTED}),
    ExpectationTier.PLAUSIBLE: frozenset({ExpectationTier.EXPECTED}),
    ExpectationTier.EXPECTED: frozenset(),
}

CONFIDENCE_TRANSITIONS: dict[ConfidenceTier | None, frozenset[ConfidenceTier]] = {
    None: frozenset(ConfidenceTier),
    ConfidenceTier.UNLIKELY: frozenset({ConfidenceTier.CONFIDENT}),
    ConfidenceTier.UNCERTAIN: frozenset({ConfidenceTier.CONFIDENT}),
    ConfidenceTier.CONFIDENT: frozenset(),
}


# =============================================================================
# Observations
# =============================================================================

REQUIRED_FIELDS = ("id", "species", "observed_on", "region", "block")


class Observation(BaseModel):
    """A single atlas observation with its derived classification fields."""

    model_config = {"str_strip_whitespace": True, "coerce_numbers_to_str": True}

    id: str | None = Field(default=None, description="Stable submission identifier")
    species: str | None = None
    reported_code: str | None = Field(default=None, description="Breeding code as submitted")
    observed_on: date | None = None
    region: str | None = Field(default=None, description="Coarse location, e.g. county")
    block: str | None = Field(default=None, description="Atlas block identifier")
    has_media: bool = False
    has_comments: bool = False

    # Derived fields, filled in by the analysis stages
    expectation_tier: ExpectationTier | None = None
    phase: Phase | None = None
    expected_here: bool | None = None
    confidence_tier: ConfidenceTier | None = None
    resolved_code: str | None = None
    resolution_reason: str | None = None
    breeding_category: str | None = None

    @classmethod
    def parse_lenient(cls, row: dict[str, Any]) -> tuple[Observation, list[str]]:
        """Validate a raw row, nulling out any field that fails to parse.

        Returns:
            The observation and the names of the fields that were discarded.
        """
        try:
            return cls.model_validate(row), []
        except ValidationError as exc:
            bad = sorted({str(err["loc"][0]) for err in exc.errors() if err["loc"]})
        cleaned = {k: v for k, v in row.items() if k not in bad}
        return cls.model_validate(cleaned), bad

    @property
    def has_evidence(self) -> bool:
        """Media or free-text comments back up the reported code."""
        return self.has_media or self.has_comments

    @property
    def year(self) -> int | None:
        return self.observed_on.year if self.observed_on else None

    def missing_fields(self) -> list[str]:
        """Names of required fields that are empty."""
        return [name for name in REQUIRED_FIELDS if not getattr(self, name)]

    def set_phase(self, phase: Phase) -> None:
        """Phase is decided once per run."""
        if self.phase is not None and self.phase is not phase:
            msg = f"Observation {self.id}: phase already {self.phase}, refusing {phase}"
            raise StateTransitionError(msg, self.species)
        self.phase = phase

    def advance_expectation(self, tier: ExpectationTier) -> None:
        if tier is self.expectation_tier:
            return
        if tier not in EXPECTATION_TRANSITIONS[self.expectation_tier]:
            msg = f"Observation {self.id}: expectation {self.expectation_tier} -> {tier} not allowed"
            raise StateTransitionError(msg, self.species)
        self.expectation_tier = tier

    def advance_confidence(self, tier: ConfidenceTier) -> None:
        if tier is self.confidence_tier:
            return
        if tier not in CONFIDENCE_TRANSITIONS[self.confidence_tier]:
            msg = f"Observation {self.id}: confidence {self.confidence_tier} -> {tier} not allowed"
            raise StateTransitionError(msg, self.species)
        self.confidence_tier = tier

    def reset_derived(self) -> None:
        """Clear every derived field; used when a species' processing aborts."""
        self.expectation_tier = None
        self.phase = None
        self.expected_here = None
        self.confidence_tier = None
        self.resolved_code = None
        self.resolution_reason = None
        self.breeding_category = None


# =============================================================================
# Reference table rows
# =============================================================================


class ExpectationRow(BaseModel):
    """One cell of the species × code expectation matrix."""

    species: str
    code: str
    tier: int = Field(..., ge=1, le=3)


class SeasonAnchorRow(BaseModel):
    """Calendar anchors for one species, as ``MM-DD`` or ISO date strings."""

    species: str
    breeding_start: str
    breeding_end: str
    early_record: str | None = None
    late_record: str | None = None


class LocationExpectationRow(BaseModel):
    species: str
    region: str
    expected: bool = True


class ColonyRow(BaseModel):
    species: str
    block: str


class CodeAdjustmentRow(BaseModel):
    """Replacement code for a (species, code) pair needing correction."""

    variant: str = Field(..., pattern="^(improbable|plausible)$")
    species: str
    code: str
    replacement: str
    reason: str


class SpeciesRow(BaseModel):
    """Entry in the canonical list of breeding species."""

    species: str
    colonial: bool = False


class CodeOrderRow(BaseModel):
    code: str
    tier: CodeTier
