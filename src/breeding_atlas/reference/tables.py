"""Frozen lookup tables consumed by the analysis stages.

``ReferenceTables`` is built once per run, either from row dicts
(``from_rows``) or from the ``reference/`` tier of a ``DataStore``
(``load_reference_tables``), and is never mutated afterwards.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date
from functools import cached_property
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import BaseModel, ValidationError

from breeding_atlas.exceptions import CodeAdjustmentMissingError, ReferenceDataError
from breeding_atlas.reference.codes import CodeOrdering
from breeding_atlas.schemas import (
    CodeAdjustmentRow,
    CodeOrderRow,
    CodeTier,
    ColonyRow,
    ExpectationRow,
    ExpectationTier,
    LocationExpectationRow,
    SeasonAnchorRow,
    SpeciesRow,
)

if TYPE_CHECKING:
    from breeding_atlas.store import DataStore

logger = logging.getLogger(__name__)

# Anchors are month-days; they are pinned to a leap year so Feb 29 parses.
ANCHOR_YEAR = 2000

EXPECTATION_PATH = Path("reference/expectation_matrix.json")
ANCHORS_PATH = Path("reference/season_anchors.json")
LOCATIONS_PATH = Path("reference/location_expectation.json")
COLONIES_PATH = Path("reference/colonies.json")
ADJUSTMENTS_PATH = Path("reference/code_adjustments.json")
SPECIES_PATH = Path("reference/species.json")
CODE_ORDER_PATH = Path("reference/code_ordering.json")

IMPROBABLE = "improbable"
PLAUSIBLE = "plausible"

RowT = TypeVar("RowT", bound=BaseModel)


def parse_month_day(text: str) -> date:
    """Parse ``MM-DD`` or ``YYYY-MM-DD`` into a date in ``ANCHOR_YEAR``."""
    parts = text.strip().split("-")
    if len(parts) == 3:
        parts = parts[1:]
    try:
        month, day = (int(p) for p in parts)
        return date(ANCHOR_YEAR, month, day)
    except ValueError:
        msg = f"Not a month-day anchor: {text!r}"
        raise ReferenceDataError(msg) from None


@dataclass(frozen=True)
class CalendarAnchors:
    """Safe dates and recorded extremes for one species."""

    species: str
    breeding_start: date
    breeding_end: date
    early_record: date | None = None
    late_record: date | None = None


@dataclass(frozen=True)
class CodeAdjustment:
    """Replacement code and the reason recorded when it is applied."""

    code: str
    reason: str


@dataclass(frozen=True)
class ReferenceTables:
    """All lookup tables for one run."""

    codes: CodeOrdering
    expectation: Mapping[tuple[str, str], ExpectationTier]
    anchors: Mapping[str, CalendarAnchors]
    region_expectation: Mapping[tuple[str, str], bool] = field(default_factory=dict)
    colonies: frozenset[tuple[str, str]] = frozenset()
    improbable_adjustments: Mapping[tuple[str, str], CodeAdjustment] = field(default_factory=dict)
    plausible_adjustments: Mapping[tuple[str, str], CodeAdjustment] = field(default_factory=dict)
    breeding_species: frozenset[str] = frozenset()
    colonial_species: frozenset[str] = frozenset()
    escalation_threshold: str | None = None

    def __post_init__(self) -> None:
        if self.escalation_threshold is None:
            object.__setattr__(
                self, "escalation_threshold", self.codes.top_of_tier(CodeTier.PROBABLE)
            )
        elif self.escalation_threshold not in self.codes:
            msg = f"Escalation threshold {self.escalation_threshold!r} is not a known code"
            raise ReferenceDataError(msg)

    @cached_property
    def matrix_species(self) -> frozenset[str]:
        return frozenset(species for species, _ in self.expectation)

    def has_matrix(self, species: str) -> bool:
        return species in self.matrix_species

    def expectation_for(self, species: str, code: str) -> ExpectationTier | None:
        return self.expectation.get((species, code))

    def is_known_breeder(self, species: str) -> bool:
        return species in self.breeding_species or species in self.anchors

    def is_colonial(self, species: str) -> bool:
        return species in self.colonial_species

    def expected_in_region(self, species: str, region: str) -> bool:
        return self.region_expectation.get((species, region), False)

    def is_colony(self, species: str, block: str) -> bool:
        return (species, block) in self.colonies

    def adjustment(self, variant: str, species: str, code: str) -> CodeAdjustment:
        """Look up the correction for a code; a miss is an integrity fault."""
        table = self.improbable_adjustments if variant == IMPROBABLE else self.plausible_adjustments
        try:
            return table[(species, code)]
        except KeyError:
            raise CodeAdjustmentMissingError(species, code, variant) from None

    @classmethod
    def from_rows(
        cls,
        *,
        expectation: Iterable[dict[str, Any]],
        anchors: Iterable[dict[str, Any]],
        locations: Iterable[dict[str, Any]] = (),
        colonies: Iterable[dict[str, Any]] = (),
        adjustments: Iterable[dict[str, Any]] = (),
        species: Iterable[dict[str, Any]] = (),
        code_order: Iterable[dict[str, Any]] | None = None,
        escalation_threshold: str | None = None,
    ) -> ReferenceTables:
        """Validate raw table rows and assemble the frozen tables."""
        if code_order is None:
            codes = CodeOrdering.default()
        else:
            order_rows = _validate(CodeOrderRow, code_order, "code ordering")
            codes = CodeOrdering([(row.code, row.tier) for row in order_rows])

        matrix: dict[tuple[str, str], ExpectationTier] = {}
        for row in _validate(ExpectationRow, expectation, "expectation matrix"):
            if row.code not in codes:
                msg = f"Expectation matrix uses unknown code {row.code!r} for {row.species!r}"
                raise ReferenceDataError(msg)
            matrix[(row.species, row.code)] = ExpectationTier.from_matrix_value(row.tier)

        calendar: dict[str, CalendarAnchors] = {}
        for row in _validate(SeasonAnchorRow, anchors, "season anchors"):
            calendar[row.species] = CalendarAnchors(
                species=row.species,
                breeding_start=parse_month_day(row.breeding_start),
                breeding_end=parse_month_day(row.breeding_end),
                early_record=parse_month_day(row.early_record) if row.early_record else None,
                late_record=parse_month_day(row.late_record) if row.late_record else None,
            )

        region_expectation = {
            (row.species, row.region): row.expected
            for row in _validate(LocationExpectationRow, locations, "location expectation")
        }
        colony_blocks = frozenset(
            (row.species, row.block) for row in _validate(ColonyRow, colonies, "colonies")
        )

        improbable: dict[tuple[str, str], CodeAdjustment] = {}
        plausible: dict[tuple[str, str], CodeAdjustment] = {}
        for row in _validate(CodeAdjustmentRow, adjustments, "code adjustments"):
            if row.replacement not in codes:
                msg = f"Adjustment for {row.species!r}/{row.code!r} targets unknown code {row.replacement!r}"
                raise ReferenceDataError(msg)
            target = improbable if row.variant == IMPROBABLE else plausible
            target[(row.species, row.code)] = CodeAdjustment(row.replacement, row.reason)

        species_rows = _validate(SpeciesRow, species, "species list")

        tables = cls(
            codes=codes,
            expectation=matrix,
            anchors=calendar,
            region_expectation=region_expectation,
            colonies=colony_blocks,
            improbable_adjustments=improbable,
            plausible_adjustments=plausible,
            breeding_species=frozenset(row.species for row in species_rows),
            colonial_species=frozenset(row.species for row in species_rows if row.colonial),
            escalation_threshold=escalation_threshold,
        )
        logger.info(
            "Loaded reference tables: %d matrix species, %d calendars, %d colonies",
            len(tables.matrix_species),
            len(calendar),
            len(colony_blocks),
        )
        return tables


def _validate(
    model: type[RowT], rows: Iterable[dict[str, Any]], table: str
) -> list[RowT]:
    validated = []
    for index, row in enumerate(rows):
        try:
            validated.append(model.model_validate(row))
        except ValidationError as exc:
            msg = f"Invalid {table} row {index}: {exc.errors()[0]['msg']} ({row!r})"
            raise ReferenceDataError(msg) from exc
    return validated


def load_reference_tables(
    store: DataStore, escalation_threshold: str | None = None
) -> ReferenceTables:
    """Read every reference table from the store's ``reference/`` tier."""

    def required(path: Path) -> list[dict[str, Any]]:
        rows = store.read(path)
        if rows is None:
            msg = f"Missing reference table: {path}"
            raise ReferenceDataError(msg)
        return rows

    return ReferenceTables.from_rows(
        expectation=required(EXPECTATION_PATH),
        anchors=required(ANCHORS_PATH),
        locations=store.read(LOCATIONS_PATH) or [],
        colonies=store.read(COLONIES_PATH) or [],
        adjustments=store.read(ADJUSTMENTS_PATH) or [],
        species=store.read(SPECIES_PATH) or [],
        code_order=store.read(CODE_ORDER_PATH),
        escalation_threshold=escalation_threshold,
    )


__all__ = [
    "ANCHOR_YEAR",
    "IMPROBABLE",
    "PLAUSIBLE",
    "CalendarAnchors",
    "CodeAdjustment",
    "ReferenceTables",
    "load_reference_tables",
    "parse_month_day",
]
