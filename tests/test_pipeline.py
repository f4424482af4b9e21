"""Tests for the end-to-end batch pipeline and per-species fault isolation."""

from __future__ import annotations

from datetime import date
from typing import Any

import pytest
from conftest import ANCHOR_ROWS, build_tables, make_obs

from breeding_atlas.analysis import pipeline
from breeding_atlas.analysis.models import DataQualityWarning
from breeding_atlas.analysis.pipeline import parse_observations, run_pipeline, screen
from breeding_atlas.analysis.season_calendar import build_season_calendar
from breeding_atlas.exceptions import PartitionError
from breeding_atlas.reference.tables import ReferenceTables
from breeding_atlas.schemas import ConfidenceTier, Observation


def run(tables: ReferenceTables, observations: list[Observation]):
    return run_pipeline(observations, tables, first_year=2020, last_year=2024)


class TestParseObservations:
    """Lenient parsing of raw rows."""

    def test_valid_rows(self) -> None:
        warnings: list[DataQualityWarning] = []
        rows = [{"id": "a", "species": "Wood Thrush", "observed_on": "2022-06-15", "has_media": "true"}]
        [obs] = parse_observations(rows, warnings)
        assert obs.observed_on == date(2022, 6, 15)
        assert obs.has_media is True
        assert warnings == []

    def test_bad_fields_nulled(self) -> None:
        warnings: list[DataQualityWarning] = []
        rows = [{"id": "a", "species": "Wood Thrush", "observed_on": "June 15th", "has_media": "maybe"}]
        [obs] = parse_observations(rows, warnings)
        assert obs.observed_on is None
        assert obs.has_media is False
        assert obs.species == "Wood Thrush"
        assert [w.kind for w in warnings] == ["bad-field"]
        assert "observed_on" in warnings[0].message
        assert warnings[0].observation_id == "a"

    def test_numeric_id_kept_as_text(self, tables: ReferenceTables) -> None:
        warnings: list[DataQualityWarning] = []
        rows = [
            {
                "id": 12345,
                "species": "Wood Thrush",
                "reported_code": "CN",
                "observed_on": "2022-06-15",
                "region": "Frederick",
                "block": "BLK-1",
            }
        ]
        [obs] = parse_observations(rows, warnings)
        assert obs.id == "12345"
        assert warnings == []

        result = run(tables, [obs])
        assert obs.confidence_tier is ConfidenceTier.CONFIDENT
        assert obs.breeding_category == "C4"
        assert result.warnings == []

    def test_duplicate_id_warned(self) -> None:
        warnings: list[DataQualityWarning] = []
        rows = [
            {"id": "a", "species": "Wood Thrush"},
            {"id": "b", "species": "Wood Thrush"},
            {"id": "a", "species": "Great Blue Heron"},
        ]
        observations = parse_observations(rows, warnings)
        assert [obs.id for obs in observations] == ["a", "b", "a"]
        [warning] = warnings
        assert warning.kind == "duplicate-id"
        assert (warning.species, warning.observation_id) == ("Great Blue Heron", "a")


class TestScreen:
    @pytest.mark.parametrize(
        ("fields", "fragment"),
        [
            ({"block": None}, "block"),
            ({"species": ""}, "species"),
            ({"observed_on": None}, "observed_on"),
            ({"observed_on": date(2019, 6, 15)}, "outside 2020-2024"),
            ({"observed_on": date(2025, 1, 2)}, "outside 2020-2024"),
        ],
    )
    def test_shape_fault(self, fields: dict[str, Any], fragment: str) -> None:
        warnings: list[DataQualityWarning] = []
        assert screen([make_obs(**fields)], 2020, 2024, warnings) == []
        assert [w.kind for w in warnings] == ["shape"]
        assert fragment in warnings[0].message

    def test_window_is_inclusive(self) -> None:
        records = [make_obs(observed_on=date(2020, 1, 1)), make_obs(observed_on=date(2024, 12, 31))]
        assert len(screen(records, 2020, 2024, [])) == 2


class TestRunPipeline:
    def test_mixed_batch(self, tables: ReferenceTables) -> None:
        records = [
            make_obs(id="cn"),
            make_obs(id="un", reported_code="UN"),
            make_obs(id="review", reported_code="P", region="Garrett", block="BLK-9", has_media=True),
            make_obs(id="bunting", species="Snow Bunting", reported_code="H"),
            make_obs(id="bad", block=None),
        ]
        result = run(tables, records)

        by_id = {obs.id: obs for obs in result.observations}
        assert by_id["cn"].breeding_category == "C4"
        assert by_id["un"].breeding_category == "C1"
        assert by_id["bunting"].breeding_category == "C1"
        assert by_id["bad"].breeding_category is None
        assert [item.observation_id for item in result.review_queue] == ["review"]
        assert result.faults == []
        assert [w.kind for w in result.warnings] == ["shape"]
        assert result.summary() == {
            "observations": 5,
            "auto_resolved": 3,
            "needs_review": 1,
            "new_colonies": 0,
            "warnings": 1,
            "faults": 0,
        }

    def test_records_kept_in_input_order(self, tables: ReferenceTables) -> None:
        records = [
            make_obs(id="3", species="Great Blue Heron", reported_code="NY"),
            make_obs(id="1"),
            make_obs(id="2", species="Black Vulture", reported_code="NY"),
        ]
        result = run(tables, records)
        assert [obs.id for obs in result.observations] == ["3", "1", "2"]

    def test_colony_discovered(self, tables: ReferenceTables) -> None:
        heron = make_obs(species="Great Blue Heron", reported_code="NY", region="Garrett", block="BLK-G")
        result = run(tables, [heron])
        assert [(c.species, c.block) for c in result.colonies] == [("Great Blue Heron", "BLK-G")]
        assert result.summary()["new_colonies"] == 1

    def test_breeder_without_calendar_left_unresolved(self) -> None:
        tables = build_tables(anchors=[a for a in ANCHOR_ROWS if a["species"] != "Black Vulture"])
        vulture = make_obs(species="Black Vulture", reported_code="NY")
        result = run(tables, [vulture])

        assert vulture.phase is None
        assert vulture.confidence_tier is None
        assert vulture.breeding_category is None
        assert result.review_queue == []
        assert [w.kind for w in result.warnings] == ["missing-calendar"]
        assert result.summary()["auto_resolved"] == 0


class TestFaultIsolation:
    """An integrity error aborts only the species that raised it."""

    def test_missing_adjustment_aborts_species(self, tables: ReferenceTables) -> None:
        thrush_ok = make_obs(id="t1")
        thrush_bad = make_obs(id="t2", reported_code="DD")
        heron = make_obs(id="h1", species="Great Blue Heron", reported_code="NY")
        result = run(tables, [thrush_ok, thrush_bad, heron])

        [fault] = result.faults
        assert fault.species == "Wood Thrush"
        assert fault.error == "CodeAdjustmentMissingError"
        assert fault.observation_count == 2
        for obs in (thrush_ok, thrush_bad):
            assert obs.expectation_tier is None
            assert obs.confidence_tier is None
            assert obs.resolved_code is None
            assert obs.breeding_category is None
        assert heron.confidence_tier is ConfidenceTier.CONFIDENT
        assert heron.breeding_category == "C4"

    def test_partition_error_aborts_species(
        self, tables: ReferenceTables, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def broken_owl_calendar(anchors):
            calendar, _ = build_season_calendar(
                [a for name, a in anchors.items() if name != "Great Horned Owl"]
            )
            return calendar, [PartitionError("forced", "Great Horned Owl", {"breeding": "1-10"})]

        monkeypatch.setattr(pipeline, "build_season_calendar", broken_owl_calendar)
        owl = make_obs(id="o1", species="Great Horned Owl", reported_code="NY")
        thrush = make_obs(id="t1")
        result = run(tables, [owl, thrush])

        [fault] = result.faults
        assert fault.species == "Great Horned Owl"
        assert fault.error == "PartitionError"
        assert "breeding" in fault.message
        assert owl.breeding_category is None
        assert thrush.breeding_category == "C4"

    def test_partition_error_reported_without_records(
        self, tables: ReferenceTables, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def broken(anchors):
            calendar, _ = build_season_calendar(anchors)
            return calendar, [PartitionError("forced", "Black Vulture", {})]

        monkeypatch.setattr(pipeline, "build_season_calendar", broken)
        result = run(tables, [make_obs()])
        [fault] = result.faults
        assert (fault.species, fault.observation_count) == ("Black Vulture", 0)

    def test_prebuilt_calendar_used(self, tables: ReferenceTables) -> None:
        calendar, _ = build_season_calendar(tables.anchors)
        result = run_pipeline([make_obs()], tables, 2020, 2024, calendar=calendar)
        assert result.calendar is calendar
        assert result.faults == []
        assert result.observations[0].breeding_category == "C4"
