"""
Tests for CLI functionality.

These tests verify the command-line interface logic.
"""

from __future__ import annotations

import argparse
from io import StringIO
from pathlib import Path
from unittest.mock import patch

import pytest
from conftest import ANCHOR_ROWS, EXPECTATION_ROWS

from breeding_atlas.cli import cmd_calendar, cmd_info, cmd_run, create_parser, main
from breeding_atlas.exceptions import ReferenceDataError
from breeding_atlas.reference.tables import ANCHORS_PATH, EXPECTATION_PATH
from breeding_atlas.store import DataStore

SUMMARY = {
    "observations": 4,
    "auto_resolved": 3,
    "needs_review": 1,
    "new_colonies": 0,
    "warnings": 0,
    "faults": 0,
}


class TestCreateParser:
    """Tests for create_parser function."""

    def test_creates_parser(self) -> None:
        """Parser is created successfully."""
        parser = create_parser()
        assert isinstance(parser, argparse.ArgumentParser)
        assert parser.prog == "breeding-atlas"

    def test_parser_has_version(self) -> None:
        """Parser has version argument."""
        parser = create_parser()
        with pytest.raises(SystemExit):
            parser.parse_args(["--version"])

    def test_parser_has_debug_flag(self) -> None:
        """Parser accepts --debug flag."""
        args = create_parser().parse_args(["--debug", "info"])
        assert args.debug is True

    def test_parser_run_command(self) -> None:
        """Parser accepts run command with --data-dir."""
        args = create_parser().parse_args(["run", "--data-dir", "/tmp/atlas"])
        assert args.command == "run"
        assert args.data_dir == Path("/tmp/atlas")

    def test_parser_run_default_data_dir(self) -> None:
        """Run command falls back to settings for the data directory."""
        args = create_parser().parse_args(["run"])
        assert args.data_dir is None

    def test_parser_calendar_command(self) -> None:
        """Calendar command takes a species name."""
        args = create_parser().parse_args(["calendar", "Wood Thrush"])
        assert args.command == "calendar"
        assert args.species == "Wood Thrush"


class TestCmdRun:
    """Tests for cmd_run function."""

    def test_success_returns_zero(self, tmp_path: Path) -> None:
        """A run without faults returns exit code 0."""
        args = argparse.Namespace(data_dir=tmp_path)

        with patch("breeding_atlas.cli.adjudicate_flow", return_value=SUMMARY) as mock_flow:
            exit_code = cmd_run(args)
            assert exit_code == 0
            mock_flow.assert_called_once_with(data_dir=tmp_path)

    def test_faults_return_one(self, tmp_path: Path) -> None:
        """A run with integrity faults returns exit code 1."""
        args = argparse.Namespace(data_dir=tmp_path)

        with patch("breeding_atlas.cli.adjudicate_flow", return_value={**SUMMARY, "faults": 2}):
            assert cmd_run(args) == 1

    def test_prints_summary(self, tmp_path: Path) -> None:
        """Summary counts are printed."""
        args = argparse.Namespace(data_dir=tmp_path)

        with (
            patch("breeding_atlas.cli.adjudicate_flow", return_value=SUMMARY),
            patch("sys.stdout", new=StringIO()) as mock_stdout,
        ):
            cmd_run(args)
            output = mock_stdout.getvalue()
            assert "needs_review: 1" in output

    def test_reference_error_returns_one(self, tmp_path: Path) -> None:
        """A broken reference table stops the run with exit code 1."""
        args = argparse.Namespace(data_dir=tmp_path)

        with (
            patch(
                "breeding_atlas.cli.adjudicate_flow",
                side_effect=ReferenceDataError("Missing reference table"),
            ),
            patch("sys.stderr", new=StringIO()) as mock_stderr,
        ):
            assert cmd_run(args) == 1
            assert "Missing reference table" in mock_stderr.getvalue()


class TestCmdCalendar:
    """Tests for cmd_calendar function."""

    @pytest.fixture
    def data_dir(self, tmp_path: Path) -> Path:
        store = DataStore(tmp_path)
        store.write(EXPECTATION_PATH, EXPECTATION_ROWS, source="test")
        store.write(ANCHORS_PATH, ANCHOR_ROWS, source="test")
        return tmp_path

    def test_prints_phases(self, data_dir: Path) -> None:
        """Phase intervals are printed for a known species."""
        args = argparse.Namespace(species="Great Horned Owl", data_dir=data_dir)

        with patch("sys.stdout", new=StringIO()) as mock_stdout:
            assert cmd_calendar(args) == 0
            output = mock_stdout.getvalue()
            assert "wraps year end" in output
            assert "1-91, 350-366" in output

    def test_unknown_species_returns_one(self, data_dir: Path) -> None:
        """A species without anchors returns exit code 1."""
        args = argparse.Namespace(species="Snow Bunting", data_dir=data_dir)

        with patch("sys.stderr", new=StringIO()):
            assert cmd_calendar(args) == 1

    def test_missing_tables_returns_one(self, tmp_path: Path) -> None:
        """An empty data directory returns exit code 1."""
        args = argparse.Namespace(species="Wood Thrush", data_dir=tmp_path)

        with patch("sys.stderr", new=StringIO()):
            assert cmd_calendar(args) == 1


class TestCmdInfo:
    """Tests for cmd_info function."""

    def test_returns_zero(self) -> None:
        """Info command returns exit code 0."""
        assert cmd_info(argparse.Namespace()) == 0

    def test_prints_app_info(self) -> None:
        """Info command prints application information."""
        with patch("sys.stdout", new=StringIO()) as mock_stdout:
            cmd_info(argparse.Namespace())
            output = mock_stdout.getvalue()
            assert "Application" in output
            assert "Collection window" in output


class TestMain:
    """Tests for main function."""

    def test_no_command_shows_help(self) -> None:
        """No command shows help and exits 0."""
        with patch("sys.argv", ["breeding-atlas"]):
            assert main() == 0

    @pytest.mark.parametrize(
        ("argv", "handler"),
        [
            (["run"], "cmd_run"),
            (["info"], "cmd_info"),
            (["calendar", "Wood Thrush"], "cmd_calendar"),
        ],
    )
    def test_dispatches_command(self, argv: list[str], handler: str) -> None:
        """Each subcommand is routed to its handler."""
        with (
            patch("sys.argv", ["breeding-atlas", *argv]),
            patch(f"breeding_atlas.cli.{handler}", return_value=0) as mock_cmd,
        ):
            assert main() == 0
            mock_cmd.assert_called_once()

    def test_unknown_command_shows_help(self) -> None:
        """Unknown command shows help and returns 1."""
        with (
            patch("sys.argv", ["breeding-atlas", "run"]),
            patch("breeding_atlas.cli.create_parser") as mock_parser,
        ):
            mock_parser.return_value.parse_args.return_value = argparse.Namespace(
                command="unknown", debug=False
            )
            assert main() == 1
