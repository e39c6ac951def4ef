"""Tests for family, creator, insights, report and status commands."""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from reachgraph.cli.main import cli

PERIOD = ["--days", "1", "--end", "2024-05-01"]


class TestFamilyCommand:
    """Tests for family."""

    def test_json(self, runner: CliRunner, cli_db, example_family) -> None:
        """Test JSON output carries totals and reach."""
        root, derivative = example_family

        result = runner.invoke(cli, ["family", root.id, *PERIOD, "--json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["aggregate_metrics"]["total_views"] == 1500
        assert data["unique_reach_estimate"] == pytest.approx(1400)
        assert {item["content_id"] for item in data["content_items"]} == {root.id, derivative.id}

    def test_table(self, runner: CliRunner, cli_db, example_family) -> None:
        """Test the table view."""
        root, _ = example_family
        result = runner.invoke(cli, ["family", root.id, *PERIOD])

        assert result.exit_code == 0
        assert "Totals" in result.output
        assert "1.5K" in result.output

    def test_missing(self, runner: CliRunner, cli_db) -> None:
        """Test an unknown root aborts."""
        result = runner.invoke(cli, ["family", "missing", *PERIOD])
        assert result.exit_code != 0
        assert "Family metrics failed" in result.output


class TestCreatorCommand:
    """Tests for creator."""

    def test_json(self, runner: CliRunner, cli_db, example_family) -> None:
        """Test creator JSON output."""
        result = runner.invoke(cli, ["creator", "creator-1", *PERIOD, "--json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["family_count"] == 1
        assert data["unique_reach_estimate"] == pytest.approx(1400)

    def test_table(self, runner: CliRunner, cli_db, example_family) -> None:
        """Test the table view lists families."""
        result = runner.invoke(cli, ["creator", "creator-1", *PERIOD])
        assert result.exit_code == 0
        assert "Families" in result.output


class TestInsightsCommand:
    """Tests for insights."""

    def test_json(self, runner: CliRunner, cli_db, example_family) -> None:
        """Test insights are printed as a JSON list."""
        root, _ = example_family

        result = runner.invoke(cli, ["insights", root.id, "--type", "family", *PERIOD, "--json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert isinstance(data, list)
        assert all(item["entity_type"] == "family" for item in data)

    def test_none(self, runner: CliRunner, cli_db, make_node) -> None:
        """Test an item without metrics has no insights."""
        node = make_node()
        result = runner.invoke(cli, ["insights", node.id, "--type", "content", *PERIOD])
        assert result.exit_code == 0
        assert "No insights" in result.output


class TestReportCommand:
    """Tests for report."""

    def test_report_to_path(self, runner: CliRunner, cli_db, example_family, tmp_path) -> None:
        """Test writing a report to a given path."""
        root, _ = example_family
        output = tmp_path / "family.md"

        result = runner.invoke(cli, ["report", root.id, "-o", str(output), *PERIOD])

        assert result.exit_code == 0
        assert "Report written to" in result.output
        assert "Content Family Report" in output.read_text(encoding="utf-8")

    def test_report_missing(self, runner: CliRunner, cli_db, tmp_path) -> None:
        """Test an unknown root aborts."""
        result = runner.invoke(cli, ["report", "missing", "-o", str(tmp_path / "x.md")])
        assert result.exit_code != 0
        assert "Report generation failed" in result.output


class TestStatusCommand:
    """Tests for status."""

    def test_status(self, runner: CliRunner, cli_db, example_family) -> None:
        """Test store statistics are shown."""
        with patch("reachgraph.cli.status.get_db_path", return_value=cli_db):
            result = runner.invoke(cli, ["status"])

        assert result.exit_code == 0
        assert "ReachGraph Status" in result.output
        assert "Content Graph" in result.output
        assert "Metric rows:" in result.output
        assert "Schema version: 2" in result.output

    def test_status_empty(self, runner: CliRunner, cli_db) -> None:
        """Test an empty store."""
        with patch("reachgraph.cli.status.get_db_path", return_value=cli_db):
            result = runner.invoke(cli, ["status"])

        assert result.exit_code == 0
        assert "No metrics synced yet" in result.output
