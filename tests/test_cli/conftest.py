"""Fixtures for CLI tests."""

from pathlib import Path
from typing import Generator
from unittest.mock import patch

import pytest
from click.testing import CliRunner


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def cli_db(temp_db: Path) -> Generator[Path, None, None]:
    """Temporary database with log setup disabled."""
    with patch("reachgraph.cli.main.setup_logging"):
        yield temp_db
