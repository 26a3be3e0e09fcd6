"""CLI test fixtures."""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from tests.repos import RepoBuilder


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def upstream_ahead(boilerplate: RepoBuilder, fork: RepoBuilder) -> RepoBuilder:
    """Boilerplate moved README after the fork was cloned; nothing fetched yet."""
    boilerplate.commit({"README.md": "# Boilerplate v2\n"}, "Update readme")
    return fork
