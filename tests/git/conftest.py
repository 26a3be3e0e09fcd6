"""Test fixtures for git module."""

from __future__ import annotations

from pathlib import Path

import pygit2
import pytest

from tests.repos import RepoBuilder


@pytest.fixture
def repo(make_repo) -> RepoBuilder:
    """Repository with one commit on main."""
    r = make_repo()
    r.commit({"README.md": "# Test Repo\n", "src/app.py": "x = 1\n"}, "Initial commit")
    return r


@pytest.fixture
def feature_conflict(repo: RepoBuilder) -> RepoBuilder:
    """main and feature both changed README.md; feature also added feature.txt."""
    repo.branch("feature")
    repo.commit({"README.md": "# Main side\n", "main.txt": "main\n"}, "Main change")
    repo.checkout("feature")
    repo.commit({"README.md": "# Feature side\n", "feature.txt": "feature\n"}, "Feature change")
    repo.checkout("main")
    return repo


@pytest.fixture
def bare_remote(tmp_path: Path, repo: RepoBuilder) -> pygit2.Repository:
    """Bare repository registered as 'origin' with main pushed."""
    bare = pygit2.init_repository(str(tmp_path / "remote.git"), bare=True)
    repo.repo.remotes.create("origin", str(Path(bare.path).resolve()))
    repo.repo.remotes["origin"].push(["refs/heads/main:refs/heads/main"])
    return bare


@pytest.fixture
def feature_clean(repo: RepoBuilder) -> RepoBuilder:
    """main added main.txt; feature changed src/app.py and added feature.txt."""
    repo.branch("feature")
    repo.commit({"main.txt": "main\n"}, "Main change")
    repo.checkout("feature")
    repo.commit({"src/app.py": "x = 2\n", "feature.txt": "feature\n"}, "Feature change")
    repo.checkout("main")
    return repo
