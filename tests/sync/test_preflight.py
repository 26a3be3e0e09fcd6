"""Tests for the checks run before a workflow touches the fork."""

from __future__ import annotations

from pathlib import Path

import pytest

from forksync.core.errors import ConfigError, ErrorCode, SyncError
from forksync.sync.preflight import check_fork_ready, reconcile_remote, same_location
from forksync.sync.vcs import GitVersionControl
from tests.fakes import FORK, FakeVersionControl
from tests.repos import RepoBuilder


@pytest.fixture
def vcs() -> FakeVersionControl:
    return FakeVersionControl()


class TestCheckForkReady:
    def test_fork_at_rest_passes(self, vcs: FakeVersionControl) -> None:
        check_fork_ready(vcs, FORK)

    def test_conflicts_reported_first(self, vcs: FakeVersionControl) -> None:
        vcs.conflicts = ["a.txt"]
        vcs.in_merge = True

        with pytest.raises(SyncError) as exc:
            check_fork_ready(vcs, FORK)

        assert exc.value.code == ErrorCode.CONFLICTS_UNRESOLVED
        assert exc.value.details["paths"] == ["a.txt"]

    def test_rebase_in_progress(self, vcs: FakeVersionControl) -> None:
        vcs.rebasing = True

        with pytest.raises(SyncError, match="rebase is in progress") as exc:
            check_fork_ready(vcs, FORK)

        assert exc.value.code == ErrorCode.FORK_NOT_READY

    def test_merge_in_progress_without_conflicts(self, vcs: FakeVersionControl) -> None:
        vcs.in_merge = True

        with pytest.raises(SyncError, match="merge is in progress") as exc:
            check_fork_ready(vcs, FORK)

        assert exc.value.code == ErrorCode.FORK_NOT_READY

    def test_uncommitted_changes(self, vcs: FakeVersionControl) -> None:
        vcs.dirty = ["src/app.py", "README.md"]

        with pytest.raises(SyncError, match="2 path") as exc:
            check_fork_ready(vcs, FORK)

        assert exc.value.details["paths"] == ["README.md", "src/app.py"]

    def test_ignored_directories_may_be_dirty(self, vcs: FakeVersionControl) -> None:
        vcs.dirty = [".forksync/customizations.json", ".forksync/config.yaml"]

        check_fork_ready(vcs, FORK, ignore=[".forksync"])

    def test_ignore_matches_whole_directory_names(self, vcs: FakeVersionControl) -> None:
        vcs.dirty = [".forksync-notes.md"]

        with pytest.raises(SyncError):
            check_fork_ready(vcs, FORK, ignore=[".forksync"])


class TestReconcileRemote:
    def test_adds_missing_remote(self, boilerplate: RepoBuilder) -> None:
        vcs = GitVersionControl(boilerplate.path)

        assert reconcile_remote(vcs, boilerplate.path, "boilerplate", "https://example.com/bp.git")
        assert vcs.remote_url(boilerplate.path, "boilerplate") == "https://example.com/bp.git"

    def test_matching_remote_is_left_alone(self, boilerplate: RepoBuilder) -> None:
        vcs = GitVersionControl(boilerplate.path)
        vcs.ensure_remote(boilerplate.path, "boilerplate", "https://example.com/bp.git")

        url = "https://example.com/bp.git/"

        assert not reconcile_remote(vcs, boilerplate.path, "boilerplate", url)

    def test_mismatch_refused(self, boilerplate: RepoBuilder) -> None:
        vcs = GitVersionControl(boilerplate.path)
        vcs.ensure_remote(boilerplate.path, "boilerplate", "https://example.com/old.git")

        with pytest.raises(ConfigError) as exc:
            reconcile_remote(vcs, boilerplate.path, "boilerplate", "https://example.com/bp.git")

        assert exc.value.code == ErrorCode.CONFIG_REMOTE_MISMATCH
        assert exc.value.details["actual"] == "https://example.com/old.git"
        assert vcs.remote_url(boilerplate.path, "boilerplate") == "https://example.com/old.git"

    def test_mismatch_overwritten_when_allowed(self, boilerplate: RepoBuilder) -> None:
        vcs = GitVersionControl(boilerplate.path)
        vcs.ensure_remote(boilerplate.path, "boilerplate", "https://example.com/old.git")

        changed = reconcile_remote(
            vcs, boilerplate.path, "boilerplate", "https://example.com/bp.git", overwrite=True
        )

        assert changed
        assert vcs.remote_url(boilerplate.path, "boilerplate") == "https://example.com/bp.git"


class TestSameLocation:
    def test_local_paths_resolve(self, tmp_path: Path) -> None:
        assert same_location(str(tmp_path / "bp"), str(tmp_path / "x" / ".." / "bp"))

    def test_different_urls(self) -> None:
        assert not same_location("git@github.com:org/a.git", "git@github.com:org/b.git")
