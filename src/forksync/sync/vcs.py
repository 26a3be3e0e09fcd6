"""The narrow version-control interface the sync engine consumes, and its pygit2 adapter."""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Literal, Protocol, TypeVar

from forksync.core.errors import AnalysisError, SyncError
from forksync.core.logging import get_logger
from forksync.git import GitError, GitOps, PathNotFoundError
from forksync.git.models import CommitInfo, RebaseResult
from forksync.sync.models import (
    CommitHistory,
    CommitRecord,
    ContentMergeOutcome,
    FileIdentity,
    MergeOutcome,
    RebaseOutcome,
)

Side = Literal["ours", "theirs"]

T = TypeVar("T")

log = get_logger("sync.vcs")


class VersionControl(Protocol):
    """Everything the analyzer and orchestrator need from a repository.

    Read operations raise ``AnalysisError``; operations that mutate the
    repository raise ``SyncError``.
    """

    # Reads
    def list_tracked_files(self, repo: Path, branch: str) -> list[FileIdentity]: ...
    def file_history(self, repo: Path, branch: str, path: str) -> CommitHistory: ...
    def read_file_at_commit(self, repo: Path, commit_id: str, path: str) -> bytes: ...
    def attempt_three_way_content_merge(
        self, ours: bytes, base: bytes, theirs: bytes
    ) -> ContentMergeOutcome: ...
    def count_commits_between(self, repo: Path, exclude: str, include: str) -> int: ...
    def commit_messages_between(self, repo: Path, exclude: str, include: str) -> list[str]: ...

    # Merge state
    def conflicted_paths(self, repo: Path) -> list[str]: ...
    def staged_paths(self, repo: Path) -> list[str]: ...
    def merge_in_progress(self, repo: Path) -> bool: ...
    def rebase_in_progress(self, repo: Path) -> bool: ...
    def uncommitted_paths(self, repo: Path) -> list[str]: ...

    # Writes
    def checkout(self, repo: Path, branch: str, *, create: bool = False) -> None: ...
    def attempt_merge(self, repo: Path, branch: str) -> MergeOutcome: ...
    def squash_merge(self, repo: Path, branch: str) -> MergeOutcome: ...
    def resolve_conflict_as_ours(self, repo: Path, path: str) -> None: ...
    def resolve_conflict_as_theirs(self, repo: Path, path: str) -> None: ...
    def unstage_and_remove(self, repo: Path, path: str) -> None: ...
    def checkout_side(self, repo: Path, path: str, side: Side) -> None: ...
    def commit(self, repo: Path, message: str) -> str: ...
    def push(self, repo: Path, branch: str, remote: str) -> None: ...
    def rebase(self, repo: Path, upstream: str) -> RebaseOutcome: ...
    def rebase_continue(self, repo: Path) -> RebaseOutcome: ...


class GitVersionControl:
    """pygit2-backed VersionControl.

    One instance serves one run: per-ref file histories are computed once and
    cached. pygit2 repositories are not safe for concurrent use, so every
    access to a repository is serialized on that repository's lock.
    """

    def __init__(self, workspace: Path) -> None:
        # workspace hosts the scratch objects written by content merges
        self._workspace = workspace
        self._ops: dict[Path, GitOps] = {}
        self._locks: dict[Path, threading.RLock] = {}
        self._histories: dict[tuple[Path, str], dict[str, CommitHistory]] = {}
        self._registry_lock = threading.Lock()

    # =========================================================================
    # Plumbing
    # =========================================================================

    def _key(self, repo: Path) -> Path:
        return Path(repo).resolve()

    @contextmanager
    def _open(self, repo: Path) -> Iterator[GitOps]:
        key = self._key(repo)
        with self._registry_lock:
            lock = self._locks.setdefault(key, threading.RLock())
        with lock:
            ops = self._ops.get(key)
            if ops is None:
                ops = GitOps(key)
                self._ops[key] = ops
            yield ops

    def ops(self, repo: Path) -> GitOps:
        """Underlying GitOps for repo, for callers outside the sync engine."""
        with self._open(repo) as ops:
            return ops

    def _read(self, repo: Path, what: str, fn: Callable[[GitOps], T]) -> T:
        try:
            with self._open(repo) as ops:
                return fn(ops)
        except GitError as e:
            raise AnalysisError.version_control_failure(what, str(e)) from e

    def _write(self, repo: Path, step: str, fn: Callable[[GitOps], T]) -> T:
        try:
            with self._open(repo) as ops:
                return fn(ops)
        except GitError as e:
            log.error("vcs_step_failed", repo=str(repo), step=step, error=str(e))
            raise SyncError.orchestration_failed(step, str(e)) from e

    def _history_index(self, repo: Path, branch: str) -> dict[str, CommitHistory]:
        key = (self._key(repo), branch)
        with self._open(repo) as ops:
            cached = self._histories.get(key)
            if cached is None:
                try:
                    raw = ops.file_histories(branch)
                except GitError as e:
                    raise AnalysisError.version_control_failure(branch, str(e)) from e
                cached = {path: tuple(map(_record, commits)) for path, commits in raw.items()}
                self._histories[key] = cached
                log.debug("history_indexed", repo=str(key[0]), ref=branch, paths=len(cached))
            return cached

    # =========================================================================
    # Reads
    # =========================================================================

    def list_tracked_files(self, repo: Path, branch: str) -> list[FileIdentity]:
        histories = self._history_index(repo, branch)
        blobs = self._read(repo, branch, lambda ops: ops.list_blobs(branch))
        return [
            FileIdentity(
                path=blob.path,
                content_hash=blob.blob_sha,
                last_commit_id=histories[blob.path][0].commit_id
                if histories.get(blob.path)
                else "",
            )
            for blob in blobs
        ]

    def file_history(self, repo: Path, branch: str, path: str) -> CommitHistory:
        return self._history_index(repo, branch).get(path, ())

    def read_file_at_commit(self, repo: Path, commit_id: str, path: str) -> bytes:
        try:
            with self._open(repo) as ops:
                return ops.read_blob_at(commit_id, path)
        except PathNotFoundError as e:
            raise AnalysisError.path_absent(path, commit_id) from e
        except GitError as e:
            raise AnalysisError.version_control_failure(path, str(e)) from e

    def attempt_three_way_content_merge(
        self, ours: bytes, base: bytes, theirs: bytes
    ) -> ContentMergeOutcome:
        clean = self._read(
            self._workspace,
            "three-way content merge",
            lambda ops: ops.three_way_merge_is_clean(ours, base, theirs),
        )
        return ContentMergeOutcome(clean=clean)

    def count_commits_between(self, repo: Path, exclude: str, include: str) -> int:
        return len(self._commits_between(repo, exclude, include))

    def commit_messages_between(self, repo: Path, exclude: str, include: str) -> list[str]:
        return [c.subject for c in self._commits_between(repo, exclude, include)]

    def _commits_between(self, repo: Path, exclude: str, include: str) -> list[CommitInfo]:
        return self._read(
            repo, f"{exclude}..{include}", lambda ops: ops.commits_between(exclude, include)
        )

    def conflicted_paths(self, repo: Path) -> list[str]:
        return list(self._read(repo, "index", lambda ops: ops.conflict_paths(refresh=True)))

    def staged_paths(self, repo: Path) -> list[str]:
        return list(self._read(repo, "index", lambda ops: ops.staged_paths(refresh=True)))

    def merge_in_progress(self, repo: Path) -> bool:
        return self._read(repo, "MERGE_HEAD", lambda ops: ops.merge_in_progress())

    def rebase_in_progress(self, repo: Path) -> bool:
        return self._read(repo, "rebase state", lambda ops: ops.rebase_in_progress())

    def uncommitted_paths(self, repo: Path) -> list[str]:
        return list(self._read(repo, "status", lambda ops: ops.uncommitted_paths()))

    # =========================================================================
    # Writes
    # =========================================================================

    def checkout(self, repo: Path, branch: str, *, create: bool = False) -> None:
        self._write(repo, f"checkout {branch}", lambda ops: ops.checkout(branch, create=create))

    def attempt_merge(self, repo: Path, branch: str) -> MergeOutcome:
        result = self._write(repo, f"merge {branch}", lambda ops: ops.merge_no_commit(branch))
        return MergeOutcome(result.conflicted, result.conflict_paths, result.up_to_date)

    def squash_merge(self, repo: Path, branch: str) -> MergeOutcome:
        result = self._write(repo, f"squash {branch}", lambda ops: ops.squash_merge(branch))
        return MergeOutcome(result.conflicted, result.conflict_paths, result.up_to_date)

    def resolve_conflict_as_ours(self, repo: Path, path: str) -> None:
        self._write(repo, f"resolve {path}", lambda ops: ops.resolve_conflict(path, "ours"))

    def resolve_conflict_as_theirs(self, repo: Path, path: str) -> None:
        self._write(repo, f"resolve {path}", lambda ops: ops.resolve_conflict(path, "theirs"))

    def unstage_and_remove(self, repo: Path, path: str) -> None:
        self._write(repo, f"remove {path}", lambda ops: ops.drop_path(path))

    def checkout_side(self, repo: Path, path: str, side: Side) -> None:
        self._write(repo, f"checkout {side} {path}", lambda ops: ops.checkout_side(path, side))

    def commit(self, repo: Path, message: str) -> str:
        return self._write(repo, "commit", lambda ops: ops.commit(message))

    def push(self, repo: Path, branch: str, remote: str) -> None:
        self._write(repo, f"push {remote}/{branch}", lambda ops: ops.push(remote, branch))

    def rebase(self, repo: Path, upstream: str) -> RebaseOutcome:
        return _rebase_outcome(
            self._write(repo, f"rebase onto {upstream}", lambda ops: ops.rebase(upstream))
        )

    def rebase_continue(self, repo: Path) -> RebaseOutcome:
        return _rebase_outcome(
            self._write(repo, "rebase continue", lambda ops: ops.rebase_continue())
        )

    # Not part of the engine's interface; used by the CLI around a run.

    def fetch(self, repo: Path, remote: str) -> None:
        self._write(repo, f"fetch {remote}", lambda ops: ops.fetch(remote))

    def has_remote(self, repo: Path, name: str) -> bool:
        with self._open(repo) as ops:
            return ops.has_remote(name)

    def ensure_remote(self, repo: Path, name: str, url: str) -> bool:
        return self._write(repo, f"add remote {name}", lambda ops: ops.ensure_remote(name, url))

    def remote_url(self, repo: Path, name: str) -> str | None:
        with self._open(repo) as ops:
            return ops.remote_url(name)

    def set_remote_url(self, repo: Path, name: str, url: str) -> None:
        self._write(repo, f"set url of {name}", lambda ops: ops.set_remote_url(name, url))

    def abort(self, repo: Path) -> str | None:
        """Undo an interrupted merge or rebase left behind by an aborted run."""
        undone = self._write(repo, "abort", lambda ops: ops.abort())
        if undone:
            log.info("interrupted_run_undone", repo=str(repo), kind=undone)
        return undone


def _record(commit: CommitInfo) -> CommitRecord:
    return CommitRecord(commit_id=commit.sha, timestamp=commit.committed_at)


def _rebase_outcome(result: RebaseResult) -> RebaseOutcome:
    return RebaseOutcome(
        done=result.success,
        conflicted_paths=result.conflict_paths,
        completed_steps=result.completed_steps,
        total_steps=result.total_steps,
        new_head=result.new_head,
    )
