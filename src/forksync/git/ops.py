"""Git operations via pygit2 - returns serializable data models."""

from __future__ import annotations

from collections import defaultdict
from functools import partial
from pathlib import Path

import pygit2

from forksync.git._internal import (
    RebaseFlow,
    RebasePlanner,
    RepoAccess,
    Side,
    WriteFlows,
    check_nothing_to_commit,
    git_operation,
    make_branch_ref,
    require_branch_exists,
    require_current_branch,
    require_no_conflicts,
)
from forksync.git._internal.constants import (
    MERGE_UP_TO_DATE,
    RESET_HARD,
    SORT_TIME,
    STATUS_IGNORED,
    STATUS_WT_NEW,
)
from forksync.git.credentials import SystemCredentialCallback, get_default_callbacks
from forksync.git.errors import GitError, PathNotFoundError, RefNotFoundError
from forksync.git.models import BlobEntry, CommitInfo, MergeResult, RebaseResult


class GitOps:
    """Thin wrapper around pygit2.Repository with cleaner error handling."""

    def __init__(self, repo_path: Path | str) -> None:
        self._access = RepoAccess(repo_path)
        self._flows = WriteFlows(self._access)
        self._rebase_planner = RebasePlanner(self._access)
        self._rebase_flow = RebaseFlow(self._access)

    @property
    def repo(self) -> pygit2.Repository:
        """
        Direct access to underlying pygit2 Repository.

        Escape hatch for tests and advanced consumers. Bypasses error mapping.
        """
        return self._access.repo

    @property
    def path(self) -> Path:
        """Repository root path."""
        return self._access.path

    # =========================================================================
    # Read Operations
    # =========================================================================

    def current_branch(self) -> str | None:
        """Current branch name, or None if detached or unborn."""
        return self._access.current_branch_name()

    def head_commit(self) -> CommitInfo | None:
        commit = self._access.head_commit()
        return CommitInfo.from_pygit2(commit) if commit else None

    def resolve(self, ref: str) -> str:
        """Resolve a ref to its commit sha."""
        return str(self._access.resolve_commit(ref).id)

    def has_ref(self, ref: str) -> bool:
        try:
            self._access.resolve_commit(ref)
        except RefNotFoundError:
            return False
        return True

    def show(self, ref: str = "HEAD") -> CommitInfo:
        return CommitInfo.from_pygit2(self._access.resolve_commit(ref))

    def commits_between(self, exclude: str, include: str) -> list[CommitInfo]:
        """Commits reachable from include but not from exclude, newest first."""
        include_oid = self._access.resolve_ref_oid(include)
        walker = self._access.walk_commits(include_oid, SORT_TIME)
        walker.hide(self._access.resolve_ref_oid(exclude))
        return [CommitInfo.from_pygit2(c) for c in walker]

    def list_blobs(self, ref: str) -> list[BlobEntry]:
        """Every file in the tree at ref, sorted by path."""
        tree = self._access.resolve_commit(ref).tree
        entries = [
            BlobEntry(path, str(blob.id), blob.filemode or 0)
            for path, blob in self._access.iter_blobs(tree)
        ]
        return sorted(entries, key=lambda e: e.path)

    def read_blob_at(self, commit: str, path: str) -> bytes:
        """File content at commit:path."""
        tree = self._access.resolve_commit(commit).tree
        entry = self._access.tree_entry(tree, path)
        if not isinstance(entry, pygit2.Blob):
            raise PathNotFoundError(commit, path)
        return entry.data

    def file_histories(self, ref: str) -> dict[str, list[CommitInfo]]:
        """
        Per-path commit history reachable from ref, newest first by commit time.

        A commit touches a path when the path differs from every parent, so a
        merge only counts for paths it actually changed relative to all sides.
        Root commits touch every file they contain. Renames are not followed.
        """
        start = self._access.resolve_ref_oid(ref)
        histories: dict[str, list[CommitInfo]] = defaultdict(list)
        for commit in self._access.walk_commits(start, SORT_TIME):
            info = CommitInfo.from_pygit2(commit)
            for path in self._touched_paths(commit):
                histories[path].append(info)
        return dict(histories)

    def _touched_paths(self, commit: pygit2.Commit) -> set[str]:
        parents = commit.parents
        if not parents:
            return {path for path, _ in self._access.iter_blobs(commit.tree)}
        per_parent: list[set[str]] = []
        for parent in parents:
            diff = parent.tree.diff_to_tree(commit.tree)
            paths: set[str] = set()
            for delta in diff.deltas:
                paths.update(p for p in (delta.old_file.path, delta.new_file.path) if p)
            per_parent.append(paths)
        return set.intersection(*per_parent)

    def conflict_paths(self, *, refresh: bool = False) -> tuple[str, ...]:
        """Paths with unresolved conflicts. refresh re-reads the on-disk index first."""
        if refresh:
            self._access.index.read(True)
        return self._flows.extract_conflict_paths()

    def staged_paths(self, *, refresh: bool = False) -> tuple[str, ...]:
        if refresh:
            self._access.index.read(True)
        return self._flows.staged_paths()

    def merge_in_progress(self) -> bool:
        return bool(self._access.merge_head_oids())

    def uncommitted_paths(self) -> tuple[str, ...]:
        """Paths whose index or working tree differs from HEAD, untracked files aside."""
        clean = STATUS_WT_NEW | STATUS_IGNORED
        return tuple(sorted(p for p, flags in self._access.status().items() if flags & ~clean))

    def three_way_merge_is_clean(self, ours: bytes, base: bytes, theirs: bytes) -> bool:
        """Merge one file's three versions offline. True when no conflict remains."""
        with git_operation("three-way content merge"):
            merged = self._access.merge_trees(
                self._access.single_file_tree(base),
                self._access.single_file_tree(ours),
                self._access.single_file_tree(theirs),
            )
            return merged.conflicts is None

    # =========================================================================
    # Write Operations
    # =========================================================================

    def checkout(self, branch: str, *, create: bool = False, start_point: str = "HEAD") -> None:
        """Checkout a local branch, optionally creating it from start_point."""
        with git_operation(f"checkout {branch}"):
            if create and not self._access.has_local_branch(branch):
                self._access.create_local_branch(branch, self._access.resolve_commit(start_point))
            require_branch_exists(self._access, branch)
            self._access.checkout_branch(self._access.must_local_branch(branch))

    def merge_no_commit(self, ref: str) -> MergeResult:
        """
        Merge ref into the current branch, leaving the result uncommitted.

        The merge state (MERGE_HEAD) stays in place until commit() so the
        eventual commit records ref as its second parent. Fast-forwardable
        merges are still performed as real merges.
        """
        require_current_branch(self._access, "merge")
        require_no_conflicts(self._access, "merge")
        their_oid = self._access.resolve_ref_oid(ref)
        with git_operation(f"merge {ref}"):
            analysis, _ = self._access.merge_analysis(their_oid)
            if analysis & MERGE_UP_TO_DATE:
                return MergeResult(up_to_date=True)
            self._access.merge(their_oid)
            self._access.index.write()
            return MergeResult(False, self._flows.check_conflicts().conflict_paths)

    def squash_merge(self, ref: str) -> MergeResult:
        """Merge ref's changes into the index without recording ref as a parent."""
        result = self.merge_no_commit(ref)
        self._access.state_cleanup()
        return result

    def abort_merge(self) -> None:
        """Throw away an uncommitted merge."""
        self._access.state_cleanup()
        self._access.reset(self._access.must_head_target(), RESET_HARD)

    def resolve_conflict(self, path: str, side: Side) -> None:
        with git_operation(f"resolve {path} as {side}"):
            self._flows.resolve_conflict(path, side)

    def drop_path(self, path: str) -> None:
        with git_operation(f"remove {path}"):
            self._flows.drop_path(path)

    def checkout_side(self, path: str, side: Side) -> None:
        """Stage one side's version of a merged, non-conflicted path."""
        if side == "ours":
            tree = self._access.must_head_tree()
        else:
            heads = self._access.merge_head_oids()
            if not heads:
                raise GitError(f"Cannot take incoming version of {path}: no merge in progress")
            tree = self._access.get_commit(str(heads[0])).tree
        with git_operation(f"checkout {side} {path}"):
            self._flows.apply_tree_version(path, tree)

    def commit(self, message: str) -> str:
        """Create commit from staged changes (and any pending merge). Returns sha."""
        require_no_conflicts(self._access, "commit")
        check_nothing_to_commit(self._access)
        with git_operation("commit"):
            return self._flows.commit_from_index(message)

    def has_remote(self, name: str) -> bool:
        return self._access.has_remote(name)

    def ensure_remote(self, name: str, url: str) -> bool:
        """Add remote name -> url when absent. Returns True if it was created."""
        if self._access.has_remote(name):
            return False
        with git_operation(f"add remote {name}"):
            self._access.create_remote(name, url)
        return True

    def remote_url(self, name: str) -> str | None:
        """Fetch URL of remote name, or None when the remote does not exist."""
        if not self._access.has_remote(name):
            return None
        return self._access.get_remote(name).url

    def set_remote_url(self, name: str, url: str) -> None:
        self._access.get_remote(name)
        with git_operation(f"set url of remote {name}"):
            self._access.set_remote_url(name, url)

    def fetch(self, remote: str, callbacks: SystemCredentialCallback | None = None) -> None:
        """Fetch from remote."""
        cbs = callbacks or get_default_callbacks()
        self._access.run_remote_operation(
            remote, "fetch", partial(pygit2.Remote.fetch, callbacks=cbs)
        )

    def push(
        self,
        remote: str,
        branch: str | None = None,
        callbacks: SystemCredentialCallback | None = None,
    ) -> None:
        """Push branch (default: current) to the same name on remote."""
        branch = branch or require_current_branch(self._access, "push")
        refspec = f"{make_branch_ref(branch)}:{make_branch_ref(branch)}"
        cbs = callbacks or get_default_callbacks()
        self._access.run_remote_operation(
            remote, "push", partial(pygit2.Remote.push, specs=[refspec], callbacks=cbs)
        )

    # =========================================================================
    # Rebase
    # =========================================================================

    def rebase(self, upstream: str) -> RebaseResult:
        """Replay the current branch's own commits on top of upstream."""
        require_current_branch(self._access, "rebase")
        plan = self._rebase_planner.plan(upstream)
        with git_operation(f"rebase onto {upstream}"):
            return self._rebase_flow.execute(plan)

    def rebase_continue(self) -> RebaseResult:
        self._access.index.read(True)
        with git_operation("rebase continue"):
            return self._rebase_flow.continue_rebase()

    def rebase_abort(self) -> None:
        with git_operation("rebase abort"):
            self._rebase_flow.abort()

    def rebase_in_progress(self) -> bool:
        return self._rebase_flow.has_rebase_in_progress()

    def abort(self) -> str | None:
        """Undo an interrupted rebase or merge. Returns which one was undone, if any."""
        if self.rebase_in_progress():
            self.rebase_abort()
            return "rebase"
        if self.merge_in_progress() or self.conflict_paths(refresh=True):
            self.abort_merge()
            return "merge"
        return None
