"""Precondition helpers and HEAD state policy for git operations."""

from __future__ import annotations

from forksync.git._internal.access import RepoAccess
from forksync.git.errors import (
    BranchNotFoundError,
    DetachedHeadError,
    GitError,
    NothingToCommitError,
)


def require_current_branch(access: RepoAccess, operation: str) -> str:
    """Raise if detached HEAD; return current branch name."""
    branch = access.current_branch_name()
    if not branch:
        raise DetachedHeadError(operation)
    return branch


def require_branch_exists(access: RepoAccess, branch_name: str) -> None:
    """Raise if branch doesn't exist."""
    if not access.has_local_branch(branch_name):
        raise BranchNotFoundError(branch_name)


def require_no_conflicts(access: RepoAccess, operation: str) -> None:
    if access.index.conflicts is not None:
        raise GitError(f"Cannot {operation}: index has unresolved conflicts")


def check_nothing_to_commit(access: RepoAccess) -> None:
    """Raise unless the index differs from HEAD or a merge awaits its commit."""
    if access.merge_head_oids():
        return
    if access.is_unborn:
        if len(access.index) == 0:
            raise NothingToCommitError
        return
    diff = access.index.diff_to_tree(access.must_head_tree())
    if diff.stats.files_changed == 0:
        raise NothingToCommitError
