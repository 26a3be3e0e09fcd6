"""Git access for ForkSync, built on pygit2."""

from forksync.git.errors import (
    AuthenticationError,
    BranchNotFoundError,
    DetachedHeadError,
    GitError,
    NoConflictError,
    NoRebaseInProgressError,
    NotARepositoryError,
    NothingToCommitError,
    PathNotFoundError,
    RebaseConflictError,
    RebaseError,
    RebaseInProgressError,
    RefNotFoundError,
    RemoteError,
)
from forksync.git.models import BlobEntry, CommitInfo, MergeResult, RebaseResult
from forksync.git.ops import GitOps

__all__ = [
    "AuthenticationError",
    "BlobEntry",
    "BranchNotFoundError",
    "CommitInfo",
    "DetachedHeadError",
    "GitError",
    "GitOps",
    "MergeResult",
    "NoConflictError",
    "NoRebaseInProgressError",
    "NotARepositoryError",
    "NothingToCommitError",
    "PathNotFoundError",
    "RebaseConflictError",
    "RebaseError",
    "RebaseInProgressError",
    "RebaseResult",
    "RefNotFoundError",
    "RemoteError",
]
