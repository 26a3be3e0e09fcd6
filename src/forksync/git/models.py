"""Serializable data models for git operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Literal

import pygit2


@dataclass(frozen=True, slots=True)
class CommitInfo:
    """Git commit information."""

    sha: str
    short_sha: str
    message: str
    committed_at: datetime
    parent_shas: tuple[str, ...]

    @property
    def subject(self) -> str:
        return self.message.splitlines()[0] if self.message else ""

    @classmethod
    def from_pygit2(cls, commit: pygit2.Commit) -> CommitInfo:
        sha = str(commit.id)
        return cls(
            sha=sha,
            short_sha=sha[:7],
            message=commit.message,
            committed_at=datetime.fromtimestamp(commit.commit_time, tz=UTC),
            parent_shas=tuple(str(p) for p in commit.parent_ids),
        )


@dataclass(frozen=True, slots=True)
class BlobEntry:
    """One file in a tree snapshot."""

    path: str
    blob_sha: str
    filemode: int


@dataclass(frozen=True, slots=True)
class MergeResult:
    """Result of a merge left uncommitted in the working tree."""

    up_to_date: bool
    conflict_paths: tuple[str, ...] = field(default_factory=tuple)

    @property
    def conflicted(self) -> bool:
        return bool(self.conflict_paths)


# =============================================================================
# Rebase Types
# =============================================================================

RebaseState = Literal["done", "conflict", "aborted"]


@dataclass(frozen=True, slots=True)
class RebaseStep:
    """A single pick in a rebase plan."""

    commit_sha: str
    message: str


@dataclass(frozen=True, slots=True)
class RebasePlan:
    """A rebase plan ready for execution."""

    upstream: str
    onto: str
    steps: tuple[RebaseStep, ...]


@dataclass(frozen=True, slots=True)
class RebaseResult:
    """Result of a rebase operation."""

    success: bool
    completed_steps: int
    total_steps: int
    state: RebaseState
    conflict_paths: tuple[str, ...] = field(default_factory=tuple)
    current_commit: str | None = None
    new_head: str | None = None
