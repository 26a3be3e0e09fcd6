"""Data model for per-file divergence analysis and sync results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict


class DivergenceStatus(str, Enum):
    """How a file's fork history relates to its boilerplate history."""

    UP_TO_DATE = "up_to_date"
    AHEAD = "ahead"
    BEHIND = "behind"
    DIVERGED = "diverged"
    UNRELATED = "unrelated"


class HistoryCoverage(str, Enum):
    """Share of the boilerplate's file history also visible from the fork."""

    COMPLETE = "complete"
    PARTIAL = "partial"
    UNKNOWN = "unknown"


class BlobStatus(str, Enum):
    IDENTICAL = "identical"
    DIFFERENT = "different"
    MISSING = "missing"  # fork lacks the file


class Likelihood(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RiskReason(str, Enum):
    IDENTICAL = "identical"
    BLOB_MISMATCH = "blob_mismatch"
    MISSING_IN_FORK = "missing_in_fork"
    DIVERGED_CONTENT = "diverged_content"
    UNRELATED_HISTORIES = "unrelated_histories"
    UNKNOWN = "unknown"


class RecommendedCheck(str, Enum):
    NONE = "none"
    VERIFY_HEAD = "verify_head"
    VERIFY_ANCESTOR = "verify_ancestor"
    ADDED_OR_REMOVED = "added_or_removed"
    THREE_WAY_MERGE_CHECK = "three_way_merge_check"
    GENERIC_MERGE_ATTEMPT = "generic_merge_attempt"


class ThreeWayCheck(str, Enum):
    """Outcome of the offline three-way content merge. Advisory only."""

    NOT_RUN = "not_run"
    NOT_APPLICABLE = "not_applicable"  # no shared ancestor or no fork file
    SKIPPED_BINARY = "skipped_binary"
    CLEAN = "clean"
    CONFLICTED = "conflicted"


class CustomizationEvent(str, Enum):
    EDITED = "edited"
    REMOVED = "removed"
    RENAMED = "renamed"
    BINARY_REPLACED = "binary_replaced"


class CustomizationSource(str, Enum):
    """Where a file's customization record came from in this run."""

    NONE = "none"
    STORED = "stored"
    STALE = "stale"  # stored, but the boilerplate has moved on since detection
    OVERRIDE = "override"
    DETECTED = "detected"


class MergeActionKind(str, Enum):
    KEEP_FORK = "keep-fork"
    KEEP_BOILERPLATE = "keep-boilerplate"
    DROP_FROM_FORK = "drop-from-fork"
    DROP_FROM_BOILERPLATE = "drop-from-boilerplate"
    MANUAL = "manual"
    UNDETERMINED = "undetermined"


class OrchestratorState(str, Enum):
    IDLE = "idle"
    MERGE_ATTEMPTED = "merge_attempted"
    CLEAN = "clean"
    CONFLICT_PENDING = "conflict_pending"
    RESOLVING_CONFLICTS = "resolving_conflicts"
    RESOLVED = "resolved"
    AWAITING_HUMAN = "awaiting_human"
    FINALIZING = "finalizing"
    DONE = "done"
    ABORTED = "aborted"


# =============================================================================
# Repository snapshots
# =============================================================================


@dataclass(frozen=True, slots=True)
class RepoRef:
    """A repository and the branch (or remote-tracking ref) to read from it."""

    path: Path
    ref: str


@dataclass(frozen=True, slots=True)
class FileIdentity:
    """A file's state within one repository at one branch snapshot."""

    path: str
    content_hash: str
    last_commit_id: str


@dataclass(frozen=True, slots=True)
class CommitRecord:
    """One commit that touched a file."""

    commit_id: str
    timestamp: datetime


CommitHistory = tuple[CommitRecord, ...]
"""Commits touching one file, newest first."""


# =============================================================================
# Per-file verdicts
# =============================================================================


@dataclass(frozen=True, slots=True)
class DivergenceSummary:
    status: DivergenceStatus
    commits_ahead: int
    commits_behind: int
    shared_ancestor_id: str | None
    last_synced_at: datetime | None
    history_coverage: HistoryCoverage


@dataclass(frozen=True, slots=True)
class MergeRisk:
    likelihood: Likelihood
    reason: RiskReason
    safe_by_git: bool
    recommended_check: RecommendedCheck


class CustomizationRecord(BaseModel):
    """An intentional fork-side deviation worth preserving across syncs."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    path: str
    event: CustomizationEvent
    active: bool = True
    shared_ancestor_id: str | None = None
    fork_last_commit_id: str | None = None
    boilerplate_last_commit_id: str
    boilerplate_content_hash: str
    recorded_at: datetime


@dataclass(frozen=True, slots=True)
class CustomizationLookup:
    """Customization state of one file as seen by the strategy resolver."""

    source: CustomizationSource
    record: CustomizationRecord | None = None

    @property
    def active(self) -> bool:
        """Only active, non-stale records may steer the resolver."""
        if self.record is None or self.source == CustomizationSource.STALE:
            return False
        return self.record.active

    @property
    def event(self) -> CustomizationEvent | None:
        return self.record.event if self.record else None


NO_CUSTOMIZATION = CustomizationLookup(CustomizationSource.NONE)


@dataclass(frozen=True, slots=True)
class MergeAction:
    kind: MergeActionKind
    reason: str


@dataclass(frozen=True, slots=True)
class FileAnalysis:
    """Everything known about one boilerplate file after analysis.

    When analysis of the file failed, ``error`` carries the reason, the
    action is ``undetermined`` and the comparison fields are None.
    """

    path: str
    boilerplate: FileIdentity
    fork: FileIdentity | None
    divergence: DivergenceSummary | None
    blob_status: BlobStatus | None
    risk: MergeRisk | None
    three_way: ThreeWayCheck
    customization: CustomizationLookup
    action: MergeAction
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Stable, JSON-ready rendering."""
        divergence = self.divergence
        risk = self.risk
        record = self.customization.record
        return {
            "path": self.path,
            "boilerplate": _identity_dict(self.boilerplate),
            "fork": _identity_dict(self.fork) if self.fork else None,
            "divergence": None
            if divergence is None
            else {
                "status": divergence.status.value,
                "commits_ahead": divergence.commits_ahead,
                "commits_behind": divergence.commits_behind,
                "shared_ancestor_id": divergence.shared_ancestor_id,
                "last_synced_at": _iso(divergence.last_synced_at),
                "history_coverage": divergence.history_coverage.value,
            },
            "blob_status": self.blob_status.value if self.blob_status else None,
            "risk": None
            if risk is None
            else {
                "likelihood": risk.likelihood.value,
                "reason": risk.reason.value,
                "safe_by_git": risk.safe_by_git,
                "recommended_check": risk.recommended_check.value,
            },
            "three_way": self.three_way.value,
            "customization": {
                "source": self.customization.source.value,
                "active": self.customization.active,
                "record": record.model_dump(mode="json") if record else None,
            },
            "action": {"kind": self.action.kind.value, "reason": self.action.reason},
            "error": self.error,
        }


def _identity_dict(identity: FileIdentity) -> dict[str, str]:
    return {
        "path": identity.path,
        "content_hash": identity.content_hash,
        "last_commit_id": identity.last_commit_id,
    }


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


# =============================================================================
# Version-control outcomes
# =============================================================================


@dataclass(frozen=True, slots=True)
class MergeOutcome:
    conflicted: bool
    conflicted_paths: tuple[str, ...] = ()
    up_to_date: bool = False


@dataclass(frozen=True, slots=True)
class ContentMergeOutcome:
    clean: bool


@dataclass(frozen=True, slots=True)
class RebaseOutcome:
    done: bool
    conflicted_paths: tuple[str, ...] = ()
    completed_steps: int = 0
    total_steps: int = 0
    new_head: str | None = None


# =============================================================================
# Orchestration result
# =============================================================================


@dataclass(frozen=True, slots=True)
class SyncResult:
    status: OrchestratorState
    unresolved_paths: tuple[str, ...] = ()
    transitions: tuple[OrchestratorState, ...] = ()
    applied: tuple[tuple[str, MergeActionKind], ...] = ()
    commit_id: str | None = None
    pushed: bool = False

    @property
    def ok(self) -> bool:
        return self.status == OrchestratorState.DONE

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "unresolved_paths": list(self.unresolved_paths),
            "transitions": [s.value for s in self.transitions],
            "applied": {path: kind.value for path, kind in self.applied},
            "commit_id": self.commit_id,
            "pushed": self.pushed,
        }


@dataclass
class AnalysisSummary:
    """Counts for CLI display."""

    total: int = 0
    by_action: dict[MergeActionKind, int] = field(default_factory=dict)
    by_status: dict[DivergenceStatus, int] = field(default_factory=dict)
    errors: int = 0
    stale_customizations: int = 0
    detected_customizations: int = 0
