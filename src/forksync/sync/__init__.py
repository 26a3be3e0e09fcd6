"""Fork/boilerplate divergence analysis and merge orchestration."""

from forksync.sync.analysis import Analyzer, analyze, summarize
from forksync.sync.blobs import compare_blobs
from forksync.sync.history import compare_histories
from forksync.sync.models import (
    BlobStatus,
    CustomizationEvent,
    CustomizationLookup,
    CustomizationRecord,
    CustomizationSource,
    DivergenceStatus,
    DivergenceSummary,
    FileAnalysis,
    FileIdentity,
    HistoryCoverage,
    Likelihood,
    MergeAction,
    MergeActionKind,
    MergeRisk,
    OrchestratorState,
    RepoRef,
    SyncResult,
)
from forksync.sync.orchestrator import SyncOrchestrator, build_squash_message
from forksync.sync.preflight import check_fork_ready, reconcile_remote
from forksync.sync.risk import classify_risk
from forksync.sync.strategy import resolve_action
from forksync.sync.swizzle import CustomizationStore, ManualOverrides, SwizzleTracker
from forksync.sync.vcs import GitVersionControl, VersionControl

__all__ = [
    "Analyzer",
    "analyze",
    "summarize",
    "compare_blobs",
    "compare_histories",
    "classify_risk",
    "resolve_action",
    "build_squash_message",
    "SyncOrchestrator",
    "check_fork_ready",
    "reconcile_remote",
    "CustomizationStore",
    "ManualOverrides",
    "SwizzleTracker",
    "GitVersionControl",
    "VersionControl",
    "BlobStatus",
    "CustomizationEvent",
    "CustomizationLookup",
    "CustomizationRecord",
    "CustomizationSource",
    "DivergenceStatus",
    "DivergenceSummary",
    "FileAnalysis",
    "FileIdentity",
    "HistoryCoverage",
    "Likelihood",
    "MergeAction",
    "MergeActionKind",
    "MergeRisk",
    "OrchestratorState",
    "RepoRef",
    "SyncResult",
]
