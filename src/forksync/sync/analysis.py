"""Per-file divergence analysis over a bounded worker pool.

Every boilerplate-tracked file is analyzed independently: histories,
content identity, merge risk, an optional offline three-way merge, the
customization lookup and finally the merge action. A version-control
failure on one file marks that file ``undetermined`` and leaves the rest
of the run alone.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed

from forksync.config.models import AnalysisConfig
from forksync.core.errors import AnalysisError, ErrorCode, ForkSyncError, InternalError
from forksync.core.logging import get_logger
from forksync.sync.blobs import compare_blobs, is_binary_path
from forksync.sync.history import compare_histories
from forksync.sync.models import (
    NO_CUSTOMIZATION,
    AnalysisSummary,
    CustomizationSource,
    DivergenceStatus,
    DivergenceSummary,
    FileAnalysis,
    FileIdentity,
    MergeAction,
    MergeActionKind,
    MergeRisk,
    RecommendedCheck,
    RepoRef,
    ThreeWayCheck,
)
from forksync.sync.risk import classify_risk
from forksync.sync.strategy import ResolutionContext, resolve_action
from forksync.sync.swizzle import SwizzleTracker
from forksync.sync.vcs import VersionControl

log = get_logger("sync.analysis")


class Analyzer:
    """Runs one analysis pass. Never writes to either repository or the store."""

    def __init__(
        self,
        vcs: VersionControl,
        tracker: SwizzleTracker,
        config: AnalysisConfig | None = None,
    ) -> None:
        self._vcs = vcs
        self._tracker = tracker
        self._config = config or AnalysisConfig()

    @property
    def tracker(self) -> SwizzleTracker:
        return self._tracker

    def analyze(self, boilerplate: RepoRef, fork: RepoRef) -> list[FileAnalysis]:
        """Analyze every boilerplate file against the fork. Results sorted by path."""
        boilerplate_files = self._vcs.list_tracked_files(boilerplate.path, boilerplate.ref)
        fork_files = {f.path: f for f in self._vcs.list_tracked_files(fork.path, fork.ref)}
        log.info(
            "analysis_started",
            boilerplate=boilerplate.ref,
            fork=fork.ref,
            files=len(boilerplate_files),
            workers=self._config.max_workers,
        )

        results: dict[str, FileAnalysis] = {}
        with ThreadPoolExecutor(
            max_workers=self._config.max_workers, thread_name_prefix="forksync-analyze"
        ) as pool:
            futures = {
                pool.submit(
                    self.analyze_file, identity, fork_files.get(identity.path), boilerplate, fork
                ): identity.path
                for identity in boilerplate_files
            }
            for future in as_completed(futures):
                path = futures[future]
                try:
                    results[path] = future.result()
                except ForkSyncError:
                    raise
                except Exception as e:
                    raise InternalError.unexpected(
                        f"analysis of {path} crashed: {e}", path=path
                    ) from e

        analyses = [results[path] for path in sorted(results)]
        errors = sum(1 for a in analyses if a.error)
        log.info("analysis_finished", files=len(analyses), errors=errors)
        return analyses

    def analyze_file(
        self,
        boilerplate_file: FileIdentity,
        fork_file: FileIdentity | None,
        boilerplate: RepoRef,
        fork: RepoRef,
    ) -> FileAnalysis:
        path = boilerplate_file.path
        try:
            boilerplate_history = self._vcs.file_history(boilerplate.path, boilerplate.ref, path)
            fork_history = self._vcs.file_history(fork.path, fork.ref, path)

            divergence = compare_histories(boilerplate_history, fork_history)
            blob_status = compare_blobs(boilerplate_file, fork_file)
            risk = classify_risk(divergence.status, blob_status)
            three_way = self._three_way_check(
                boilerplate_file, fork_file, divergence, risk, boilerplate, fork
            )
            customization = self._tracker.lookup(
                boilerplate_file,
                fork_file,
                divergence,
                blob_status,
                boilerplate_history,
                fork_history,
            )
        except AnalysisError as e:
            log.warning("file_analysis_failed", path=path, error=e.message)
            return FileAnalysis(
                path=path,
                boilerplate=boilerplate_file,
                fork=fork_file,
                divergence=None,
                blob_status=None,
                risk=None,
                three_way=ThreeWayCheck.NOT_RUN,
                customization=NO_CUSTOMIZATION,
                action=MergeAction(MergeActionKind.UNDETERMINED, "version control failure"),
                error=e.message,
            )

        action = resolve_action(
            ResolutionContext(
                boilerplate=boilerplate_file,
                fork=fork_file,
                status=divergence.status,
                blob_status=blob_status,
                customization=customization,
            )
        )
        log.debug(
            "file_analyzed",
            path=path,
            status=divergence.status.value,
            blob=blob_status.value,
            risk=risk.likelihood.value,
            action=action.kind.value,
        )
        return FileAnalysis(
            path=path,
            boilerplate=boilerplate_file,
            fork=fork_file,
            divergence=divergence,
            blob_status=blob_status,
            risk=risk,
            three_way=three_way,
            customization=customization,
            action=action,
        )

    def _three_way_check(
        self,
        boilerplate_file: FileIdentity,
        fork_file: FileIdentity | None,
        divergence: DivergenceSummary,
        risk: MergeRisk,
        boilerplate: RepoRef,
        fork: RepoRef,
    ) -> ThreeWayCheck:
        if (
            not self._config.three_way_check
            or risk.recommended_check != RecommendedCheck.THREE_WAY_MERGE_CHECK
        ):
            return ThreeWayCheck.NOT_RUN
        if is_binary_path(boilerplate_file.path, self._config.binary_extensions):
            return ThreeWayCheck.SKIPPED_BINARY
        if divergence.shared_ancestor_id is None or fork_file is None:
            return ThreeWayCheck.NOT_APPLICABLE

        path = boilerplate_file.path
        read = self._vcs.read_file_at_commit
        try:
            base = read(fork.path, divergence.shared_ancestor_id, path)
        except AnalysisError as e:
            # The shared commit deleted the file; both sides re-added it since
            if e.code != ErrorCode.PATH_ABSENT_AT_COMMIT:
                raise
            return ThreeWayCheck.NOT_APPLICABLE
        ours = read(fork.path, fork_file.last_commit_id, path)
        theirs = read(boilerplate.path, boilerplate_file.last_commit_id, path)
        outcome = self._vcs.attempt_three_way_content_merge(ours, base, theirs)
        return ThreeWayCheck.CLEAN if outcome.clean else ThreeWayCheck.CONFLICTED


def analyze(
    vcs: VersionControl,
    tracker: SwizzleTracker,
    boilerplate: RepoRef,
    fork: RepoRef,
    config: AnalysisConfig | None = None,
) -> list[FileAnalysis]:
    """One-shot analysis entry point."""
    return Analyzer(vcs, tracker, config).analyze(boilerplate, fork)


def summarize(analyses: Iterable[FileAnalysis]) -> AnalysisSummary:
    summary = AnalysisSummary()
    actions: Counter[MergeActionKind] = Counter()
    statuses: Counter[DivergenceStatus] = Counter()
    for analysis in analyses:
        summary.total += 1
        actions[analysis.action.kind] += 1
        if analysis.divergence is not None:
            statuses[analysis.divergence.status] += 1
        if analysis.error:
            summary.errors += 1
        if analysis.customization.source == CustomizationSource.STALE:
            summary.stale_customizations += 1
        elif analysis.customization.source == CustomizationSource.DETECTED:
            summary.detected_customizations += 1
    summary.by_action = dict(actions)
    summary.by_status = dict(statuses)
    return summary
