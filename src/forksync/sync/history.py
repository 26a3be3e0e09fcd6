"""Per-file commit history comparison.

The shared ancestor found here is the newest commit present in both per-file
logs. It approximates a merge base and can be wrong when either side's
history was rewritten; renames are not followed.
"""

from __future__ import annotations

from collections.abc import Sequence

from forksync.sync.models import (
    CommitRecord,
    DivergenceStatus,
    DivergenceSummary,
    HistoryCoverage,
)


def compare_histories(
    boilerplate: Sequence[CommitRecord],
    fork: Sequence[CommitRecord],
) -> DivergenceSummary:
    """Classify how the fork's history of a file relates to the boilerplate's.

    Both sequences are newest first. ``commits_ahead`` counts fork commits newer
    than the shared ancestor, ``commits_behind`` counts boilerplate ones.
    """
    boilerplate_ids = {c.commit_id for c in boilerplate}
    fork_ids = {c.commit_id for c in fork}
    coverage = _coverage(boilerplate, fork_ids)

    ahead = next((i for i, c in enumerate(fork) if c.commit_id in boilerplate_ids), None)
    if ahead is None:
        return DivergenceSummary(
            status=DivergenceStatus.UNRELATED,
            commits_ahead=0,
            commits_behind=0,
            shared_ancestor_id=None,
            last_synced_at=None,
            history_coverage=coverage,
        )

    ancestor = fork[ahead]
    behind = next(i for i, c in enumerate(boilerplate) if c.commit_id == ancestor.commit_id)
    return DivergenceSummary(
        status=_status(ahead, behind),
        commits_ahead=ahead,
        commits_behind=behind,
        shared_ancestor_id=ancestor.commit_id,
        last_synced_at=ancestor.timestamp,
        history_coverage=coverage,
    )


def _status(ahead: int, behind: int) -> DivergenceStatus:
    if ahead and behind:
        return DivergenceStatus.DIVERGED
    if ahead:
        return DivergenceStatus.AHEAD
    if behind:
        return DivergenceStatus.BEHIND
    return DivergenceStatus.UP_TO_DATE


def _coverage(boilerplate: Sequence[CommitRecord], fork_ids: set[str]) -> HistoryCoverage:
    seen = sum(1 for c in boilerplate if c.commit_id in fork_ids)
    if seen == 0:
        return HistoryCoverage.UNKNOWN
    if seen == len(boilerplate):
        return HistoryCoverage.COMPLETE
    return HistoryCoverage.PARTIAL
