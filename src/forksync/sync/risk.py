"""Merge-risk decision table.

Risk is advisory: it decides whether the three-way content check runs and
is shown to the operator. It never picks the merge action.
"""

from __future__ import annotations

from forksync.sync.models import (
    BlobStatus,
    DivergenceStatus,
    Likelihood,
    MergeRisk,
    RecommendedCheck,
    RiskReason,
)

_S = DivergenceStatus
_B = BlobStatus

_IDENTICAL_LOW = MergeRisk(Likelihood.LOW, RiskReason.IDENTICAL, True, RecommendedCheck.NONE)
_MISSING_HIGH = MergeRisk(
    Likelihood.HIGH, RiskReason.MISSING_IN_FORK, False, RecommendedCheck.ADDED_OR_REMOVED
)
_DIVERGED_HIGH = MergeRisk(
    Likelihood.HIGH, RiskReason.DIVERGED_CONTENT, False, RecommendedCheck.THREE_WAY_MERGE_CHECK
)
_UNRELATED_HIGH = MergeRisk(
    Likelihood.HIGH, RiskReason.UNRELATED_HISTORIES, False, RecommendedCheck.THREE_WAY_MERGE_CHECK
)

RISK_TABLE: dict[tuple[DivergenceStatus, BlobStatus], MergeRisk] = {
    (_S.UP_TO_DATE, _B.IDENTICAL): _IDENTICAL_LOW,
    (_S.UP_TO_DATE, _B.DIFFERENT): MergeRisk(
        Likelihood.MEDIUM, RiskReason.BLOB_MISMATCH, False, RecommendedCheck.VERIFY_HEAD
    ),
    (_S.UP_TO_DATE, _B.MISSING): _MISSING_HIGH,
    (_S.AHEAD, _B.IDENTICAL): _IDENTICAL_LOW,
    (_S.AHEAD, _B.DIFFERENT): MergeRisk(
        Likelihood.MEDIUM, RiskReason.BLOB_MISMATCH, True, RecommendedCheck.VERIFY_ANCESTOR
    ),
    (_S.AHEAD, _B.MISSING): _MISSING_HIGH,
    (_S.BEHIND, _B.IDENTICAL): _IDENTICAL_LOW,
    (_S.BEHIND, _B.DIFFERENT): MergeRisk(
        Likelihood.MEDIUM, RiskReason.BLOB_MISMATCH, False, RecommendedCheck.VERIFY_ANCESTOR
    ),
    (_S.BEHIND, _B.MISSING): _MISSING_HIGH,
    (_S.DIVERGED, _B.IDENTICAL): MergeRisk(
        Likelihood.MEDIUM, RiskReason.IDENTICAL, True, RecommendedCheck.NONE
    ),
    (_S.DIVERGED, _B.DIFFERENT): _DIVERGED_HIGH,
    (_S.DIVERGED, _B.MISSING): _DIVERGED_HIGH,
    (_S.UNRELATED, _B.IDENTICAL): MergeRisk(
        Likelihood.MEDIUM, RiskReason.UNRELATED_HISTORIES, True, RecommendedCheck.NONE
    ),
    (_S.UNRELATED, _B.DIFFERENT): _UNRELATED_HIGH,
    (_S.UNRELATED, _B.MISSING): _UNRELATED_HIGH,
}

UNKNOWN_RISK = MergeRisk(
    Likelihood.HIGH, RiskReason.UNKNOWN, False, RecommendedCheck.GENERIC_MERGE_ATTEMPT
)


def classify_risk(status: DivergenceStatus, blob: BlobStatus) -> MergeRisk:
    return RISK_TABLE.get((status, blob), UNKNOWN_RISK)
