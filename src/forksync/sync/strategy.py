"""Merge-strategy resolution: one binding action per file.

Rules are an ordered list of (name, predicate, action) evaluated top to
bottom; the first predicate that holds decides. Each rule is importable on
its own so it can be tested and audited independently.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from forksync.sync.models import (
    BlobStatus,
    CustomizationEvent,
    CustomizationLookup,
    DivergenceStatus,
    FileIdentity,
    MergeAction,
    MergeActionKind,
)


@dataclass(frozen=True, slots=True)
class ResolutionContext:
    """The per-file facts the resolver looks at."""

    boilerplate: FileIdentity
    fork: FileIdentity | None
    status: DivergenceStatus
    blob_status: BlobStatus
    customization: CustomizationLookup


@dataclass(frozen=True, slots=True)
class Rule:
    name: str
    applies: Callable[[ResolutionContext], bool]
    kind: MergeActionKind
    reason: str

    def action(self) -> MergeAction:
        return MergeAction(self.kind, self.reason)


def _customized_removed(ctx: ResolutionContext) -> bool:
    return ctx.customization.active and ctx.customization.event == CustomizationEvent.REMOVED


def _same_last_commit(ctx: ResolutionContext) -> bool:
    return ctx.fork is not None and ctx.fork.last_commit_id == ctx.boilerplate.last_commit_id


def _identical_content(ctx: ResolutionContext) -> bool:
    return ctx.blob_status == BlobStatus.IDENTICAL


_SETTLED = (DivergenceStatus.UP_TO_DATE, DivergenceStatus.AHEAD)


def _settled_and_different(ctx: ResolutionContext) -> bool:
    return ctx.status in _SETTLED and ctx.blob_status == BlobStatus.DIFFERENT


def _settled_and_missing(ctx: ResolutionContext) -> bool:
    return ctx.status in _SETTLED and ctx.blob_status == BlobStatus.MISSING


def _behind_and_different(ctx: ResolutionContext) -> bool:
    return ctx.status == DivergenceStatus.BEHIND and ctx.blob_status == BlobStatus.DIFFERENT


def _diverged_or_unrelated(ctx: ResolutionContext) -> bool:
    return ctx.status in (DivergenceStatus.DIVERGED, DivergenceStatus.UNRELATED)


RULES: tuple[Rule, ...] = (
    Rule(
        "customized-removed",
        _customized_removed,
        MergeActionKind.DROP_FROM_FORK,
        "fork intentionally removed this file",
    ),
    Rule(
        "same-last-commit",
        _same_last_commit,
        MergeActionKind.KEEP_FORK,
        "fork and boilerplate share the latest commit",
    ),
    Rule(
        "identical-content",
        _identical_content,
        MergeActionKind.KEEP_FORK,
        "content is identical",
    ),
    Rule(
        "fork-current-different",
        _settled_and_different,
        MergeActionKind.KEEP_FORK,
        "fork already holds its intended version",
    ),
    Rule(
        "fork-current-missing",
        _settled_and_missing,
        MergeActionKind.DROP_FROM_FORK,
        "fork removed the file after the last sync",
    ),
    Rule(
        "fork-behind",
        _behind_and_different,
        MergeActionKind.KEEP_BOILERPLATE,
        "fork has not received the boilerplate change yet",
    ),
    Rule(
        "diverged-or-unrelated",
        _diverged_or_unrelated,
        MergeActionKind.MANUAL,
        "both sides changed the file; needs review",
    ),
)

FALLBACK = MergeAction(MergeActionKind.UNDETERMINED, "no rule matched")


def resolve_action(ctx: ResolutionContext) -> MergeAction:
    return next((rule.action() for rule in RULES if rule.applies(ctx)), FALLBACK)


def matching_rule(ctx: ResolutionContext) -> Rule | None:
    """The rule that decides ctx, for logging and tests."""
    return next((rule for rule in RULES if rule.applies(ctx)), None)
