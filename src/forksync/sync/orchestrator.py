"""Applies resolved merge actions during a real merge, squash or rebase.

The orchestrator runs strictly sequentially: it owns the repository's
index and working tree for the duration of a run. Files it cannot settle
are never forced to a side; it pauses and asks the operator instead.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from pathlib import Path

from forksync.core.logging import get_logger
from forksync.sync.models import (
    FileAnalysis,
    MergeActionKind,
    OrchestratorState,
    SyncResult,
)
from forksync.sync.preflight import check_fork_ready
from forksync.sync.vcs import Side, VersionControl

log = get_logger("sync.orchestrator")

ConfirmFn = Callable[[Sequence[str]], bool]
"""Asked with the still-conflicted paths; True once the operator resolved them, False to abort."""

_State = OrchestratorState

# Actions the orchestrator enforces on cleanly merged files. keep-fork is what
# a merge already does for files the boilerplate did not touch.
_ENFORCED_ON_CLEAN = (
    MergeActionKind.KEEP_BOILERPLATE,
    MergeActionKind.DROP_FROM_FORK,
    MergeActionKind.DROP_FROM_BOILERPLATE,
)


def build_squash_message(
    subjects: Sequence[str], source: str, max_previews: int = 10
) -> str:
    """``chore(sync): N commits from <source>`` followed by a bulleted preview."""
    count = len(subjects)
    noun = "commit" if count == 1 else "commits"
    lines = [f"chore(sync): {count} {noun} from {source}"]
    if subjects:
        lines.append("")
        lines.extend(f"- {subject}" for subject in subjects[:max_previews])
        if count > max_previews:
            lines.append(f"... and {count - max_previews} more")
    return "\n".join(lines) + "\n"


class SyncOrchestrator:
    """State machine driving one sync run against a checked-out fork."""

    def __init__(
        self,
        vcs: VersionControl,
        repo_path: Path,
        confirm: ConfirmFn,
        *,
        push_enabled: bool = True,
        remote: str = "origin",
        max_squash_previews: int = 10,
        ignore_dirty: Sequence[str] = (),
    ) -> None:
        self._vcs = vcs
        self._repo = repo_path
        self._confirm = confirm
        self._push_enabled = push_enabled
        self._remote = remote
        self._max_squash_previews = max_squash_previews
        self._ignore_dirty = tuple(ignore_dirty)
        self._transitions: list[OrchestratorState] = []
        self._applied: list[tuple[str, MergeActionKind]] = []

    @property
    def state(self) -> OrchestratorState:
        return self._transitions[-1] if self._transitions else _State.IDLE

    def _enter(self, state: OrchestratorState) -> None:
        log.debug("orchestrator_transition", src=self.state.value, dst=state.value)
        self._transitions.append(state)

    def _start(self) -> None:
        check_fork_ready(self._vcs, self._repo, ignore=self._ignore_dirty)
        self._transitions = [_State.IDLE]
        self._applied = []

    def _result(
        self,
        unresolved: Iterable[str] = (),
        *,
        commit_id: str | None = None,
        pushed: bool = False,
    ) -> SyncResult:
        return SyncResult(
            status=self.state,
            unresolved_paths=tuple(sorted(unresolved)),
            transitions=tuple(self._transitions),
            applied=tuple(self._applied),
            commit_id=commit_id,
            pushed=pushed,
        )

    # =========================================================================
    # Workflows
    # =========================================================================

    def run_sync(
        self,
        analyses: Iterable[FileAnalysis],
        source_branch: str,
        target_branch: str,
        *,
        base_branch: str | None = None,
    ) -> SyncResult:
        """Merge source_branch into target_branch and enforce each file's action.

        target_branch is created from base_branch (default: HEAD) when missing.
        """
        actions = _actions_by_path(analyses)
        self._start()
        if base_branch:
            self._vcs.checkout(self._repo, base_branch)
        self._vcs.checkout(self._repo, target_branch, create=True)

        self._enter(_State.MERGE_ATTEMPTED)
        outcome = self._vcs.attempt_merge(self._repo, source_branch)
        log.info(
            "merge_attempted",
            source=source_branch,
            target=target_branch,
            up_to_date=outcome.up_to_date,
            conflicts=len(outcome.conflicted_paths),
        )

        if not outcome.conflicted:
            self._enter(_State.CLEAN)
            if not outcome.up_to_date:
                self._enforce_on_staged(actions)
        else:
            self._enter(_State.CONFLICT_PENDING)
            unresolved = self._resolve_and_confirm(outcome.conflicted_paths, actions)
            if unresolved:
                return self._result(unresolved)

        message = f"Merge {source_branch} into {target_branch}"
        return self._finalize(message, target_branch)

    def squash(
        self,
        analyses: Iterable[FileAnalysis],
        sync_branch: str,
        target_branch: str,
        source_label: str,
    ) -> SyncResult:
        """Fold everything new on sync_branch into target_branch as one commit.

        Leftover conflicts take the sync branch's version, which already
        carries every enforced action. Anything that still conflicts goes to
        the operator.
        """
        del analyses  # actions were already enforced on the sync branch
        self._start()
        self._vcs.checkout(self._repo, target_branch)

        subjects = self._vcs.commit_messages_between(self._repo, target_branch, sync_branch)
        if not subjects:
            log.info("squash_nothing_to_do", sync_branch=sync_branch, target=target_branch)
            self._enter(_State.DONE)
            return self._result()

        self._enter(_State.MERGE_ATTEMPTED)
        outcome = self._vcs.squash_merge(self._repo, sync_branch)
        log.info("squash_attempted", commits=len(subjects), conflicts=len(outcome.conflicted_paths))

        if outcome.conflicted:
            self._enter(_State.CONFLICT_PENDING)
            self._enter(_State.RESOLVING_CONFLICTS)
            for path in outcome.conflicted_paths:
                self._vcs.resolve_conflict_as_theirs(self._repo, path)
                self._applied.append((path, MergeActionKind.KEEP_BOILERPLATE))
            remaining = self._vcs.conflicted_paths(self._repo)
            if remaining and not self._await_human(remaining):
                return self._result(self._vcs.conflicted_paths(self._repo))
            self._enter(_State.RESOLVED)
        else:
            self._enter(_State.CLEAN)

        message = build_squash_message(subjects, source_label, self._max_squash_previews)
        return self._finalize(message, target_branch)

    def rebase(
        self,
        analyses: Iterable[FileAnalysis],
        onto_branch: str,
        target_branch: str,
    ) -> SyncResult:
        """Replay target_branch's own commits on top of onto_branch.

        While replaying, "ours" is the onto side and "theirs" is the fork's
        commit being replayed, so the side mapping is inverted. Aborting leaves
        the rebase state on disk for inspection. Rewritten history is not pushed.
        """
        actions = _actions_by_path(analyses)
        self._start()
        self._vcs.checkout(self._repo, target_branch)

        self._enter(_State.MERGE_ATTEMPTED)
        outcome = self._vcs.rebase(self._repo, onto_branch)
        while not outcome.done:
            self._enter(_State.CONFLICT_PENDING)
            unresolved = self._resolve_and_confirm(
                outcome.conflicted_paths, actions, fork_side="theirs"
            )
            if unresolved:
                return self._result(unresolved)
            outcome = self._vcs.rebase_continue(self._repo)

        if self.state == _State.MERGE_ATTEMPTED:
            self._enter(_State.CLEAN)
        self._enter(_State.FINALIZING)
        log.info("rebase_finished", steps=outcome.total_steps, new_head=outcome.new_head)
        self._enter(_State.DONE)
        return self._result(commit_id=outcome.new_head)

    # =========================================================================
    # Resolution primitives
    # =========================================================================

    def _enforce_on_staged(self, actions: Mapping[str, MergeActionKind]) -> None:
        """Apply non-default actions to files the merge staged without conflict."""
        for path in self._vcs.staged_paths(self._repo):
            kind = actions.get(path)
            if kind not in _ENFORCED_ON_CLEAN:
                continue
            if kind == MergeActionKind.KEEP_BOILERPLATE:
                self._vcs.checkout_side(self._repo, path, "theirs")
            elif kind == MergeActionKind.DROP_FROM_FORK:
                self._vcs.unstage_and_remove(self._repo, path)
            else:
                self._vcs.checkout_side(self._repo, path, "ours")
            self._applied.append((path, kind))
            log.info("action_enforced", path=path, action=kind.value)

    def _resolve_conflicts(
        self,
        paths: Iterable[str],
        actions: Mapping[str, MergeActionKind],
        *,
        fork_side: Side = "ours",
    ) -> None:
        boilerplate_side: Side = "theirs" if fork_side == "ours" else "ours"
        for path in paths:
            kind = actions.get(path)
            if kind in (MergeActionKind.KEEP_FORK, MergeActionKind.DROP_FROM_BOILERPLATE):
                self._take_side(path, fork_side)
            elif kind == MergeActionKind.KEEP_BOILERPLATE:
                self._take_side(path, boilerplate_side)
            elif kind == MergeActionKind.DROP_FROM_FORK:
                self._vcs.unstage_and_remove(self._repo, path)
            else:
                log.info(
                    "conflict_left_for_operator",
                    path=path,
                    action=kind.value if kind else None,
                )
                continue
            self._applied.append((path, kind))
            log.info("conflict_resolved", path=path, action=kind.value)

    def _take_side(self, path: str, side: Side) -> None:
        if side == "ours":
            self._vcs.resolve_conflict_as_ours(self._repo, path)
        else:
            self._vcs.resolve_conflict_as_theirs(self._repo, path)

    def _resolve_and_confirm(
        self,
        conflicted: Sequence[str],
        actions: Mapping[str, MergeActionKind],
        *,
        fork_side: Side = "ours",
    ) -> list[str]:
        """Resolve what the actions allow, then loop with the operator.

        Returns the paths still conflicted if the operator aborted.
        """
        self._enter(_State.RESOLVING_CONFLICTS)
        self._resolve_conflicts(conflicted, actions, fork_side=fork_side)
        remaining = self._vcs.conflicted_paths(self._repo)
        if remaining and not self._await_human(remaining):
            return self._vcs.conflicted_paths(self._repo)
        self._enter(_State.RESOLVED)
        return []

    def _await_human(self, remaining: Sequence[str]) -> bool:
        """Block until the operator reports conflicts resolved (True) or aborts (False)."""
        self._enter(_State.AWAITING_HUMAN)
        while remaining:
            log.warning("conflicts_awaiting_operator", count=len(remaining), paths=list(remaining))
            if not self._confirm(remaining):
                self._enter(_State.ABORTED)
                log.warning("sync_aborted_by_operator", unresolved=len(remaining))
                return False
            remaining = self._vcs.conflicted_paths(self._repo)
        return True

    def _finalize(self, message: str, branch: str) -> SyncResult:
        self._enter(_State.FINALIZING)
        commit_id: str | None = None
        if self._vcs.staged_paths(self._repo) or self._vcs.merge_in_progress(self._repo):
            commit_id = self._vcs.commit(self._repo, message)
            log.info("sync_committed", commit=commit_id, branch=branch)

        pushed = False
        if self._push_enabled:
            self._vcs.push(self._repo, branch, self._remote)
            pushed = True
            log.info("sync_pushed", remote=self._remote, branch=branch)

        self._enter(_State.DONE)
        return self._result(commit_id=commit_id, pushed=pushed)


def _actions_by_path(analyses: Iterable[FileAnalysis]) -> dict[str, MergeActionKind]:
    return {a.path: a.action.kind for a in analyses}
