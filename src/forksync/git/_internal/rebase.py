"""Pick-only rebase using low-level pygit2 operations, with on-disk state for recovery."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import pygit2

from forksync.config.constants import REBASE_STATE_FILE
from forksync.git._internal.constants import RESET_HARD, SORT_REVERSE, SORT_TOPOLOGICAL
from forksync.git.errors import (
    GitError,
    NoRebaseInProgressError,
    RebaseConflictError,
    RebaseError,
    RebaseInProgressError,
    RefNotFoundError,
)
from forksync.git.models import RebasePlan, RebaseResult, RebaseStep

if TYPE_CHECKING:
    from forksync.git._internal.access import RepoAccess


@dataclass
class RebaseState:
    """Persisted rebase state for recovery."""

    original_head: str
    original_branch: str | None
    onto: str
    steps: list[dict[str, str]]
    current_step: int
    completed_commits: list[str]


class RebasePlanner:
    """Generates rebase plans from commit ranges."""

    def __init__(self, access: RepoAccess) -> None:
        self._access = access

    def plan(self, upstream: str) -> RebasePlan:
        """
        Plan replaying HEAD's commits that upstream lacks on top of upstream.

        Merge commits are left out of the plan, as plain ``git rebase`` does.
        """
        head_oid = self._access.must_head_target()
        upstream_oid = self._access.resolve_ref_oid(upstream)

        walker = self._access.walk_commits(head_oid, SORT_TOPOLOGICAL | SORT_REVERSE)
        walker.hide(upstream_oid)

        steps = tuple(
            RebaseStep(commit_sha=str(c.id), message=c.message)
            for c in walker
            if len(c.parent_ids) <= 1
        )
        return RebasePlan(upstream=upstream, onto=upstream, steps=steps)


class RebaseFlow:
    """Executes rebase plans with state persistence."""

    def __init__(self, access: RepoAccess) -> None:
        self._access = access

    @property
    def _state_path(self) -> Path:
        return self._access.git_dir / REBASE_STATE_FILE

    def has_rebase_in_progress(self) -> bool:
        return self._state_path.exists()

    def execute(self, plan: RebasePlan) -> RebaseResult:
        """Execute a rebase plan. Stops at the first conflicted step."""
        if self.has_rebase_in_progress():
            raise RebaseInProgressError()

        original_head = str(self._access.must_head_target())
        original_branch = self._access.current_branch_name()

        try:
            onto_oid = self._access.resolve_ref_oid(plan.onto)
        except RefNotFoundError as e:
            raise RebaseError(f"Invalid onto ref: {plan.onto}") from e

        self._access.checkout_detached(onto_oid)

        state = RebaseState(
            original_head=original_head,
            original_branch=original_branch,
            onto=plan.onto,
            steps=[{"commit_sha": s.commit_sha, "message": s.message} for s in plan.steps],
            current_step=0,
            completed_commits=[],
        )
        self._save_state(state)

        return self._execute_steps(state)

    def continue_rebase(self) -> RebaseResult:
        """Commit the resolved current step and carry on with the rest."""
        state = self._load_state()
        if state is None:
            raise NoRebaseInProgressError()

        conflicts = self._access.index.conflicts
        if conflicts is not None:
            paths = sorted({side.path for entry in conflicts for side in entry if side})
            raise RebaseConflictError(paths)

        step = self._step_from_dict(state.steps[state.current_step])
        self._commit_step(step, state)
        state.current_step += 1
        self._save_state(state)

        return self._execute_steps(state)

    def abort(self) -> None:
        """Abort the rebase and restore original state."""
        state = self._load_state()
        if state is None:
            raise NoRebaseInProgressError()

        original_oid = self._access.resolve_ref_oid(state.original_head)
        self._access.reset(original_oid, RESET_HARD)
        if state.original_branch:
            self._access.set_head(f"refs/heads/{state.original_branch}")
        self._access.state_cleanup()
        self._state_path.unlink(missing_ok=True)

    def _execute_steps(self, state: RebaseState) -> RebaseResult:
        total = len(state.steps)

        while state.current_step < total:
            step = self._step_from_dict(state.steps[state.current_step])
            self._access.cherrypick(pygit2.Oid(hex=step.commit_sha))

            conflicts = self._access.index.conflicts
            if conflicts is not None:
                paths = sorted({side.path for entry in conflicts for side in entry if side})
                return RebaseResult(
                    success=False,
                    completed_steps=state.current_step,
                    total_steps=total,
                    state="conflict",
                    conflict_paths=tuple(paths),
                    current_commit=step.commit_sha,
                )

            self._commit_step(step, state)
            state.current_step += 1
            self._save_state(state)

        return self._finalize(state)

    def _commit_step(self, step: RebaseStep, state: RebaseState) -> None:
        original = self._access.get_commit(step.commit_sha)
        head_oid = self._access.must_head_target()
        tree_id = self._access.index.write_tree()
        # A pick that became empty on the new base is dropped
        if tree_id != self._access.must_head_tree().id:
            new_oid = self._access.create_commit(
                "HEAD",
                original.author,
                self._access.default_signature,
                step.message,
                tree_id,
                [head_oid],
            )
            state.completed_commits.append(str(new_oid))
        self._access.state_cleanup()

    def _finalize(self, state: RebaseState) -> RebaseResult:
        new_head_oid = self._access.must_head_target()

        if state.original_branch:
            branch = self._access.must_local_branch(state.original_branch)
            self._access.set_branch_target(branch, new_head_oid)
            self._access.set_head(f"refs/heads/{state.original_branch}")

        self._state_path.unlink(missing_ok=True)
        self._access.state_cleanup()

        return RebaseResult(
            success=True,
            completed_steps=len(state.steps),
            total_steps=len(state.steps),
            state="done",
            new_head=str(new_head_oid),
        )

    def _save_state(self, state: RebaseState) -> None:
        self._state_path.write_text(json.dumps(asdict(state)))

    def _load_state(self) -> RebaseState | None:
        if not self._state_path.exists():
            return None
        try:
            data = json.loads(self._state_path.read_text())
            return RebaseState(
                original_head=data["original_head"],
                original_branch=data.get("original_branch"),
                onto=data["onto"],
                steps=data["steps"],
                current_step=data["current_step"],
                completed_commits=data["completed_commits"],
            )
        except (json.JSONDecodeError, KeyError) as e:
            raise GitError(f"Corrupt rebase state file: {e}") from e

    def _step_from_dict(self, d: dict[str, str]) -> RebaseStep:
        try:
            return RebaseStep(commit_sha=d["commit_sha"], message=d["message"])
        except KeyError as e:
            raise GitError(f"Invalid rebase step: missing {e}") from e
