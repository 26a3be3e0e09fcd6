"""Tests for the sync orchestrator state machine."""

from __future__ import annotations

from collections.abc import Sequence

import pytest

from forksync.core.errors import ErrorCode, SyncError
from forksync.sync.models import (
    NO_CUSTOMIZATION,
    FileAnalysis,
    FileIdentity,
    MergeAction,
    MergeActionKind,
    MergeOutcome,
    OrchestratorState,
    RebaseOutcome,
    ThreeWayCheck,
)
from forksync.sync.orchestrator import SyncOrchestrator, build_squash_message
from tests.fakes import FORK, FakeVersionControl

K = MergeActionKind
St = OrchestratorState


def _analysis(path: str, kind: MergeActionKind) -> FileAnalysis:
    return FileAnalysis(
        path=path,
        boilerplate=FileIdentity(path, "h", "c"),
        fork=None,
        divergence=None,
        blob_status=None,
        risk=None,
        three_way=ThreeWayCheck.NOT_RUN,
        customization=NO_CUSTOMIZATION,
        action=MergeAction(kind, "test"),
    )


class ScriptedConfirm:
    """Operator stand-in: each answer may also resolve paths in the fake."""

    def __init__(self, vcs: FakeVersionControl, answers: Sequence[bool], resolve: bool = True):
        self.vcs = vcs
        self.answers = list(answers)
        self.resolve = resolve
        self.asked: list[list[str]] = []

    def __call__(self, paths: Sequence[str]) -> bool:
        self.asked.append(list(paths))
        answer = self.answers.pop(0)
        if answer and self.resolve:
            self.vcs.conflicts = []
        return answer


def _never(paths: Sequence[str]) -> bool:
    raise AssertionError(f"operator should not be asked: {paths}")


@pytest.fixture
def vcs() -> FakeVersionControl:
    return FakeVersionControl()


class TestRunSyncClean:
    def test_clean_merge_all_keep_fork_adds_no_staging(self, vcs: FakeVersionControl) -> None:
        vcs.merge_staged = ["a.txt", "b.txt"]
        analyses = [_analysis("a.txt", K.KEEP_FORK), _analysis("b.txt", K.KEEP_FORK)]
        orchestrator = SyncOrchestrator(vcs, FORK, _never, push_enabled=False)

        result = orchestrator.run_sync(analyses, "boilerplate/main", "sync-branch")

        assert result.status == St.DONE
        assert result.ok
        assert result.transitions == (
            St.IDLE,
            St.MERGE_ATTEMPTED,
            St.CLEAN,
            St.FINALIZING,
            St.DONE,
        )
        assert vcs.calls_named("ours", "theirs", "remove", "checkout_side") == []
        assert result.applied == ()
        assert vcs.calls_named("commit") == [("commit", "Merge boilerplate/main into sync-branch")]
        assert not result.pushed

    def test_clean_merge_enforces_non_default_actions(self, vcs: FakeVersionControl) -> None:
        vcs.merge_staged = ["keep.txt", "bp.txt", "gone.txt", "mine.txt", "other.txt"]
        analyses = [
            _analysis("keep.txt", K.KEEP_FORK),
            _analysis("bp.txt", K.KEEP_BOILERPLATE),
            _analysis("gone.txt", K.DROP_FROM_FORK),
            _analysis("mine.txt", K.DROP_FROM_BOILERPLATE),
            _analysis("other.txt", K.MANUAL),
        ]
        orchestrator = SyncOrchestrator(vcs, FORK, _never, push_enabled=False)

        result = orchestrator.run_sync(analyses, "boilerplate/main", "sync-branch")

        assert result.ok
        assert vcs.calls_named("checkout_side", "remove") == [
            ("checkout_side", "bp.txt", "theirs"),
            ("remove", "gone.txt"),
            ("checkout_side", "mine.txt", "ours"),
        ]
        assert dict(result.applied) == {
            "bp.txt": K.KEEP_BOILERPLATE,
            "gone.txt": K.DROP_FROM_FORK,
            "mine.txt": K.DROP_FROM_BOILERPLATE,
        }

    def test_unstaged_files_are_left_alone(self, vcs: FakeVersionControl) -> None:
        vcs.merge_staged = []
        analyses = [_analysis("bp.txt", K.KEEP_BOILERPLATE)]
        SyncOrchestrator(vcs, FORK, _never, push_enabled=False).run_sync(
            analyses, "boilerplate/main", "sync-branch"
        )
        assert vcs.calls_named("checkout_side") == []

    def test_up_to_date_skips_commit_and_pushes(self, vcs: FakeVersionControl) -> None:
        vcs.merge_outcome = MergeOutcome(conflicted=False, up_to_date=True)
        orchestrator = SyncOrchestrator(vcs, FORK, _never, remote="origin")

        result = orchestrator.run_sync([], "boilerplate/main", "sync-branch")

        assert result.ok
        assert result.commit_id is None
        assert result.pushed
        assert vcs.calls_named("commit") == []
        assert vcs.calls_named("push") == [("push", "origin", "sync-branch")]

    def test_checks_out_target_before_merging(self, vcs: FakeVersionControl) -> None:
        SyncOrchestrator(vcs, FORK, _never, push_enabled=False).run_sync(
            [], "boilerplate/main", "sync-branch"
        )
        assert vcs.calls[:2] == [("checkout", "sync-branch"), ("merge", "boilerplate/main")]


class TestRunSyncConflicts:
    def test_conflicts_resolved_by_actions(self, vcs: FakeVersionControl) -> None:
        vcs.merge_outcome = MergeOutcome(
            conflicted=True, conflicted_paths=("a.txt", "b.txt", "c.txt", "d.txt")
        )
        analyses = [
            _analysis("a.txt", K.KEEP_FORK),
            _analysis("b.txt", K.KEEP_BOILERPLATE),
            _analysis("c.txt", K.DROP_FROM_FORK),
            _analysis("d.txt", K.DROP_FROM_BOILERPLATE),
        ]
        orchestrator = SyncOrchestrator(vcs, FORK, _never, push_enabled=False)

        result = orchestrator.run_sync(analyses, "boilerplate/main", "sync-branch")

        assert result.ok
        assert result.transitions == (
            St.IDLE,
            St.MERGE_ATTEMPTED,
            St.CONFLICT_PENDING,
            St.RESOLVING_CONFLICTS,
            St.RESOLVED,
            St.FINALIZING,
            St.DONE,
        )
        assert vcs.calls_named("ours", "theirs", "remove") == [
            ("ours", "a.txt"),
            ("theirs", "b.txt"),
            ("remove", "c.txt"),
            ("ours", "d.txt"),
        ]
        assert result.commit_id is not None

    def test_manual_files_wait_for_operator(self, vcs: FakeVersionControl) -> None:
        vcs.merge_outcome = MergeOutcome(conflicted=True, conflicted_paths=("a.txt", "m.txt"))
        analyses = [_analysis("a.txt", K.KEEP_FORK), _analysis("m.txt", K.MANUAL)]
        confirm = ScriptedConfirm(vcs, [True])

        result = SyncOrchestrator(vcs, FORK, confirm, push_enabled=False).run_sync(
            analyses, "boilerplate/main", "sync-branch"
        )

        assert result.ok
        assert confirm.asked == [["m.txt"]]
        assert St.AWAITING_HUMAN in result.transitions
        assert ("ours", "m.txt") not in vcs.calls
        assert ("theirs", "m.txt") not in vcs.calls

    def test_operator_is_asked_again_until_clean(self, vcs: FakeVersionControl) -> None:
        vcs.merge_outcome = MergeOutcome(conflicted=True, conflicted_paths=("m.txt",))
        confirm = ScriptedConfirm(vcs, [True, True], resolve=False)

        def resolve_on_second_ask(paths: Sequence[str]) -> bool:
            answer = confirm(paths)
            if len(confirm.asked) == 2:
                vcs.conflicts = []
            return answer

        result = SyncOrchestrator(vcs, FORK, resolve_on_second_ask, push_enabled=False).run_sync(
            [_analysis("m.txt", K.UNDETERMINED)], "boilerplate/main", "sync-branch"
        )

        assert result.ok
        assert len(confirm.asked) == 2

    def test_abort_leaves_repository_and_skips_push(self, vcs: FakeVersionControl) -> None:
        vcs.merge_outcome = MergeOutcome(conflicted=True, conflicted_paths=("m.txt",))
        confirm = ScriptedConfirm(vcs, [False])

        result = SyncOrchestrator(vcs, FORK, confirm).run_sync(
            [_analysis("m.txt", K.MANUAL)], "boilerplate/main", "sync-branch"
        )

        assert result.status == St.ABORTED
        assert not result.ok
        assert result.unresolved_paths == ("m.txt",)
        assert result.transitions[-2:] == (St.AWAITING_HUMAN, St.ABORTED)
        assert vcs.calls_named("commit", "push") == []
        assert result.to_dict()["status"] == "aborted"

    def test_refuses_to_start_with_leftover_conflicts(self, vcs: FakeVersionControl) -> None:
        vcs.conflicts = ["old.txt"]
        with pytest.raises(SyncError) as exc_info:
            SyncOrchestrator(vcs, FORK, _never).run_sync([], "boilerplate/main", "sync-branch")
        assert exc_info.value.code == ErrorCode.CONFLICTS_UNRESOLVED
        assert vcs.calls == []


class TestStartingState:
    def test_sync_branch_created_from_base(self, vcs: FakeVersionControl) -> None:
        SyncOrchestrator(vcs, FORK, _never, push_enabled=False).run_sync(
            [], "boilerplate/main", "sync-branch", base_branch="development"
        )

        assert vcs.calls_named("checkout") == [
            ("checkout", "development"),
            ("checkout", "sync-branch"),
        ]

    @pytest.mark.parametrize("workflow", ["sync", "squash", "rebase"])
    def test_every_workflow_refuses_a_busy_fork(
        self, vcs: FakeVersionControl, workflow: str
    ) -> None:
        vcs.rebasing = True
        orchestrator = SyncOrchestrator(vcs, FORK, _never)

        with pytest.raises(SyncError) as exc_info:
            if workflow == "sync":
                orchestrator.run_sync([], "boilerplate/main", "sync-branch")
            elif workflow == "squash":
                orchestrator.squash([], "sync-branch", "development", "boilerplate")
            else:
                orchestrator.rebase([], "sync-branch", "development")

        assert exc_info.value.code == ErrorCode.FORK_NOT_READY
        assert vcs.calls == []

    def test_dirty_metadata_directory_is_tolerated(self, vcs: FakeVersionControl) -> None:
        vcs.dirty = [".forksync/customizations.json"]
        orchestrator = SyncOrchestrator(
            vcs, FORK, _never, push_enabled=False, ignore_dirty=[".forksync"]
        )

        result = orchestrator.run_sync([], "boilerplate/main", "sync-branch")

        assert result.ok


class TestSquash:
    def test_squash_commits_once_with_summary(self, vcs: FakeVersionControl) -> None:
        vcs.subjects = ["Merge boilerplate/main into sync-branch", "Bump deps"]
        vcs.merge_staged = ["a.txt"]

        result = SyncOrchestrator(vcs, FORK, _never, push_enabled=False).squash(
            [], "sync-branch", "development", "boilerplate"
        )

        assert result.ok
        (commit,) = vcs.calls_named("commit")
        assert commit[1].startswith("chore(sync): 2 commits from boilerplate\n")
        assert vcs.calls[0] == ("checkout", "development")

    def test_squash_takes_sync_branch_side_of_conflicts(self, vcs: FakeVersionControl) -> None:
        vcs.subjects = ["one"]
        vcs.merge_outcome = MergeOutcome(conflicted=True, conflicted_paths=("a.txt",))

        result = SyncOrchestrator(vcs, FORK, _never, push_enabled=False).squash(
            [], "sync-branch", "development", "boilerplate"
        )

        assert result.ok
        assert vcs.calls_named("theirs") == [("theirs", "a.txt")]

    def test_nothing_to_squash(self, vcs: FakeVersionControl) -> None:
        result = SyncOrchestrator(vcs, FORK, _never).squash(
            [], "sync-branch", "development", "boilerplate"
        )
        assert result.ok
        assert vcs.calls_named("squash", "commit", "push") == []


class TestRebase:
    def test_rebase_inverts_sides(self, vcs: FakeVersionControl) -> None:
        vcs.rebase_outcomes = [
            RebaseOutcome(done=False, conflicted_paths=("a.txt", "b.txt"), total_steps=2),
            RebaseOutcome(done=True, completed_steps=2, total_steps=2, new_head="abc"),
        ]
        analyses = [_analysis("a.txt", K.KEEP_FORK), _analysis("b.txt", K.KEEP_BOILERPLATE)]

        result = SyncOrchestrator(vcs, FORK, _never).rebase(analyses, "sync-branch", "development")

        assert result.ok
        assert result.commit_id == "abc"
        assert not result.pushed
        assert vcs.calls_named("ours", "theirs") == [("theirs", "a.txt"), ("ours", "b.txt")]
        assert vcs.calls_named("rebase_continue") == [("rebase_continue",)]

    def test_rebase_without_conflicts(self, vcs: FakeVersionControl) -> None:
        vcs.rebase_outcomes = [RebaseOutcome(done=True, new_head="abc")]

        result = SyncOrchestrator(vcs, FORK, _never).rebase([], "sync-branch", "development")

        assert result.transitions == (
            St.IDLE,
            St.MERGE_ATTEMPTED,
            St.CLEAN,
            St.FINALIZING,
            St.DONE,
        )

    def test_rebase_abort(self, vcs: FakeVersionControl) -> None:
        vcs.rebase_outcomes = [RebaseOutcome(done=False, conflicted_paths=("m.txt",))]
        confirm = ScriptedConfirm(vcs, [False])

        result = SyncOrchestrator(vcs, FORK, confirm).rebase(
            [_analysis("m.txt", K.MANUAL)], "sync-branch", "development"
        )

        assert result.status == St.ABORTED
        assert vcs.calls_named("rebase_continue") == []


class TestSquashMessage:
    def test_single_commit(self) -> None:
        assert build_squash_message(["Fix typo"], "boilerplate") == (
            "chore(sync): 1 commit from boilerplate\n\n- Fix typo\n"
        )

    def test_previews_are_capped(self) -> None:
        subjects = [f"change {i}" for i in range(5)]
        message = build_squash_message(subjects, "upstream", max_previews=2)
        assert message.splitlines() == [
            "chore(sync): 5 commits from upstream",
            "",
            "- change 0",
            "- change 1",
            "... and 3 more",
        ]
