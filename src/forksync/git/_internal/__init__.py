"""Internal components for git operations - not part of public API."""

from forksync.git._internal.access import RepoAccess
from forksync.git._internal.errors import ErrorMapper, git_operation
from forksync.git._internal.flows import ConflictCheckResult, Side, WriteFlows
from forksync.git._internal.parsing import make_branch_ref
from forksync.git._internal.preconditions import (
    check_nothing_to_commit,
    require_branch_exists,
    require_current_branch,
    require_no_conflicts,
)
from forksync.git._internal.rebase import RebaseFlow, RebasePlanner

__all__ = [
    "ConflictCheckResult",
    "ErrorMapper",
    "RebaseFlow",
    "RebasePlanner",
    "RepoAccess",
    "Side",
    "WriteFlows",
    "check_nothing_to_commit",
    "git_operation",
    "make_branch_ref",
    "require_branch_exists",
    "require_current_branch",
    "require_no_conflicts",
]
