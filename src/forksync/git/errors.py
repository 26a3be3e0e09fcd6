"""Git module error types."""


class GitError(Exception):
    """Base error for git operations."""

    pass


class NotARepositoryError(GitError):
    """Path is not a git repository."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Not a git repository: {path}")
        self.path = path


class RefNotFoundError(GitError):
    """Reference (branch, tag, commit) not found."""

    def __init__(self, ref: str) -> None:
        super().__init__(f"Reference not found: {ref}")
        self.ref = ref


class BranchNotFoundError(GitError):
    """Branch not found."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Branch not found: {name}")
        self.name = name


class PathNotFoundError(GitError):
    """Path does not exist in the given commit."""

    def __init__(self, commit: str, path: str) -> None:
        super().__init__(f"Path not found at {commit[:7]}: {path}")
        self.commit = commit
        self.path = path


class NothingToCommitError(GitError):
    """No staged changes to commit."""

    def __init__(self) -> None:
        super().__init__("Nothing to commit: no staged changes")


class NoConflictError(GitError):
    """Path has no conflict entry to resolve."""

    def __init__(self, path: str) -> None:
        super().__init__(f"No conflict recorded for: {path}")
        self.path = path


class DetachedHeadError(GitError):
    """Operation requires a branch but HEAD is detached."""

    def __init__(self, operation: str) -> None:
        super().__init__(f"Cannot {operation}: HEAD is detached")
        self.operation = operation


class RemoteError(GitError):
    """Error communicating with remote."""

    def __init__(self, remote: str, message: str) -> None:
        super().__init__(f"Remote error ({remote}): {message}")
        self.remote = remote


class AuthenticationError(GitError):
    """Authentication failed for remote operation."""

    def __init__(self, remote: str, operation: str | None = None) -> None:
        op_part = f" during {operation}" if operation else ""
        super().__init__(f"Authentication failed for remote {remote!r}{op_part}")
        self.remote = remote
        self.operation = operation


# =============================================================================
# Rebase Errors
# =============================================================================


class RebaseError(GitError):
    """Rebase operation failed."""

    pass


class RebaseInProgressError(RebaseError):
    """A rebase is already in progress."""

    def __init__(self) -> None:
        super().__init__("A rebase is already in progress. Continue or abort it first.")


class NoRebaseInProgressError(RebaseError):
    """No rebase is in progress."""

    def __init__(self) -> None:
        super().__init__("No rebase in progress")


class RebaseConflictError(RebaseError):
    """Rebase step still has conflicts."""

    def __init__(self, paths: list[str]) -> None:
        super().__init__(f"Rebase conflict in: {', '.join(paths)}")
        self.paths = paths
