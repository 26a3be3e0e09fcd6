"""Tests for pygit2 error mapping."""

from __future__ import annotations

import pygit2
import pytest

from forksync.git import AuthenticationError, GitError, RefNotFoundError, RemoteError
from forksync.git._internal import git_operation


def test_pygit2_error_becomes_git_error() -> None:
    with pytest.raises(GitError, match="checkout main failed: boom") as exc:
        with git_operation("checkout main"):
            raise pygit2.GitError("boom")
    assert isinstance(exc.value.__cause__, pygit2.GitError)


def test_os_error_is_mapped() -> None:
    with pytest.raises(GitError, match="commit failed"):
        with git_operation("commit"):
            raise OSError("disk full")


def test_domain_errors_pass_through() -> None:
    with pytest.raises(RefNotFoundError):
        with git_operation("resolve"):
            raise RefNotFoundError("nope")


@pytest.mark.parametrize(
    ("message", "expected"),
    [
        ("authentication required", AuthenticationError),
        ("failed to acquire credentials", AuthenticationError),
        ("connection refused", RemoteError),
    ],
)
def test_remote_errors(message: str, expected: type[GitError]) -> None:
    with pytest.raises(expected) as exc:
        with git_operation("fetch", remote="boilerplate"):
            raise pygit2.GitError(message)
    assert exc.value.remote == "boilerplate"


def test_authentication_message() -> None:
    err = AuthenticationError("boilerplate", "push")
    assert str(err) == "Authentication failed for remote 'boilerplate' during push"
