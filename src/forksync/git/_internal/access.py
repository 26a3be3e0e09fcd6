"""Repository access layer - owns pygit2.Repository and exposes computed facts."""

from __future__ import annotations

import contextlib
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pygit2

from forksync.git._internal.constants import FILEMODE_BLOB, MERGE_HEAD_FILE
from forksync.git._internal.parsing import join_tree_path
from forksync.git.errors import (
    AuthenticationError,
    GitError,
    NotARepositoryError,
    RefNotFoundError,
    RemoteError,
)


class RepoAccess:
    """Owns pygit2.Repository and provides normalized access to repo state."""

    def __init__(self, repo_path: Path | str) -> None:
        self._path = Path(repo_path)
        try:
            self._repo = pygit2.Repository(str(self._path))
        except pygit2.GitError as e:
            raise NotARepositoryError(str(self._path)) from e

    @property
    def repo(self) -> pygit2.Repository:
        return self._repo

    @property
    def path(self) -> Path:
        return Path(self._repo.workdir) if self._repo.workdir else self._path

    @property
    def git_dir(self) -> Path:
        return Path(self._repo.path)

    @property
    def index(self) -> pygit2.Index:
        return self._repo.index  # type: ignore[no-any-return]

    # =========================================================================
    # Repository State Facts
    # =========================================================================

    @property
    def is_unborn(self) -> bool:
        return self._repo.head_is_unborn

    @property
    def is_detached(self) -> bool:
        return self._repo.head_is_detached

    @property
    def head_target(self) -> pygit2.Oid:
        """Return HEAD target as Oid, resolving symbolic refs."""
        target = self._repo.head.target
        if isinstance(target, str):
            return self._repo.references[target].target  # type: ignore[return-value]
        return target

    def head_commit(self) -> pygit2.Commit | None:
        if self.is_unborn:
            return None
        return self._repo.head.peel(pygit2.Commit)

    def head_tree(self) -> pygit2.Tree | None:
        if self.is_unborn:
            return None
        return self._repo.head.peel(pygit2.Tree)

    @property
    def default_signature(self) -> pygit2.Signature:
        return self._repo.default_signature

    def current_branch_name(self) -> str | None:
        if self.is_unborn or self.is_detached:
            return None
        return self._repo.head.shorthand

    def merge_head_oids(self) -> list[pygit2.Oid]:
        """Commits recorded in MERGE_HEAD by an uncommitted merge."""
        merge_head = self.git_dir / MERGE_HEAD_FILE
        if not merge_head.exists():
            return []
        lines = merge_head.read_text().splitlines()
        return [pygit2.Oid(hex=line.strip()) for line in lines if line.strip()]

    # =========================================================================
    # Resolution Helpers
    # =========================================================================

    def resolve_ref_oid(self, ref: str) -> pygit2.Oid:
        try:
            obj, _ = self._repo.resolve_refish(ref)
            return obj.id
        except (pygit2.GitError, KeyError, pygit2.InvalidSpecError) as e:
            raise RefNotFoundError(ref) from e

    def resolve_commit(self, ref: str) -> pygit2.Commit:
        obj: pygit2.Object | None = self._repo.get(self.resolve_ref_oid(ref))
        if isinstance(obj, pygit2.Tag):
            obj = obj.peel(pygit2.Commit)  # type: ignore[assignment]
        if not isinstance(obj, pygit2.Commit):
            raise RefNotFoundError(f"{ref} is not a commit")
        return obj

    def get_commit(self, sha: str) -> pygit2.Commit:
        obj = self._repo.get(sha)
        if not isinstance(obj, pygit2.Commit):
            raise RefNotFoundError(sha)
        return obj

    # =========================================================================
    # Must Helpers (assert replacements with proper errors)
    # =========================================================================

    def must_head_target(self) -> pygit2.Oid:
        """Return HEAD target Oid, raising if unborn."""
        if self.is_unborn:
            raise GitError("HEAD has no target (unborn branch)")
        return self.head_target

    def must_head_tree(self) -> pygit2.Tree:
        tree = self.head_tree()
        if tree is None:
            raise GitError("HEAD has no tree (unborn branch)")
        return tree

    def must_local_branch(self, name: str) -> pygit2.Branch:
        branch = self.local_branch(name)
        if branch is None:
            raise GitError(f"Branch {name!r} not found")
        return branch

    # =========================================================================
    # Remote and Branch Access
    # =========================================================================

    def get_remote(self, name: str) -> pygit2.Remote:
        if name not in [r.name for r in self._repo.remotes]:
            raise RemoteError(name, "Remote not found")
        return self._repo.remotes[name]

    def has_remote(self, name: str) -> bool:
        return name in [r.name for r in self._repo.remotes]

    def create_remote(self, name: str, url: str) -> pygit2.Remote:
        return self._repo.remotes.create(name, url)

    def set_remote_url(self, name: str, url: str) -> None:
        self._repo.remotes.set_url(name, url)

    def local_branch(self, name: str) -> pygit2.Branch | None:
        if name in self._repo.branches.local:
            return self._repo.branches.local[name]
        return None

    def has_local_branch(self, name: str) -> bool:
        return name in self._repo.branches.local

    # =========================================================================
    # Low-level pygit2 Operations (all pygit2 quirks live here)
    # =========================================================================

    def walk_commits(self, start: pygit2.Oid, sort: int) -> pygit2.Walker:
        return self._repo.walk(start, sort)  # type: ignore[arg-type]

    def checkout_branch(self, branch: pygit2.Branch) -> None:
        self._repo.checkout(branch)
        self._repo.set_head(branch.name)

    def checkout_detached(self, oid: pygit2.Oid) -> None:
        self._repo.checkout_tree(self._repo.get(oid))  # type: ignore[no-untyped-call]
        self._repo.set_head(oid)

    def create_local_branch(self, name: str, target: pygit2.Commit) -> pygit2.Branch:
        return self._repo.branches.local.create(name, target)

    def set_branch_target(self, branch: pygit2.Branch, oid: pygit2.Oid) -> None:
        branch.set_target(oid)

    def set_head(self, refname: str | pygit2.Oid) -> None:
        """Set HEAD to a ref name (e.g., 'refs/heads/main') or oid."""
        self._repo.set_head(refname)

    def merge_analysis(self, their_oid: pygit2.Oid) -> tuple[int, int]:
        return self._repo.merge_analysis(their_oid)

    def merge(self, their_oid: pygit2.Oid) -> None:
        self._repo.merge(their_oid)

    def merge_trees(
        self, ancestor: pygit2.Tree, ours: pygit2.Tree, theirs: pygit2.Tree
    ) -> pygit2.Index:
        return self._repo.merge_trees(ancestor, ours, theirs)

    def cherrypick(self, commit_id: pygit2.Oid) -> None:
        self._repo.cherrypick(commit_id)

    def reset(self, oid: pygit2.Oid, reset_type: int) -> None:
        self._repo.reset(oid, reset_type)  # type: ignore[arg-type]

    def status(self) -> dict[str, int]:
        return self._repo.status()  # type: ignore[no-any-return]

    def state_cleanup(self) -> None:
        self._repo.state_cleanup()

    def create_commit(
        self,
        ref: str | None,
        author: pygit2.Signature,
        committer: pygit2.Signature,
        message: str,
        tree_id: pygit2.Oid,
        parents: list[pygit2.Oid],
    ) -> pygit2.Oid:
        return self._repo.create_commit(ref, author, committer, message, tree_id, parents)

    def create_blob(self, data: bytes) -> pygit2.Oid:
        return self._repo.create_blob(data)

    def single_file_tree(self, data: bytes, name: str = "file") -> pygit2.Tree:
        """Write a one-entry tree holding data, for offline content merges."""
        builder = self._repo.TreeBuilder()
        builder.insert(name, self.create_blob(data), FILEMODE_BLOB)
        return self._repo.get(builder.write())  # type: ignore[return-value]

    def read_blob(self, oid: pygit2.Oid | str) -> bytes:
        blob = self._repo.get(oid)
        if not isinstance(blob, pygit2.Blob):
            raise GitError(f"Object {oid} is not a blob")
        return blob.data

    # =========================================================================
    # Tree Helpers
    # =========================================================================

    def iter_blobs(self, tree: pygit2.Tree, prefix: str = "") -> Iterator[tuple[str, pygit2.Blob]]:
        """Yield (path, blob) for every file in tree, depth first. Submodules are skipped."""
        for obj in tree:
            path = join_tree_path(prefix, obj.name or "")
            if isinstance(obj, pygit2.Tree):
                yield from self.iter_blobs(obj, path)
            elif isinstance(obj, pygit2.Blob):
                yield path, obj

    def tree_entry(self, tree: pygit2.Tree, path: str) -> pygit2.Object | None:
        """Entry at a nested path, or None when absent."""
        try:
            return tree[path]
        except KeyError:
            return None

    # =========================================================================
    # Index and Working Tree Helpers
    # =========================================================================

    def write_workdir_file(self, path: str, data: bytes) -> None:
        target = self.path / path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

    def remove_workdir_file(self, path: str) -> None:
        (self.path / path).unlink(missing_ok=True)

    def index_set_blob(self, path: str, oid: pygit2.Oid, mode: int) -> None:
        """Stage a blob at path and mirror it into the working tree."""
        self.write_workdir_file(path, self.read_blob(oid))
        self.index.add(pygit2.IndexEntry(path, oid, mode))

    def index_remove(self, path: str) -> None:
        """Drop path from index and working tree, tolerating absence."""
        with contextlib.suppress(pygit2.GitError, OSError):
            self.index.remove(path)
        self.remove_workdir_file(path)

    # =========================================================================
    # Remote Operations (centralized error handling)
    # =========================================================================

    def run_remote_operation(
        self,
        remote_name: str,
        op_name: str,
        operation: Callable[[pygit2.Remote], Any],
    ) -> Any:
        """
        Run a remote operation with centralized error mapping.

        Error mapping:
            - Authentication/credential errors -> AuthenticationError(remote_name, op_name)
            - Other pygit2.GitError -> RemoteError(remote_name, "{op_name} failed: {msg}")
            - Not-found errors, which pygit2 raises as KeyError -> RemoteError
        """
        remote = self.get_remote(remote_name)
        try:
            return operation(remote)
        except pygit2.GitError as e:
            msg = str(e).lower()
            if "authentication" in msg or "credential" in msg:
                raise AuthenticationError(remote_name, op_name) from e
            raise RemoteError(remote_name, f"{op_name} failed: {e}") from e
        except KeyError as e:
            raise RemoteError(remote_name, f"{op_name} failed: {e}") from e
