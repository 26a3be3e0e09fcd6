"""Reusable transactional patterns for write operations."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Literal

import pygit2

from forksync.git._internal.access import RepoAccess
from forksync.git.errors import NoConflictError

Side = Literal["ours", "theirs"]


@dataclass(frozen=True, slots=True)
class ConflictCheckResult:
    """Result of an operation that may produce conflicts."""

    has_conflicts: bool
    conflict_paths: tuple[str, ...]


class WriteFlows:
    """Reusable transactional patterns for git write operations."""

    def __init__(self, access: RepoAccess) -> None:
        self._access = access

    def extract_conflict_paths(self) -> tuple[str, ...]:
        """Extract unique conflict paths from index."""
        conflicts = self._access.index.conflicts
        if conflicts is None:
            return ()
        paths: set[str] = set()
        for ancestor, ours, theirs in conflicts:
            for entry in (ancestor, ours, theirs):
                if entry:
                    paths.add(entry.path)
        return tuple(sorted(paths))

    def check_conflicts(self) -> ConflictCheckResult:
        """
        Check if index has conflicts and extract paths.

        Contract: Non-destructive read. Does not modify index or resolve conflicts.
        """
        paths = self.extract_conflict_paths()
        return ConflictCheckResult(bool(paths), paths)

    def staged_paths(self) -> tuple[str, ...]:
        """Paths whose index entry differs from HEAD, conflicts excluded."""
        index = self._access.index
        head_tree = self._access.head_tree()
        if head_tree is None:
            return tuple(sorted(entry.path for entry in index))
        paths: set[str] = set()
        for delta in index.diff_to_tree(head_tree).deltas:
            paths.update(p for p in (delta.old_file.path, delta.new_file.path) if p)
        return tuple(sorted(paths - set(self.extract_conflict_paths())))

    def resolve_conflict(self, path: str, side: Side) -> None:
        """
        Resolve one conflicted path by taking a side and re-staging it.

        A side that deleted the file resolves to a deletion.
        """
        index = self._access.index
        conflicts = index.conflicts
        if conflicts is None:
            raise NoConflictError(path)
        try:
            _ancestor, ours, theirs = conflicts[path]
        except KeyError as e:
            raise NoConflictError(path) from e

        chosen = ours if side == "ours" else theirs
        del conflicts[path]
        if chosen is None:
            self._access.index_remove(path)
        else:
            self._access.index_set_blob(path, chosen.id, chosen.mode)
        index.write()

    def drop_path(self, path: str) -> None:
        """Unstage path (clearing any conflict) and delete it from the working tree."""
        index = self._access.index
        conflicts = index.conflicts
        if conflicts is not None:
            try:
                del conflicts[path]
            except KeyError:
                pass
        self._access.index_remove(path)
        index.write()

    def apply_tree_version(self, path: str, tree: pygit2.Tree) -> None:
        """Stage the version of path found in tree, or remove it if tree lacks it."""
        entry = self._access.tree_entry(tree, path)
        if entry is None:
            self._access.index_remove(path)
        else:
            self._access.index_set_blob(path, entry.id, entry.filemode)
        self._access.index.write()

    def write_tree_and_commit(
        self,
        message: str,
        parents: list[pygit2.Oid],
        *,
        author: pygit2.Signature | None = None,
    ) -> str:
        """
        Write index tree and create commit. Returns sha.

        Contract: Uses passed parents verbatim - does NOT re-read HEAD.
        """
        tree_id = self._access.index.write_tree()
        sig = self._access.default_signature
        oid = self._access.create_commit(
            "HEAD",
            author or sig,
            sig,
            message,
            tree_id,
            parents,
        )
        return str(oid)

    def commit_from_index(self, message: str) -> str:
        """Commit the index. A pending merge contributes its heads as extra parents."""
        parents = [] if self._access.is_unborn else [self._access.head_target]
        parents.extend(self._access.merge_head_oids())
        with self.stateful_op():
            return self.write_tree_and_commit(message, parents)

    @contextmanager
    def stateful_op(self) -> Iterator[None]:
        """
        Context manager that guarantees state cleanup after stateful operations.

        Only clears MERGE_HEAD, CHERRY_PICK_HEAD and friends. It does NOT reset
        the index or working tree.
        """
        try:
            yield
        finally:
            self._access.state_cleanup()
