"""String helpers for git ref names and tree paths."""

from __future__ import annotations

_REFS_HEADS_PREFIX = "refs/heads/"


def make_branch_ref(name: str) -> str:
    """Create full branch ref from name (e.g., 'main' -> 'refs/heads/main')."""
    return f"{_REFS_HEADS_PREFIX}{name}"


def join_tree_path(prefix: str, name: str) -> str:
    """Join a tree prefix and entry name with git's forward slash."""
    return f"{prefix}/{name}" if prefix else name
