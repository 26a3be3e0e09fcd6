"""Throw-away git repositories with deterministic commit times."""

from __future__ import annotations

import itertools
from collections.abc import Mapping
from pathlib import Path

import pygit2

# Strictly increasing commit times across every repository in a test session
_clock = itertools.count(1_700_000_000, 60)


class RepoBuilder:
    """Small helper for writing commits into a pygit2 repository."""

    def __init__(self, repo: pygit2.Repository) -> None:
        self.repo = repo
        self.repo.config["user.name"] = "Test User"
        self.repo.config["user.email"] = "test@example.com"

    @classmethod
    def init(cls, path: Path, branch: str = "main") -> RepoBuilder:
        path.mkdir(parents=True, exist_ok=True)
        return cls(pygit2.init_repository(str(path), initial_head=branch))

    @classmethod
    def clone(cls, source: RepoBuilder, path: Path, *, remote: str = "origin") -> RepoBuilder:
        repo = pygit2.clone_repository(str(source.path), str(path))
        if remote != "origin":
            repo.remotes.rename("origin", remote)
        return cls(repo)

    @property
    def path(self) -> Path:
        return Path(self.repo.workdir)

    def commit(self, files: Mapping[str, str | bytes | None], message: str = "change") -> str:
        """Write files (None deletes) and commit them on HEAD. Returns the sha."""
        index = self.repo.index
        for name, content in files.items():
            target = self.path / name
            if content is None:
                target.unlink(missing_ok=True)
                index.remove(name)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                target.write_bytes(content)
            else:
                target.write_text(content)
            index.add(name)
        index.write()
        tree = index.write_tree()
        sig = pygit2.Signature("Test User", "test@example.com", next(_clock), 0)
        parents = [] if self.repo.head_is_unborn else [self.repo.head.target]
        return str(self.repo.create_commit("HEAD", sig, sig, message, tree, parents))

    def branch(self, name: str, start: str = "HEAD") -> None:
        commit = self.repo.revparse_single(start).peel(pygit2.Commit)
        self.repo.branches.local.create(name, commit, force=True)

    def checkout(self, name: str) -> None:
        self.repo.checkout(self.repo.branches.local[name])

    def head(self) -> str:
        return str(self.repo.head.target)

    def read(self, name: str) -> str:
        return (self.path / name).read_text()

    def exists(self, name: str) -> bool:
        return (self.path / name).exists()

    def blob_at(self, ref: str, name: str) -> bytes | None:
        tree = self.repo.revparse_single(ref).peel(pygit2.Commit).tree
        try:
            return tree[name].data
        except KeyError:
            return None
