"""Checks run before a workflow touches the fork.

Every workflow starts from a fork at rest: no interrupted merge or rebase,
and nothing uncommitted outside forksync's own metadata directory. The
boilerplate remote is also reconciled with the configured location here.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from forksync.core.errors import ConfigError, SyncError
from forksync.core.logging import get_logger
from forksync.sync.vcs import GitVersionControl, VersionControl

log = get_logger("sync.preflight")


def check_fork_ready(vcs: VersionControl, repo: Path, *, ignore: Sequence[str] = ()) -> None:
    """Raise ``SyncError`` unless repo can safely be merged into.

    Paths under any ``ignore`` directory may be dirty.
    """
    conflicted = vcs.conflicted_paths(repo)
    if conflicted:
        raise SyncError.conflicts_unresolved(conflicted)
    if vcs.rebase_in_progress(repo):
        raise SyncError.fork_not_ready(
            "a rebase is in progress. Finish it or run `forksync abort`"
        )
    if vcs.merge_in_progress(repo):
        raise SyncError.fork_not_ready(
            "a merge is in progress. Commit it or run `forksync abort`"
        )
    dirty = [p for p in vcs.uncommitted_paths(repo) if not _under_any(p, ignore)]
    if dirty:
        raise SyncError.fork_not_ready(
            f"{len(dirty)} path(s) have uncommitted changes. Commit or stash them first",
            dirty,
        )
    log.debug("fork_ready", repo=str(repo))


def reconcile_remote(
    vcs: GitVersionControl,
    repo: Path,
    name: str,
    url: str,
    *,
    overwrite: bool = False,
) -> bool:
    """Point remote name at url. Returns True when the remote was added or repointed.

    Raises:
        ConfigError: The remote exists with another URL and overwrite is off.
    """
    current = vcs.remote_url(repo, name)
    if current is None:
        vcs.ensure_remote(repo, name, url)
        log.info("remote_added", remote=name, url=url)
        return True
    if same_location(current, url):
        return False
    if not overwrite:
        raise ConfigError.remote_mismatch(name, url, current)
    vcs.set_remote_url(repo, name, url)
    log.warning("remote_url_overwritten", remote=name, previous=current, url=url)
    return True


def same_location(a: str, b: str) -> bool:
    """Equal URLs, or local paths that resolve to the same directory."""
    if a == b:
        return True
    if _is_url(a) or _is_url(b):
        return a.rstrip("/") == b.rstrip("/")
    return Path(a).expanduser().resolve() == Path(b).expanduser().resolve()


def _is_url(location: str) -> bool:
    # scp-like "git@host:org/repo" has no scheme
    return "://" in location or "@" in location


def _under_any(path: str, dirs: Sequence[str]) -> bool:
    for d in dirs:
        prefix = d.strip("/")
        if prefix and (path == prefix or path.startswith(prefix + "/")):
            return True
    return False
