"""Content identity comparison between boilerplate and fork."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import PurePosixPath

from forksync.sync.models import BlobStatus, FileIdentity


def compare_blobs(boilerplate: FileIdentity, fork: FileIdentity | None) -> BlobStatus:
    if fork is None:
        return BlobStatus.MISSING
    if boilerplate.content_hash == fork.content_hash:
        return BlobStatus.IDENTICAL
    return BlobStatus.DIFFERENT


def is_binary_path(path: str, binary_extensions: Iterable[str]) -> bool:
    """Extension heuristic used to keep binary files out of content merges."""
    name = PurePosixPath(path).name.lower()
    return any(name.endswith(ext) for ext in binary_extensions)
