"""Customization ("swizzle") tracking.

A fork owner who deliberately removes or hand-edits a boilerplate file
should not see that choice overwritten on the next sync. This module
detects such deviations, validates previously stored ones against the
current boilerplate, applies manual overrides, and persists records in a
small versioned JSON document inside the fork.
"""

from __future__ import annotations

import json
import os
import re
import tempfile
import threading
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from forksync.config.constants import CUSTOMIZATIONS_SCHEMA_VERSION
from forksync.config.models import CustomizationsConfig, OverridesConfig
from forksync.core.errors import ConfigError
from forksync.core.logging import get_logger
from forksync.sync.models import (
    NO_CUSTOMIZATION,
    BlobStatus,
    CommitRecord,
    CustomizationEvent,
    CustomizationLookup,
    CustomizationRecord,
    CustomizationSource,
    DivergenceStatus,
    DivergenceSummary,
    FileIdentity,
)

log = get_logger("sync.swizzle")

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


# =============================================================================
# Path patterns
# =============================================================================


@lru_cache(maxsize=512)
def _compile(pattern: str) -> re.Pattern[str]:
    parts: list[str] = []
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if pattern.startswith("**/", i):
            parts.append("(?:.*/)?")
            i += 3
            continue
        if pattern.startswith("**", i):
            parts.append(".*")
            i += 2
            continue
        if char == "*":
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        else:
            parts.append(re.escape(char))
        i += 1
    return re.compile("".join(parts))


def match_pattern(path: str, pattern: str) -> bool:
    """Match a repo-relative path against an override pattern.

    Patterns without ``*`` or ``?`` must match exactly. ``*`` stays within one
    path segment, ``**`` crosses segments and ``?`` is any single character.
    """
    if "*" not in pattern and "?" not in pattern:
        return path == pattern
    return _compile(pattern).fullmatch(path) is not None


class ManualOverrides:
    """Operator-forced customization events, from the ``overrides`` config section."""

    def __init__(self, edited: Sequence[str] = (), removed: Sequence[str] = ()) -> None:
        self._edited = tuple(edited)
        self._removed = tuple(removed)

    @classmethod
    def from_config(cls, config: OverridesConfig) -> ManualOverrides:
        return cls(edited=config.edited, removed=config.removed)

    def event_for(self, path: str) -> CustomizationEvent | None:
        # removed wins when a path is listed under both
        if any(match_pattern(path, p) for p in self._removed):
            return CustomizationEvent.REMOVED
        if any(match_pattern(path, p) for p in self._edited):
            return CustomizationEvent.EDITED
        return None


# =============================================================================
# Persistence
# =============================================================================


class CustomizationDocument(BaseModel):
    """On-disk shape of the customization store."""

    version: int = CUSTOMIZATIONS_SCHEMA_VERSION
    last_synced_at: datetime | None = None
    entries: dict[str, CustomizationRecord] = Field(default_factory=dict)


class CustomizationStore:
    """Explicit load / merge / flush lifecycle around the customization document.

    The document is read at most once per instance. ``merge`` only changes the
    in-memory copy; nothing touches disk until ``flush``.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._document: CustomizationDocument | None = None
        self._lock = threading.Lock()

    @classmethod
    def for_fork(cls, fork_root: Path, config: CustomizationsConfig) -> CustomizationStore:
        return cls(fork_root / config.metadata_dir / config.metadata_file)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> CustomizationDocument:
        with self._lock:
            if self._document is None:
                self._document = self._read()
            return self._document

    def _read(self) -> CustomizationDocument:
        if not self._path.exists():
            log.debug("customization_store_missing", path=str(self._path))
            return CustomizationDocument()
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError.parse_error(str(self._path), str(e)) from e
        if not isinstance(raw, dict):
            raise ConfigError.parse_error(str(self._path), "top level must be an object")

        version = raw.get("version", CUSTOMIZATIONS_SCHEMA_VERSION)
        if version != CUSTOMIZATIONS_SCHEMA_VERSION:
            raise ConfigError.unsupported_version(str(self._path), version)
        try:
            document = CustomizationDocument.model_validate(raw)
        except ValidationError as e:
            raise ConfigError.parse_error(str(self._path), str(e)) from e
        log.debug(
            "customization_store_loaded", path=str(self._path), entries=len(document.entries)
        )
        return document

    @property
    def last_synced_at(self) -> datetime | None:
        return self.load().last_synced_at

    def get(self, path: str) -> CustomizationRecord | None:
        return self.load().entries.get(path)

    def entries(self) -> list[CustomizationRecord]:
        document = self.load()
        return [document.entries[p] for p in sorted(document.entries)]

    def merge(self, records: Iterable[CustomizationRecord]) -> int:
        """New records replace same-path entries; the rest are kept. Returns count merged."""
        document = self.load()
        merged = dict(document.entries)
        count = 0
        for record in records:
            merged[record.path] = record
            count += 1
        with self._lock:
            self._document = document.model_copy(update={"entries": merged})
        return count

    def flush(self, synced_at: datetime | None = None) -> Path:
        """Write the document atomically (temp file + rename)."""
        document = self.load()
        if synced_at is not None:
            document = document.model_copy(update={"last_synced_at": synced_at})
            with self._lock:
                self._document = document

        payload = document.model_dump(mode="json")
        payload["entries"] = {p: payload["entries"][p] for p in sorted(payload["entries"])}
        text = json.dumps(payload, indent=2, sort_keys=False) + "\n"

        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        log.info(
            "customization_store_flushed", path=str(self._path), entries=len(document.entries)
        )
        return self._path


# =============================================================================
# Tracking
# =============================================================================


def is_record_valid(record: CustomizationRecord, boilerplate: FileIdentity) -> bool:
    """A record holds while the boilerplate file has not moved since detection."""
    return (
        boilerplate.last_commit_id == record.boilerplate_last_commit_id
        or boilerplate.content_hash == record.boilerplate_content_hash
    )


def detect_event(
    boilerplate: FileIdentity | None,
    divergence: DivergenceSummary,
    blob_status: BlobStatus,
) -> CustomizationEvent | None:
    """First matching detection rule, or None."""
    if boilerplate is None:
        return None
    if blob_status == BlobStatus.MISSING and divergence.status != DivergenceStatus.UNRELATED:
        return CustomizationEvent.REMOVED
    if blob_status != BlobStatus.MISSING and divergence.status in (
        DivergenceStatus.AHEAD,
        DivergenceStatus.DIVERGED,
    ):
        return CustomizationEvent.EDITED
    return None


class SwizzleTracker:
    """Resolves each file's customization state for one run.

    Precedence: manual override, then stored record (valid or stale), then
    fresh detection. Detected records accumulate here and only reach the
    store through ``flush``.
    """

    def __init__(self, store: CustomizationStore, overrides: ManualOverrides | None = None) -> None:
        self._store = store
        self._overrides = overrides or ManualOverrides()
        self._detected: dict[str, CustomizationRecord] = {}
        self._lock = threading.Lock()

    @property
    def store(self) -> CustomizationStore:
        return self._store

    def lookup(
        self,
        boilerplate: FileIdentity,
        fork: FileIdentity | None,
        divergence: DivergenceSummary,
        blob_status: BlobStatus,
        boilerplate_history: Sequence[CommitRecord] = (),
        fork_history: Sequence[CommitRecord] = (),
    ) -> CustomizationLookup:
        path = boilerplate.path
        recorded_at = _recorded_at(fork_history, divergence, boilerplate_history)

        forced = self._overrides.event_for(path)
        if forced is not None:
            return CustomizationLookup(
                CustomizationSource.OVERRIDE,
                self._record(forced, boilerplate, fork, divergence, recorded_at),
            )

        stored = self._store.get(path)
        if stored is not None:
            if is_record_valid(stored, boilerplate):
                return CustomizationLookup(CustomizationSource.STORED, stored)
            log.warning(
                "customization_stale",
                path=path,
                customization_event=stored.event.value,
                recorded_commit=stored.boilerplate_last_commit_id,
                current_commit=boilerplate.last_commit_id,
            )
            return CustomizationLookup(CustomizationSource.STALE, stored)

        event = detect_event(boilerplate, divergence, blob_status)
        if event is None:
            return NO_CUSTOMIZATION

        record = self._record(event, boilerplate, fork, divergence, recorded_at)
        with self._lock:
            self._detected[path] = record
        log.debug("customization_detected", path=path, customization_event=event.value)
        return CustomizationLookup(CustomizationSource.DETECTED, record)

    def detected(self) -> list[CustomizationRecord]:
        with self._lock:
            return [self._detected[p] for p in sorted(self._detected)]

    def flush(self, synced_at: datetime | None = None) -> int:
        """Merge this run's detections into the store and write it. Returns count merged."""
        count = self._store.merge(self.detected())
        self._store.flush(synced_at)
        with self._lock:
            self._detected.clear()
        return count

    @staticmethod
    def _record(
        event: CustomizationEvent,
        boilerplate: FileIdentity,
        fork: FileIdentity | None,
        divergence: DivergenceSummary,
        recorded_at: datetime,
    ) -> CustomizationRecord:
        return CustomizationRecord(
            path=boilerplate.path,
            event=event,
            active=True,
            shared_ancestor_id=divergence.shared_ancestor_id,
            fork_last_commit_id=fork.last_commit_id if fork else None,
            boilerplate_last_commit_id=boilerplate.last_commit_id,
            boilerplate_content_hash=boilerplate.content_hash,
            recorded_at=recorded_at,
        )


def _recorded_at(
    fork_history: Sequence[CommitRecord],
    divergence: DivergenceSummary,
    boilerplate_history: Sequence[CommitRecord],
) -> datetime:
    # Derived from repository state so repeated analyses produce identical output
    if fork_history:
        return fork_history[0].timestamp
    if divergence.last_synced_at is not None:
        return divergence.last_synced_at
    if boilerplate_history:
        return boilerplate_history[0].timestamp
    return _EPOCH
