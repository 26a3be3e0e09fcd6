"""ForkSync error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Analysis
- 5xxx: Sync / orchestration
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_MISSING_REQUIRED = 2003
    CONFIG_FILE_NOT_FOUND = 2004
    CONFIG_UNSUPPORTED_VERSION = 2005
    CONFIG_REMOTE_MISMATCH = 2006

    # Analysis (3xxx)
    VERSION_CONTROL_FAILURE = 3001
    PATH_ABSENT_AT_COMMIT = 3002

    # Sync (5xxx)
    ORCHESTRATION_FAILED = 5001
    CONFLICTS_UNRESOLVED = 5002
    ABORTED_BY_OPERATOR = 5003
    FORK_NOT_READY = 5004

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(eq=False)
class ForkSyncError(Exception):
    """Base error with structured context for CLI and JSON output.

    Not frozen: raising through a context manager assigns __traceback__.
    """

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'CONFIG_PARSE_ERROR')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(ForkSyncError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def missing_required(cls, field: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_MISSING_REQUIRED,
            message=f"Missing required config field: {field}",
            details={"field": field},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )

    @classmethod
    def unsupported_version(cls, path: str, version: int) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_UNSUPPORTED_VERSION,
            message=f"Unsupported metadata version {version} in {path}",
            details={"path": path, "version": version},
        )

    @classmethod
    def remote_mismatch(cls, name: str, configured: str, actual: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_REMOTE_MISMATCH,
            message=f"Remote '{name}' points at {actual}, but the boilerplate is {configured}",
            details={"remote": name, "configured": configured, "actual": actual},
        )


class AnalysisError(ForkSyncError):
    """Per-file analysis failures. Isolated to the file that raised them."""

    @classmethod
    def version_control_failure(cls, path: str, reason: str) -> "AnalysisError":
        return cls(
            code=ErrorCode.VERSION_CONTROL_FAILURE,
            message=f"Version control failure for {path}: {reason}",
            retryable=True,
            details={"path": path, "reason": reason},
        )

    @classmethod
    def path_absent(cls, path: str, commit_id: str) -> "AnalysisError":
        """The commit exists but holds no file at path. Not a transport failure."""
        return cls(
            code=ErrorCode.PATH_ABSENT_AT_COMMIT,
            message=f"{path} does not exist at {commit_id[:7]}",
            details={"path": path, "commit": commit_id},
        )


class SyncError(ForkSyncError):
    """Orchestration errors. Fatal to the current run."""

    @classmethod
    def orchestration_failed(cls, step: str, reason: str) -> "SyncError":
        return cls(
            code=ErrorCode.ORCHESTRATION_FAILED,
            message=f"Sync failed during {step}: {reason}",
            details={"step": step, "reason": reason},
        )

    @classmethod
    def conflicts_unresolved(cls, paths: list[str]) -> "SyncError":
        return cls(
            code=ErrorCode.CONFLICTS_UNRESOLVED,
            message=f"{len(paths)} conflicted file(s) remain unresolved",
            details={"paths": list(paths)},
        )

    @classmethod
    def aborted_by_operator(cls, paths: list[str]) -> "SyncError":
        return cls(
            code=ErrorCode.ABORTED_BY_OPERATOR,
            message="Sync aborted by operator",
            details={"paths": list(paths)},
        )

    @classmethod
    def fork_not_ready(cls, reason: str, paths: list[str] | None = None) -> "SyncError":
        """Raised before a workflow touches a fork that is not at rest."""
        return cls(
            code=ErrorCode.FORK_NOT_READY,
            message=f"Fork is not ready to sync: {reason}",
            details={"reason": reason, "paths": list(paths or [])},
        )


class InternalError(ForkSyncError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
