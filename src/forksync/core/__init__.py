"""Core utilities shared across ForkSync: errors, logging, progress output."""

from forksync.core.errors import (
    AnalysisError,
    ConfigError,
    ErrorCode,
    ForkSyncError,
    InternalError,
    SyncError,
)
from forksync.core.logging import (
    configure_logging,
    get_logger,
    get_run_id,
    set_run_id,
)

__all__ = [
    "AnalysisError",
    "ConfigError",
    "ErrorCode",
    "ForkSyncError",
    "InternalError",
    "SyncError",
    "configure_logging",
    "get_logger",
    "get_run_id",
    "set_run_id",
]
