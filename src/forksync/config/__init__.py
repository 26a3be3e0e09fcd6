"""Config module exports."""

from forksync.config.loader import load_config
from forksync.config.models import (
    AnalysisConfig,
    BoilerplateConfig,
    CustomizationsConfig,
    ForkConfig,
    ForkSyncConfig,
    LoggingConfig,
    OverridesConfig,
    SyncConfig,
)

__all__ = [
    "load_config",
    "AnalysisConfig",
    "BoilerplateConfig",
    "CustomizationsConfig",
    "ForkConfig",
    "ForkSyncConfig",
    "LoggingConfig",
    "OverridesConfig",
    "SyncConfig",
]
