"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (FORKSYNC__SECTION__KEY)
3. Repo YAML (.forksync/config.yaml)
4. Global YAML (~/.config/forksync/config.yaml)
5. Built-in defaults (this file)

Examples:
    FORKSYNC__LOGGING__LEVEL=DEBUG
    FORKSYNC__SYNC__PUSH=false
    FORKSYNC__ANALYSIS__MAX_WORKERS=4
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from forksync.config.constants import CONFIG_DIR_NAME, DEFAULT_BINARY_EXTENSIONS

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration (YAML only)."""

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        FORKSYNC__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every per-file decision.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class BoilerplateConfig(BaseModel):
    """Where the canonical template repository lives.

    Env vars:
        FORKSYNC__BOILERPLATE__REMOTE_NAME: Remote name inside the fork
        FORKSYNC__BOILERPLATE__URL: Remote URL, added to the fork when missing
        FORKSYNC__BOILERPLATE__BRANCH: Boilerplate branch to track
        FORKSYNC__BOILERPLATE__PATH: Local boilerplate checkout (skips the remote)
        FORKSYNC__BOILERPLATE__OVERWRITE_REMOTE_URL: Repoint a remote whose URL differs
    """

    remote_name: str = Field(
        default="boilerplate",
        description="Name of the fork's remote pointing at the boilerplate.",
    )
    url: str | None = Field(
        default=None,
        description="Boilerplate URL. When set, the remote is created if absent.",
    )
    branch: str = Field(default="main", description="Boilerplate branch to sync from.")
    path: str | None = Field(
        default=None,
        description="Read the boilerplate from this local repository instead of "
        "the fork's remote-tracking branch.",
    )
    overwrite_remote_url: bool = Field(
        default=False,
        description="Repoint an existing remote whose URL differs from the configured one "
        "instead of refusing to run.",
    )


class ForkConfig(BaseModel):
    """The derived repository being kept in sync.

    Env vars:
        FORKSYNC__FORK__BRANCH: Target branch receiving the sync
        FORKSYNC__FORK__SYNC_BRANCH: Working branch the merge lands on
        FORKSYNC__FORK__REMOTE_NAME: Remote pushed to after a sync
    """

    path: str = Field(default=".", description="Fork repository path.")
    branch: str = Field(default="development", description="Fork target branch.")
    sync_branch: str = Field(
        default="sync-branch",
        description="Branch that receives the boilerplate merge before squashing.",
    )
    remote_name: str = Field(default="origin", description="Remote pushed to after sync.")


class OverridesConfig(BaseModel):
    """Manual customization overrides.

    Globs: exact path, ``*`` within one segment, ``**`` across segments, ``?`` one char.
    """

    edited: list[str] = Field(
        default_factory=list,
        description="Paths always treated as intentionally edited in the fork.",
    )
    removed: list[str] = Field(
        default_factory=list,
        description="Paths always treated as intentionally removed from the fork.",
    )


class AnalysisConfig(BaseModel):
    """Per-file analysis settings.

    Env vars:
        FORKSYNC__ANALYSIS__MAX_WORKERS: Concurrent per-file analyses
        FORKSYNC__ANALYSIS__THREE_WAY_CHECK: Run the three-way content check
    """

    max_workers: int = Field(
        default=10,
        description="Concurrent per-file analyses. "
        "RISK: Large values exhaust file descriptors on big repositories.",
    )
    three_way_check: bool = Field(
        default=True,
        description="Attempt an offline three-way merge when risk recommends it.",
    )
    binary_extensions: list[str] = Field(
        default_factory=lambda: list(DEFAULT_BINARY_EXTENSIONS),
        description="Extensions skipped by the three-way content check.",
    )

    @field_validator("max_workers")
    @classmethod
    def validate_max_workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max_workers must be >= 1, got {v}")
        return v

    @field_validator("binary_extensions")
    @classmethod
    def normalize_extensions(cls, v: list[str]) -> list[str]:
        return [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in v]


class CustomizationsConfig(BaseModel):
    """Location of the persisted customization store inside the fork."""

    metadata_dir: str = Field(default=CONFIG_DIR_NAME)
    metadata_file: str = Field(default="customizations.json")


class SyncConfig(BaseModel):
    """Orchestration settings.

    Env vars:
        FORKSYNC__SYNC__PUSH: Push after a successful sync
        FORKSYNC__SYNC__MAX_SQUASH_PREVIEWS: Commit subjects listed in squash messages
    """

    push: bool = Field(default=True, description="Push the working branch after committing.")
    max_squash_previews: int = Field(
        default=10,
        description="Upstream commit subjects listed in a squash commit message.",
    )


class ForkSyncConfig(BaseModel):
    """Root configuration for ForkSync."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    boilerplate: BoilerplateConfig = Field(default_factory=BoilerplateConfig)
    fork: ForkConfig = Field(default_factory=ForkConfig)
    overrides: OverridesConfig = Field(default_factory=OverridesConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    customizations: CustomizationsConfig = Field(default_factory=CustomizationsConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
