"""Configuration constants.

Values here are fixed by the on-disk formats and should NOT be user-configurable.
For configurable values, see models.py.
"""

CONFIG_DIR_NAME = ".forksync"
"""Per-repository directory holding config.yaml and the customization store."""

CONFIG_FILE_NAME = "config.yaml"

CUSTOMIZATIONS_SCHEMA_VERSION = 1
"""Schema version written into the customization store document."""

REBASE_STATE_FILE = "forksync-rebase-state.json"
"""Rebase progress file, written inside the git directory."""

DEFAULT_BINARY_EXTENSIONS = (
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".bmp",
    ".ico",
    ".webp",
    ".pdf",
    ".woff",
    ".woff2",
    ".ttf",
    ".otf",
    ".eot",
    ".zip",
    ".gz",
    ".tar",
    ".tgz",
    ".7z",
    ".jar",
    ".exe",
    ".dll",
    ".so",
    ".dylib",
    ".mp3",
    ".mp4",
    ".mov",
    ".docx",
    ".xlsx",
    ".pptx",
)
"""Extensions excluded from the three-way content check."""
