"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages and
provides throw-away git repositories with deterministic commit times.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
import structlog

# Local src/ wins over any installed forksync; the root makes tests.* importable
_root_dir = Path(__file__).parent.parent
for _dir in (_root_dir, _root_dir / "src"):
    if str(_dir) not in sys.path:
        sys.path.insert(0, str(_dir))

from tests.repos import RepoBuilder  # noqa: E402


@pytest.fixture
def make_repo(tmp_path: Path) -> Callable[..., RepoBuilder]:
    """Factory for empty repositories under tmp_path."""

    def _make(name: str = "repo", branch: str = "main") -> RepoBuilder:
        return RepoBuilder.init(tmp_path / name, branch)

    return _make


@pytest.fixture
def boilerplate(make_repo: Callable[..., RepoBuilder]) -> RepoBuilder:
    """Boilerplate repository with a small initial tree on main."""
    bp = make_repo("boilerplate")
    bp.commit(
        {
            "README.md": "# Boilerplate\n",
            "src/app.py": "def main():\n    return 1\n",
            "config/settings.toml": "[app]\nname = 'boilerplate'\n",
        },
        "Initial boilerplate",
    )
    return bp


@pytest.fixture
def fork(boilerplate: RepoBuilder, tmp_path: Path) -> RepoBuilder:
    """Fork cloned from the boilerplate, with the boilerplate as remote 'boilerplate'.

    The fork works on 'development', created from the cloned main.
    """
    f = RepoBuilder.clone(boilerplate, tmp_path / "fork", remote="boilerplate")
    f.branch("development")
    f.checkout("development")
    return f


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep the user's global config and FORKSYNC__ env vars out of every test."""
    global_path = tmp_path / "global-config" / "config.yaml"
    monkeypatch.setattr("forksync.config.loader.GLOBAL_CONFIG_PATH", global_path)
    for key in list(os.environ):
        if key.upper().startswith("FORKSYNC__"):
            monkeypatch.delenv(key)
    return global_path


@pytest.fixture(autouse=True)
def _detach_log_handlers() -> Iterator[None]:
    # Handlers bound to captured streams must not outlive the test
    yield
    logging.getLogger().handlers.clear()
    structlog.reset_defaults()


@pytest.fixture
def debug_log(tmp_path: Path) -> Callable[[], list[dict[str, Any]]]:
    """Configure DEBUG logging to a JSON file; the returned callable reads the records."""
    from forksync.config.models import LoggingConfig, LogOutputConfig
    from forksync.core.logging import configure_logging

    log_file = tmp_path / "debug.jsonl"
    configure_logging(
        config=LoggingConfig(
            level="DEBUG",
            outputs=[LogOutputConfig(format="json", destination=str(log_file))],
        )
    )

    def _records() -> list[dict[str, Any]]:
        for handler in logging.getLogger().handlers:
            handler.flush()
        if not log_file.exists():
            return []
        return [json.loads(line) for line in log_file.read_text().splitlines() if line]

    return _records
