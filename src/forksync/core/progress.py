"""Console feedback for CLI commands.

All output goes to stderr; stdout is reserved for ``--json`` documents.
"""

from __future__ import annotations

import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from rich.console import Console

from forksync.core.logging import get_logger

log = get_logger("progress")

_console = Console(stderr=True)

_STYLES = {
    "success": "[green]✓[/green] ",
    "error": "[red]✗[/red] ",
    "warning": "[yellow]![/yellow] ",
    "info": "  ",
    "none": "",
}

_live = threading.local()


def is_console_suppressed() -> bool:
    """True while a spinner owns the terminal on this thread."""
    return getattr(_live, "active", False)


@contextmanager
def suppress_console_logs() -> Iterator[None]:
    _live.active = True
    try:
        yield
    finally:
        _live.active = False


def _is_tty() -> bool:
    return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()


def get_console() -> Console:
    return _console


def status(message: str, *, style: str = "info", indent: int = 0) -> None:
    """Print one status line, prefixed with the style's marker."""
    _console.print(f"{' ' * indent}{_STYLES.get(style, '')}{message}", highlight=False)
    log.debug("status", message=message, style=style)


def pluralize(count: int, noun: str) -> str:
    return f"{count} {noun if count == 1 else noun + 's'}"


@contextmanager
def spinner(message: str) -> Iterator[None]:
    """Spin while the block runs; console logs are muted meanwhile.

    Without a terminal the message is printed once instead.
    """
    if not _is_tty():
        _console.print(f"{message}...")
        yield
        return
    with suppress_console_logs(), _console.status(f"[cyan]{message}[/cyan]", spinner="dots"):
        yield
