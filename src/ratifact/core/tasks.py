"""Fire-and-forget background units."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Protocol

log = logging.getLogger(__name__)


class Spawner(Protocol):
    def __call__(self, target: Callable[..., Any], *args: Any, name: str | None = None) -> None: ...


def spawn_detached(target: Callable[..., Any], *args: Any, name: str | None = None) -> None:
    """Run *target* on a daemon thread and never join it.

    Nothing waits for the unit: its outcome is only its own side effects,
    and the process may exit while it is still running. Exceptions are
    logged rather than printed over the terminal UI.
    """

    def _run() -> None:
        try:
            target(*args)
        except Exception:
            log.exception("Background task %s failed", name or getattr(target, "__name__", target))

    threading.Thread(target=_run, name=name, daemon=True).start()


def run_inline(target: Callable[..., Any], *args: Any, name: str | None = None) -> None:
    """Synchronous stand-in for :func:`spawn_detached`, for tests and scripts."""
    target(*args)
