"""Change notification for watched artifact directories."""

from __future__ import annotations

import logging
import os
import threading

log = logging.getLogger(__name__)


class BuildWatcher:
    """Tracks artifact directories and reports the ones that changed.

    A directory's mtime moves whenever a build adds or removes entries in
    it, which is enough to tell that a project was rebuilt.
    """

    def __init__(self, debug: bool = False) -> None:
        self._debug = debug
        self._lock = threading.Lock()
        self._mtimes: dict[str, float] = {}

    def watch(self, path: str) -> None:
        """Start watching *path*. Raises OSError if it cannot be stat'ed."""
        mtime = os.stat(path).st_mtime
        with self._lock:
            self._mtimes[path] = mtime
        if self._debug:
            log.debug("Watching %s", path)

    def unwatch(self, path: str) -> None:
        with self._lock:
            self._mtimes.pop(path, None)

    @property
    def watched(self) -> list[str]:
        with self._lock:
            return list(self._mtimes)

    def poll(self) -> list[str]:
        """Return watched paths modified since the last poll.

        Paths that no longer exist stop being watched.
        """
        changed: list[str] = []
        with self._lock:
            for path, last in list(self._mtimes.items()):
                try:
                    current = os.stat(path).st_mtime
                except OSError:
                    del self._mtimes[path]
                    continue
                if current != last:
                    self._mtimes[path] = current
                    changed.append(path)
        if changed and self._debug:
            log.debug("Changed artifacts: %s", ", ".join(changed))
        return changed
