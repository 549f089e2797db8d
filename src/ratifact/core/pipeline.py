"""Background scan pipeline: log buffer, result slot, and the scan itself."""

from __future__ import annotations

import logging
import queue
import threading
from collections import deque
from dataclasses import dataclass, field

from ratifact.core.scanner import (
    MAX_SCAN_DEPTH,
    detect_language,
    is_artifact_dir,
    is_excluded,
    walk_dirs,
)
from ratifact.core.watcher import BuildWatcher
from ratifact.storage import ArtifactStore, StoreError
from ratifact.utils import dir_size

log = logging.getLogger(__name__)

LOG_BUFFER_SIZE = 1000


class LogBuffer:
    """Bounded, append-only list of progress lines shared with background work."""

    def __init__(self, maxlen: int = LOG_BUFFER_SIZE) -> None:
        self._lock = threading.Lock()
        self._lines: deque[str] = deque(maxlen=maxlen)

    def append(self, line: str) -> None:
        with self._lock:
            self._lines.append(line)
        log.debug("%s", line)

    def snapshot(self) -> list[str]:
        with self._lock:
            return list(self._lines)

    def tail(self, count: int) -> list[str]:
        with self._lock:
            if count <= 0:
                return []
            return list(self._lines)[-count:]

    def __len__(self) -> int:
        with self._lock:
            return len(self._lines)


class ScanResultSlot:
    """Single-slot channel carrying a finished scan to the controller."""

    def __init__(self) -> None:
        self._queue: queue.Queue[list[str]] = queue.Queue(maxsize=1)

    def put(self, artifacts: list[str]) -> None:
        self._queue.put(list(artifacts))

    def take(self) -> list[str] | None:
        """Return the pending result, or None when nothing has arrived."""
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return None


@dataclass
class ScanJob:
    """Everything one scan needs, captured when it is triggered."""

    roots: list[str]
    excluded_paths: list[str]
    store: ArtifactStore
    watcher: BuildWatcher
    logs: LogBuffer
    results: ScanResultSlot
    max_depth: int = MAX_SCAN_DEPTH
    found: list[str] = field(default_factory=list)

    def run(self) -> list[str]:
        """Walk every root, record matches, and deliver the result once.

        A result is always sent, even if something unexpected goes wrong
        part-way through the walk.
        """
        try:
            self.logs.append("Starting scan...")
            total = 0
            for root in self.roots:
                self.logs.append(f"Scanning path: {root}")
                count = self._scan_root(root)
                total += count
                self.logs.append(f"Scan complete for {root}. Found {count} artifacts.")
        except Exception:
            log.exception("Scan aborted after %d artifacts", len(self.found))
        self.results.put(self.found)
        self.logs.append(f"Total scan complete. Found {len(self.found)} artifacts.")
        return self.found

    def _scan_root(self, root: str) -> int:
        count = 0
        for entry in walk_dirs(root, self.max_depth):
            if not is_artifact_dir(entry.name) or is_excluded(entry.path, self.excluded_paths):
                continue
            self.found.append(entry.path)
            count += 1
            self._record(entry.path, entry.parent)
        return count

    def _record(self, artifact_path: str, project_path: str) -> None:
        language = detect_language(project_path)
        size = dir_size(artifact_path)
        try:
            self.store.log_build(project_path, language, artifact_path, size)
        except StoreError as e:
            log.warning("Could not record %s: %s", artifact_path, e)
        try:
            self.watcher.watch(artifact_path)
        except OSError as e:
            log.debug("Could not watch %s: %s", artifact_path, e)
