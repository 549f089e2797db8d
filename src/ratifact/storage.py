"""SQLite storage for discovered artifacts and their build events."""

from __future__ import annotations

import logging
import sqlite3
import time
from contextlib import closing, contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from ratifact.models.build_event import BuildEvent

log = logging.getLogger(__name__)

_SECONDS_PER_DAY = 86400

_SCHEMA = """
CREATE TABLE IF NOT EXISTS builds (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    project_path TEXT NOT NULL,
    language TEXT NOT NULL,
    artifact_path TEXT NOT NULL,
    size_bytes INTEGER NOT NULL DEFAULT 0,
    build_time REAL NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_builds_artifact_path ON builds (artifact_path);
CREATE INDEX IF NOT EXISTS idx_builds_build_time ON builds (build_time);
"""


class StoreError(Exception):
    """Raised when the artifact store cannot be read or written."""


class ArtifactStore:
    """Persistent record of artifact sightings.

    Every operation opens its own short-lived connection, so one store
    can be shared between the UI thread and background workers.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        with self._connect() as conn:
            conn.executescript(_SCHEMA)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with closing(sqlite3.connect(self.path, timeout=5)) as conn:
                with conn:
                    yield conn
        except (sqlite3.Error, OSError) as exc:
            raise StoreError(f"{self.path}: {exc}") from exc

    def log_build(
        self,
        project_path: str,
        language: str,
        artifact_path: str,
        size_bytes: int,
        build_time: datetime | None = None,
    ) -> None:
        """Record one build event for *artifact_path*."""
        stamp = build_time.timestamp() if build_time else time.time()
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO builds (project_path, language, artifact_path, size_bytes, build_time) "
                "VALUES (?, ?, ?, ?, ?)",
                (project_path, language, artifact_path, int(size_bytes), stamp),
            )
        log.debug("Logged build of %s (%s, %d bytes)", artifact_path, language, size_bytes)

    def recent_artifact_paths(self, limit: int = 50) -> list[str]:
        """Distinct artifact paths, most recently built first."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT artifact_path FROM builds GROUP BY artifact_path "
                "ORDER BY MAX(build_time) DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [row[0] for row in rows]

    def recent_builds(self, limit: int = 10) -> list[BuildEvent]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT project_path, language, artifact_path, size_bytes, build_time "
                "FROM builds ORDER BY build_time DESC, id DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [
            BuildEvent(
                project_path=project,
                language=language,
                artifact_path=artifact,
                size_bytes=size,
                build_time=datetime.fromtimestamp(stamp, tz=timezone.utc),
            )
            for project, language, artifact, size, stamp in rows
        ]

    def count_builds(self) -> int:
        with self._connect() as conn:
            return conn.execute("SELECT COUNT(*) FROM builds").fetchone()[0]

    def artifact_sizes(self) -> list[tuple[str, int]]:
        """Largest recorded size per artifact path, biggest first."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT artifact_path, MAX(size_bytes) AS size FROM builds "
                "GROUP BY artifact_path ORDER BY size DESC"
            ).fetchall()
        return [(path, int(size)) for path, size in rows]

    def delete_artifact(self, artifact_path: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM builds WHERE artifact_path = ?", (artifact_path,))

    def delete_all(self) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM builds")

    def old_artifact_paths(self, days: int) -> list[str]:
        """Artifact paths whose latest build event is older than *days*."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT artifact_path FROM builds GROUP BY artifact_path HAVING MAX(build_time) < ?",
                (_cutoff(days),),
            ).fetchall()
        return [row[0] for row in rows]

    def delete_old_builds(self, days: int) -> int:
        """Delete build events older than *days*; returns the number removed."""
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM builds WHERE build_time < ?", (_cutoff(days),))
            return cursor.rowcount


def _cutoff(days: int) -> float:
    return time.time() - days * _SECONDS_PER_DAY
