"""Launching a project's own build command next to one of its artifacts."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from ratifact.core.tasks import spawn_detached

log = logging.getLogger(__name__)

# Checked in order; the first marker present in the project root wins.
_BUILD_COMMANDS: tuple[tuple[str, list[str]], ...] = (
    ("Cargo.toml", ["cargo", "build"]),
    ("package.json", ["npm", "run", "build"]),
    ("go.mod", ["go", "build", "./..."]),
    ("pom.xml", ["mvn", "package"]),
    ("build.gradle.kts", ["gradle", "build"]),
    ("build.gradle", ["gradle", "build"]),
    ("CMakeLists.txt", ["cmake", "--build", "build"]),
    ("Makefile", ["make"]),
)


def rebuild_command(project_root: Path | str) -> list[str] | None:
    """The build command for *project_root*, or None if none is recognised."""
    root = Path(project_root)
    for marker, cmd in _BUILD_COMMANDS:
        if (root / marker).exists():
            return list(cmd)
    return None


def launch_rebuild(artifact_path: str) -> list[str] | None:
    """Start the build for the project owning *artifact_path* and return at once.

    The child is reaped by a detached unit so the session never blocks on
    it, and its output is discarded so it cannot draw over the terminal UI.

    Returns:
        The command started, or None when the project has no known build system.

    Raises:
        OSError: If the build tool could not be started.
    """
    project_root = Path(artifact_path).parent
    cmd = rebuild_command(project_root)
    if cmd is None:
        return None
    proc = subprocess.Popen(
        cmd,
        cwd=str(project_root),
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        start_new_session=True,
    )
    spawn_detached(proc.wait, name="rebuild-wait")
    log.info("Started '%s' in %s", " ".join(cmd), project_root)
    return cmd
