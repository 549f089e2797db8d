"""Bounded-depth directory walk and build-output recognition."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

log = logging.getLogger(__name__)

MAX_SCAN_DEPTH = 3

ARTIFACT_DIR_NAMES = frozenset({
    # Rust
    "target",
    # C/C++
    "build",
    ".build",
    "cmake-build-debug",
    "cmake-build-release",
    "Debug",
    "Release",
    # JavaScript/TypeScript
    "node_modules",
    "dist",
    ".next",
    ".parcel-cache",
    ".cache",
    # Python
    "__pycache__",
    ".eggs",
    "eggs",
    # Java/Gradle
    ".gradle",
    # PHP/Composer
    "vendor",
    # Ruby
    ".bundle",
    # General build outputs
    "out",
    ".output",
    ".nyc_output",
})

# Checked in order; the first marker present in the project root wins.
_LANGUAGE_MARKERS: tuple[tuple[str, str], ...] = (
    ("Cargo.toml", "Rust"),
    ("tsconfig.json", "TypeScript"),
    ("package.json", "JavaScript"),
    ("pyproject.toml", "Python"),
    ("setup.py", "Python"),
    ("requirements.txt", "Python"),
    ("go.mod", "Go"),
    ("build.gradle.kts", "Kotlin"),
    ("pom.xml", "Java"),
    ("build.gradle", "Java"),
    ("CMakeLists.txt", "C/C++"),
    ("Makefile", "C/C++"),
    ("composer.json", "PHP"),
    ("Gemfile", "Ruby"),
)

UNKNOWN_LANGUAGE = "Unknown"


@dataclass(frozen=True, slots=True)
class DirEntry:
    """A directory met during a walk; *depth* is 0 for the root itself."""

    path: str
    name: str
    depth: int

    @property
    def parent(self) -> str:
        return os.path.dirname(self.path) or "."


def walk_dirs(root: str, max_depth: int = MAX_SCAN_DEPTH) -> Iterator[DirEntry]:
    """Yield directories under *root*, depth-first, down to *max_depth*.

    Symlinks are not followed and unreadable directories are skipped.
    """
    if not os.path.isdir(root):
        log.debug("Scan root %s is not a directory", root)
        return

    stack = [DirEntry(path=root, name=os.path.basename(os.path.normpath(root)), depth=0)]
    while stack:
        current = stack.pop()
        yield current
        if current.depth >= max_depth:
            continue
        try:
            with os.scandir(current.path) as it:
                children = sorted(
                    (e for e in it if _is_real_dir(e)),
                    key=lambda e: e.name,
                )
        except OSError as e:
            log.debug("Skipping unreadable directory %s: %s", current.path, e)
            continue
        # Reverse so the stack pops children in name order.
        for child in reversed(children):
            stack.append(DirEntry(path=child.path, name=child.name, depth=current.depth + 1))


def _is_real_dir(entry: os.DirEntry) -> bool:
    try:
        return entry.is_dir(follow_symlinks=False)
    except OSError:
        return False


def is_artifact_dir(name: str) -> bool:
    return name in ARTIFACT_DIR_NAMES


def is_excluded(path: str, excluded_paths: list[str]) -> bool:
    """True when any configured exclusion is a substring of *path*."""
    return any(ex and ex in path for ex in excluded_paths)


def detect_language(project_path: str | Path) -> str:
    """Guess the toolchain of a project from marker files in its root."""
    root = Path(project_path)
    for marker, language in _LANGUAGE_MARKERS:
        if (root / marker).exists():
            return language
    return UNKNOWN_LANGUAGE
