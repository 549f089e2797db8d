"""Shared utility functions."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path


def xdg_config_home() -> Path:
    """Return XDG_CONFIG_HOME, defaulting to ~/.config."""
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


def xdg_data_home() -> Path:
    """Return XDG_DATA_HOME, defaulting to ~/.local/share."""
    return Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))


def dir_size(path: Path | str) -> int:
    """Return the number of bytes held by regular files under *path*.

    Artifact trees such as ``node_modules`` hold hundreds of thousands of
    files, so the walk is handed to GNU ``find`` when it is installed.
    Unreadable entries count as zero; a missing tree is 0 bytes.
    """
    try:
        return _size_with_find(str(path))
    except (OSError, subprocess.SubprocessError, ValueError):
        return _size_with_scandir(path)


def _size_with_find(path: str) -> int:
    proc = subprocess.run(
        ["find", path, "-type", "f", "-printf", "%s\n"],
        capture_output=True, timeout=60,
    )
    return sum(int(line) for line in proc.stdout.splitlines() if line)


def _size_with_scandir(path: Path | str) -> int:
    total = 0
    pending: list[Path | str] = [path]
    while pending:
        try:
            with os.scandir(pending.pop()) as entries:
                for entry in entries:
                    try:
                        if entry.is_dir(follow_symlinks=False):
                            pending.append(entry.path)
                        elif entry.is_file(follow_symlinks=False):
                            total += entry.stat(follow_symlinks=False).st_size
                    except OSError:
                        continue
        except OSError:
            continue
    return total


def bytes_to_human(size_bytes: int) -> str:
    """Format a byte count with binary units, e.g. ``1.5 MB``."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    value = float(size_bytes)
    for unit in ("KB", "MB", "GB"):
        value /= 1024
        if value < 1024:
            return f"{value:.1f} {unit}"
    return f"{value / 1024:.1f} TB"


def strip_root(path: str, root: str) -> str:
    """Show *path* relative to a scan root when it lives under it."""
    prefix = root.rstrip("/") + "/"
    if root and path.startswith(prefix):
        return path[len(prefix):]
    return path


def truncate(text: str, width: int) -> str:
    """Shorten *text* to *width* characters, marking the cut with '...'."""
    if len(text) <= width:
        return text
    return text[: max(width - 3, 0)] + "..."
