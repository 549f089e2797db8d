"""Privileged directory removal via sudo."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess

log = logging.getLogger(__name__)

# Timeout for the sudo subprocess (seconds).
_SUDO_TIMEOUT = 300


class PrivilegeError(Exception):
    """Raised when privileged removal fails."""


def is_root() -> bool:
    """Check if the current process is running as root."""
    return os.geteuid() == 0


def sudo_available() -> bool:
    """Check if sudo is available on the system."""
    return shutil.which("sudo") is not None


def run_privileged_remove(path: str, password: str | None = None) -> None:
    """Remove the tree at *path* through ``sudo rm -rf``.

    Without *password* sudo runs non-interactively (``-n``) and fails
    unless a cached or passwordless rule applies. With *password* it is
    written to sudo's stdin (``-S``) so it never shows up in argv.

    Raises:
        PrivilegeError: When sudo is missing, times out, or exits non-zero.
    """
    if not sudo_available():
        raise PrivilegeError("Could not find the 'sudo' executable on PATH")

    if password is None:
        cmd = ["sudo", "-n", "rm", "-rf", "--", path]
        stdin_data = None
    else:
        cmd = ["sudo", "-S", "-p", "", "rm", "-rf", "--", path]
        stdin_data = password + "\n"

    try:
        proc = subprocess.run(
            cmd,
            input=stdin_data,
            stdin=subprocess.DEVNULL if stdin_data is None else None,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
            timeout=_SUDO_TIMEOUT,
        )
    except subprocess.TimeoutExpired:
        raise PrivilegeError("Privileged removal timed out after 5 minutes")
    except OSError as exc:
        raise PrivilegeError(f"Could not run sudo: {exc}")

    if proc.returncode != 0:
        stderr = (proc.stderr or "").strip()
        raise PrivilegeError(f"Privileged removal failed (exit {proc.returncode}): {stderr}")


def remove_tree(path: str, password: str | None = None) -> bool:
    """Remove *path*, escalating through sudo. Reports success only.

    When already running as root the tree is removed directly.
    """
    if is_root():
        try:
            shutil.rmtree(path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            log.warning("Could not remove %s: %s", path, exc)
            return False
        return True

    try:
        run_privileged_remove(path, password)
    except PrivilegeError as exc:
        mode = "with password" if password is not None else "passwordless"
        log.info("Privileged removal of %s (%s) failed: %s", path, mode, exc)
        return False
    return True
