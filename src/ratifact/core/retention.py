"""Opportunistic pruning of artifacts past the retention threshold."""

from __future__ import annotations

import logging
import shutil

from ratifact.core.scanner import is_excluded
from ratifact.storage import ArtifactStore, StoreError

log = logging.getLogger(__name__)


def run_retention_cleanup(
    store: ArtifactStore,
    retention_days: int,
    excluded_paths: list[str] | None = None,
) -> list[str]:
    """Delete artifacts not built within *retention_days*, on disk and in the store.

    Runs unsynchronized with the session: the artifact list on screen
    only catches up on the next history reload. A failing query aborts
    quietly, since the cleanup runs again after the next scan.

    Excluded paths are never removed from disk; only their stale records
    are pruned.

    Returns:
        The artifact paths that were removed from disk.
    """
    try:
        old_paths = store.old_artifact_paths(retention_days)
    except StoreError as e:
        log.info("Retention cleanup skipped: %s", e)
        return []

    removed = []
    for path in old_paths:
        if is_excluded(path, excluded_paths or []):
            log.info("Keeping excluded %s on disk", path)
            continue
        log.info("Removing %s (not built in %d days)", path, retention_days)
        shutil.rmtree(path, ignore_errors=True)
        removed.append(path)

    try:
        pruned = store.delete_old_builds(retention_days)
    except StoreError as e:
        log.warning("Could not prune old build records: %s", e)
    else:
        log.debug("Pruned %d build records older than %d days", pruned, retention_days)
    return removed
