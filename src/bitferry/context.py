"""
The bitferry context: registries plus the restore/commit/process cycle.

    context.restore()   scan search paths and mounts, load volumes + tasks
    ...                 create / delete volumes and tasks
    context.commit()    persist every modified volume

Failures are isolated per volume (restore, commit) and per task
(process); each phase reports an aggregate success flag and lets the
caller decide what a partial failure means.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from . import rclone, restic  # noqa: F401  (task kinds register on import)
from .config import BitferryConfig
from .discovery import discover_mounts
from .endpoint import Endpoint
from .errors import BitferryError
from .executor import Executor
from .obscure import RcloneObscurer
from .registry import TaskRegistry, VolumeRegistry
from .volume import STORAGE, Volume, canonical

logger = logging.getLogger("bitferry.context")

ProgressCallback = Callable[[int, int, int], None]


class Context:
    """Owns the volume and task registries of one bitferry session.

    Args:
        config: Configuration, defaults to built-in defaults.
        simulate: Make no on-disk changes and run tools in dry-run mode.
        executor: External tool runner.
        obscurer: Secret obscure/reveal primitive.
        mounts: Mount discovery function.
    """

    def __init__(
        self,
        config: Optional[BitferryConfig] = None,
        *,
        simulate: bool = False,
        executor=None,
        obscurer=None,
        mounts: Optional[Callable[[], list[Path]]] = None,
    ):
        self.config = config or BitferryConfig()
        self.simulate = simulate
        self.executor = executor or Executor()
        self.obscurer = obscurer or RcloneObscurer(self.config.rclone)
        self.mounts = mounts or discover_mounts
        self.volumes = VolumeRegistry()
        self.tasks = TaskRegistry()

    def reset(self) -> None:
        self.volumes.reset()
        self.tasks.reset()

    def roots(self) -> list[Path]:
        """Candidate volume roots: configured search paths plus mount points."""
        candidates = list(self.config.search_paths)
        if self.config.scan_mounts:
            candidates.extend(self.mounts())
        return list(dict.fromkeys(canonical(p) for p in candidates))

    def restore(self) -> bool:
        """Reload every volume (and its tasks) reachable from the candidate roots.

        Returns:
            False if any volume failed to restore.
        """
        logger.info("Restore phase")
        self.reset()
        result = True
        for root in self.roots():
            if not (root / STORAGE).is_file():
                continue
            try:
                Volume.restore(self, root)
            except (BitferryError, OSError) as exc:
                logger.error("Cannot restore volume at %s: %s", root, exc)
                result = False
        logger.info("Restore %s", "successful" if result else "failure(s) reported")
        return result

    def commit(self) -> bool:
        """Persist every modified volume, then settle task lifecycles.

        A volume failing to commit does not keep the others from
        committing; it stays modified for a later attempt.

        Returns:
            False if any volume failed to commit.
        """
        logger.info("Commit phase")
        result = True
        for volume in self.volumes:
            try:
                volume.commit()
            except (BitferryError, OSError) as exc:
                logger.error("Cannot commit volume %s: %s", volume.tag, exc)
                result = False
        for task in self.tasks:
            task.commit()
        logger.info("Commit %s", "successful" if result else "failure(s) reported")
        return result

    def process(self, *patterns: str, progress: Optional[ProgressCallback] = None) -> bool:
        """Process intact tasks one after another.

        Args:
            patterns: Partial tags restricting the tasks to process;
                every intact task when empty.
            progress: Called as ``progress(total, processed, failed)``
                after each task.

        Returns:
            False if any task failed.
        """
        if patterns:
            tasks = [t for t in self.tasks.lookup(*patterns) if t.intact]
            if not tasks:
                logger.warning("No intact task matching (partial) tags %s", ", ".join(patterns))
        else:
            tasks = self.tasks.intact
        total, processed, failed = len(tasks), 0, 0
        for task in tasks:
            if not task.process():
                failed += 1
            processed += 1
            if progress is not None:
                progress(total, processed, failed)
        logger.info("Processed %d task(s), %d failed", processed, failed)
        return failed == 0

    def endpoint(self, spec: str) -> Endpoint:
        """Decode a user supplied endpoint against the registered volumes."""
        return self.volumes.endpoint(spec)
