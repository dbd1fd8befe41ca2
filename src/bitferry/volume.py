"""
Volumes: managed storage roots with their own metadata file.

Lifecycle:

    pristine --commit (format + store)--> intact --commit (store)--> intact
    pristine | intact --delete--> removing --commit (remove)--> unregistered

The metadata file ``.bitferry`` is never written in place: the new
content goes to ``.bitferry~`` first and is then renamed over the
canonical name, so readers see either the old or the new document.
"""

from __future__ import annotations

import logging
import os
import shutil
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from pydantic import ValidationError

from .errors import ConflictError, IntegrityError
from .models import VolumeRecord
from .tags import new_tag
from .task import Task

if TYPE_CHECKING:
    from .context import Context

logger = logging.getLogger("bitferry.volume")

STORAGE = ".bitferry"
STORAGE_ = ".bitferry~"


class VolumeState(str, Enum):
    """Volume lifecycle states."""

    PRISTINE = "pristine"
    INTACT = "intact"
    REMOVING = "removing"


def canonical(path: str | Path) -> Path:
    """Absolute, symlink-free form of a path (which need not exist)."""
    return Path(path).expanduser().resolve()


class Volume:
    """A storage root tracked by bitferry."""

    def __init__(
        self,
        context: Context,
        root: str | Path,
        *,
        tag: Optional[str] = None,
        modified: Optional[datetime] = None,
        vault: Optional[dict[str, str]] = None,
        state: VolumeState = VolumeState.PRISTINE,
        overwrite: bool = False,
    ):
        self.context = context
        self.root = canonical(root)
        self.tag = tag or new_tag()
        self.timestamp = modified or datetime.now(timezone.utc)
        self.vault: dict[str, str] = dict(vault or {})
        self.state = state
        self.overwrite = overwrite
        self.wipe = False
        self.generation = 0
        self._dirty = state == VolumeState.PRISTINE
        self._persisted = state == VolumeState.INTACT

    @classmethod
    def new(cls, context: Context, root: str | Path, overwrite: bool = False) -> Volume:
        """Create and register a fresh volume. Nothing touches the disk until commit.

        Args:
            context: Owning context.
            root: Volume root directory, created on commit if missing.
            overwrite: Allow replacing an existing metadata file.
        """
        volume = cls(context, root, overwrite=overwrite)
        context.volumes.register(volume)
        logger.info("Created volume %s at %s", volume.tag, volume.root)
        return volume

    @classmethod
    def restore(cls, context: Context, root: str | Path) -> Volume:
        """Restore a volume and every task it declares from its metadata file.

        Raises:
            IntegrityError: If the metadata file is not a bitferry volume
                document of a supported version.
            OSError: If the metadata file cannot be read.
        """
        storage = canonical(root) / STORAGE
        try:
            record = VolumeRecord.model_validate_json(storage.read_bytes())
        except ValidationError as exc:
            raise IntegrityError(f"wrong volume storage {storage}: {exc}") from exc
        volume = cls(
            context,
            root,
            tag=record.tag,
            modified=record.modified,
            vault=record.vault,
            state=VolumeState.INTACT,
        )
        tasks = [Task.restore(context, r) for r in record.tasks or []]
        context.volumes.register(volume)
        for task in tasks:
            context.tasks.register(task, restored=True).untouch()
        logger.info("Restored volume %s at %s", volume.tag, volume.root)
        return volume

    # -- views ------------------------------------------------------------

    @property
    def storage(self) -> Path:
        return self.root / STORAGE

    @property
    def storage_(self) -> Path:
        return self.root / STORAGE_

    @property
    def intact(self) -> bool:
        return self.state != VolumeState.REMOVING

    @property
    def tasks(self) -> list[Task]:
        """Registered tasks with a leg in this volume."""
        return [t for t in self.context.tasks if t.refers(self)]

    @property
    def live_tasks(self) -> list[Task]:
        return [t for t in self.tasks if t.live]

    @property
    def modified(self) -> bool:
        """Whether the persisted snapshot is stale."""
        return self._dirty or any(t.generation > self.generation for t in self.tasks)

    # -- mutation ---------------------------------------------------------

    def touch(self) -> None:
        """Advance the generation and propagate it to every referring task."""
        tasks = self.tasks
        self.generation = max([t.generation for t in tasks] + [self.generation]) + 1
        self._dirty = True
        for task in tasks:
            task.touch()

    def delete(self, wipe: bool = False) -> None:
        """Mark the volume for removal at the next commit.

        Args:
            wipe: Delete the whole content of the root directory rather
                than only the metadata file.
        """
        self.wipe = wipe
        self.state = VolumeState.REMOVING
        self.touch()
        logger.info("Volume %s marked for deletion", self.tag)

    # -- commit -----------------------------------------------------------

    def commit(self) -> bool:
        """Bring the on-disk state in line with the in-memory one.

        Returns:
            True if anything was (or, in simulation mode, would have been)
            written; False for an unmodified volume.

        Raises:
            ConflictError: If a pristine volume would clobber existing metadata.
            OSError: If the metadata cannot be written or removed.
        """
        if not self.modified:
            return False
        if self.state == VolumeState.PRISTINE:
            self._format()
            self._store()
            self.state = VolumeState.INTACT
            self._persisted = True
        elif self.state == VolumeState.INTACT:
            self._store()
        else:
            self._remove()
            self.context.volumes.unregister(self)
        self._committed()
        return True

    def _committed(self) -> None:
        self.generation = max([t.generation for t in self.tasks] + [self.generation])
        self._dirty = False

    def _format(self) -> None:
        if not self.overwrite and self.storage.exists():
            raise ConflictError(f"refuse to overwrite existing volume storage {self.storage}")
        if self.context.simulate:
            logger.info("Would format volume %s at %s", self.tag, self.root)
            return
        self.root.mkdir(parents=True, exist_ok=True)
        self.storage.unlink(missing_ok=True)
        self.storage_.unlink(missing_ok=True)
        logger.debug("Formatted volume %s", self.tag)

    def to_record(self) -> VolumeRecord:
        """Snapshot of the externally visible state, pruning stale vault entries."""
        self.timestamp = datetime.now(timezone.utc)
        live = self.live_tasks
        live_tags = {t.tag for t in self.context.tasks if t.live}
        self.vault = {tag: token for tag, token in self.vault.items() if tag in live_tags}
        return VolumeRecord(
            tag=self.tag,
            modified=self.timestamp,
            tasks=[t.to_record() for t in live] or None,
            vault=dict(self.vault) or None,
        )

    def _store(self) -> None:
        record = self.to_record()
        if self.context.simulate:
            logger.info("Would store volume %s to %s", self.tag, self.storage)
            return
        data = record.model_dump_json(indent=2, exclude_none=True)
        try:
            with open(self.storage_, "w", encoding="utf-8") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(self.storage_, self.storage)
        finally:
            self.storage_.unlink(missing_ok=True)
        logger.info("Stored volume %s to %s", self.tag, self.storage)

    def _remove(self) -> None:
        if self.context.simulate:
            logger.info("Would remove volume %s at %s", self.tag, self.root)
            return
        if not self._persisted:
            logger.debug("Volume %s was never stored, nothing to remove", self.tag)
            return
        if self.wipe:
            for entry in self.root.iterdir():
                if entry.is_dir() and not entry.is_symlink():
                    shutil.rmtree(entry)
                else:
                    entry.unlink()
            logger.info("Wiped volume %s at %s", self.tag, self.root)
        else:
            self.storage.unlink(missing_ok=True)
            self.storage_.unlink(missing_ok=True)
            logger.info("Removed volume %s storage from %s", self.tag, self.root)

    def __repr__(self) -> str:
        return f"<Volume {self.tag} {self.root} {self.state.value}>"
