"""
restic-driven tasks: backup a directory into a repository and restore
it back.

The repository is always encrypted by restic itself; its password is
kept in the vault of the volume holding the directory.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from .endpoint import Endpoint
from .models import ResticTaskRecord
from .options import RESTIC_BACKUP_PROFILES, RESTIC_RESTORE_PROFILES, OptionSpec
from .task import Task

if TYPE_CHECKING:
    from .context import Context

logger = logging.getLogger("bitferry.restic")


class ResticTask(Task):
    """Common part of restic tasks."""

    LEGS = ("directory", "repository")

    def __init__(
        self,
        context: Context,
        directory: Endpoint,
        repository: Endpoint,
        *,
        format: bool = False,
        **kwargs,
    ):
        super().__init__(context, **kwargs)
        self.directory = directory
        self.repository = repository
        self.format = format

    @classmethod
    def from_record(cls, context: Context, record: ResticTaskRecord) -> ResticTask:
        volumes = context.volumes
        return cls(
            context,
            Endpoint.restore(record.directory, volumes),
            Endpoint.restore(record.repository, volumes),
            format=bool(record.format),
            tag=record.tag,
            modified=record.modified,
            include=record.include,
            exclude=record.exclude,
            process=OptionSpec.from_value(record.process),
        )

    def to_record(self) -> ResticTaskRecord:
        return ResticTaskRecord(
            operation=self.operation,
            directory=self.directory.to_record(),
            repository=self.repository.to_record(),
            format=self.format or None,
            **self._record_fields(),
        )

    @property
    def legs(self) -> tuple[Endpoint, Endpoint]:
        return self.directory, self.repository

    @property
    def decrypted(self) -> Optional[Endpoint]:
        return self.directory

    def environment(self) -> dict[str, str]:
        """Process environment carrying the revealed repository password."""
        return {"RESTIC_PASSWORD": self.context.obscurer.reveal(self.token())}

    def base(self) -> list[str]:
        return [self.context.config.restic, "--repo", self.repository.location()]


class Backup(ResticTask):
    """Snapshot the directory into the repository.

    Include patterns name the paths to back up relative to the
    directory; without them the whole directory is taken.
    """

    operation = "backup"
    PROFILES = RESTIC_BACKUP_PROFILES

    def arguments(self) -> list[str]:
        args = [*self.base(), "backup", *self.process_options]
        for pattern in self.exclude:
            args.extend(["--exclude", pattern])
        if self.context.simulate:
            args.append("--dry-run")
        args.extend(self.include or ["."])
        return args

    def _process(self) -> bool:
        env = self.environment()
        executor = self.context.executor
        if self.format and not executor.run([*self.base(), "cat", "config"], env=env, quiet=True):
            if self.context.simulate:
                logger.info("Would initialize restic repository %s", self.repository.location())
            elif not executor.run([*self.base(), "init"], env=env):
                return False
        return executor.run(self.arguments(), env=env, cwd=self.directory.location())


class Restore(ResticTask):
    """Restore the latest snapshot from the repository into the directory."""

    operation = "restore"
    PROFILES = RESTIC_RESTORE_PROFILES

    def arguments(self) -> list[str]:
        args = [*self.base(), "restore", "latest", "--target", self.directory.location(), *self.process_options]
        for pattern in self.include:
            args.extend(["--include", pattern])
        for pattern in self.exclude:
            args.extend(["--exclude", pattern])
        if self.context.simulate:
            args.append("--dry-run")
        return args

    def _process(self) -> bool:
        return self.context.executor.run(self.arguments(), env=self.environment())

    def describe(self) -> str:
        return f"{self.operation} {self.repository} -> {self.directory}"
