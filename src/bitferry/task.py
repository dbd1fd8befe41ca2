"""
Tasks: configured operations between two endpoints.

A task is declared inside the metadata of every volume one of its
legs lives in. Its generation is what tells those volumes that their
snapshot went stale:

    touch      generation = max(leg generations) + 1
    restore    generation = min(leg generations)

A touched task therefore outranks every volume it refers to, which
marks each of them modified until their next commit.

Concrete kinds register themselves in ``ROUTE`` under the value of the
``operation`` field they persist.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, ClassVar, Iterable, Optional

from .endpoint import Endpoint, VolumeEndpoint
from .errors import BitferryError, ConflictError, IntegrityError, ResolutionError
from .options import OptionSpec
from .tags import new_tag

if TYPE_CHECKING:
    from .context import Context
    from .volume import Volume

logger = logging.getLogger("bitferry.task")

ROUTE: dict[str, type[Task]] = {}


class TaskState(str, Enum):
    """Task lifecycle states."""

    PRISTINE = "pristine"
    INTACT = "intact"
    REMOVING = "removing"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Task(ABC):
    """Base class of every task kind.

    Subclasses name their two legs through ``LEGS`` and the persisted
    discriminator through ``operation``.
    """

    operation: ClassVar[str] = ""
    LEGS: ClassVar[tuple[str, str]] = ("source", "destination")
    PROFILES: ClassVar[dict[str, list[str]]] = {"default": []}

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if "operation" in cls.__dict__:
            ROUTE[cls.operation] = cls

    def __init__(
        self,
        context: Context,
        *,
        tag: Optional[str] = None,
        modified: Optional[datetime] = None,
        include: Optional[Iterable[str]] = None,
        exclude: Optional[Iterable[str]] = None,
        process: Optional[OptionSpec] = None,
    ):
        self.context = context
        self.tag = tag or new_tag()
        self.modified = modified or _now()
        self.include = list(include or [])
        self.exclude = list(exclude or [])
        self.process_spec = process or OptionSpec()
        self.process_options = self.process_spec.resolve(self.PROFILES)
        self.generation = 0
        self.state = TaskState.PRISTINE

    # -- construction -----------------------------------------------------

    @classmethod
    def new(cls, context: Context, *args, password: Optional[str] = None, **kwargs) -> Task:
        """Create, touch and register a fresh task.

        Args:
            context: Owning context.
            password: Secret for encryption-capable tasks, obscured and
                stored in the vault of the decrypted leg's volume.

        Raises:
            ConflictError: If the tag is taken, or the task needs a secret
                but its decrypted leg is not a volume endpoint.
        """
        task = cls(context, *args, **kwargs)
        if context.tasks.get(task.tag) is not None:
            raise ConflictError(f"task tag collision: {task.tag}")
        if task.decrypted is not None:
            task._install_secret(password)
        context.tasks.register(task)
        task.touch()
        logger.info("Created %s task %s", task.operation, task.tag)
        return task

    @staticmethod
    def restore(context: Context, record) -> Task:
        """Reconstruct an intact, not yet registered task from its persisted record.

        Raises:
            IntegrityError: If the record does not describe a valid task.
        """
        kind = ROUTE.get(record.operation)
        if kind is None:
            raise IntegrityError(f"unknown task operation {record.operation!r}")
        try:
            task = kind.from_record(context, record)
        except (ValueError, ConflictError) as exc:
            raise IntegrityError(f"malformed task {record.tag}: {exc}") from exc
        task.state = TaskState.INTACT
        return task

    @classmethod
    @abstractmethod
    def from_record(cls, context: Context, record) -> Task:
        """Build an unregistered task of this kind from its record."""

    def _record_fields(self) -> dict:
        return dict(
            tag=self.tag,
            modified=self.modified,
            include=self.include or None,
            exclude=self.exclude or None,
            process=self.process_spec.to_value(),
        )

    @abstractmethod
    def to_record(self):
        """Build the persisted task record."""

    # -- legs -------------------------------------------------------------

    @property
    @abstractmethod
    def legs(self) -> tuple[Endpoint, Endpoint]:
        """Both endpoints, in ``LEGS`` order."""

    @property
    def decrypted(self) -> Optional[Endpoint]:
        """The leg holding plaintext data, for encryption-capable tasks."""
        return None

    def refers(self, volume: Volume) -> bool:
        return any(leg.refers(volume) for leg in self.legs)

    # -- state ------------------------------------------------------------

    @property
    def live(self) -> bool:
        return self.state != TaskState.REMOVING

    @property
    def intact(self) -> bool:
        return self.live and all(leg.intact for leg in self.legs)

    def touch(self) -> None:
        """Outrank every volume the task refers to."""
        self.generation = max(leg.generation for leg in self.legs) + 1
        self.modified = _now()

    def untouch(self) -> None:
        """Settle below every volume the task refers to."""
        self.generation = min(leg.generation for leg in self.legs)

    def delete(self) -> None:
        """Mark the task for removal at the next commit."""
        self.state = TaskState.REMOVING
        self.touch()
        logger.info("Task %s marked for deletion", self.tag)

    def commit(self) -> None:
        """Settle the lifecycle once every referring volume persisted it."""
        pending = [v.tag for v in self.context.volumes if self.refers(v) and v.modified]
        if pending:
            logger.debug("Task %s still pending in %s", self.tag, ", ".join(pending))
            return
        if self.state == TaskState.REMOVING:
            self.context.tasks.unregister(self)
            logger.debug("Task %s reclaimed", self.tag)
        elif self.state == TaskState.PRISTINE:
            self.state = TaskState.INTACT

    # -- secrets ----------------------------------------------------------

    def _secret_volume(self) -> Volume:
        leg = self.decrypted
        if not isinstance(leg, VolumeEndpoint):
            raise ConflictError(
                f"decrypted endpoint {leg} of a {self.operation} task must reside in a volume"
            )
        volume = leg.volume
        if volume is None or not volume.intact:
            raise ResolutionError(f"volume {leg.volume_tag} is not available")
        return volume

    def _install_secret(self, password: Optional[str]) -> None:
        volume = self._secret_volume()
        if password is None:
            raise ConflictError(f"{self.operation} task requires a password")
        volume.vault[self.tag] = self.context.obscurer.obscure(password)
        logger.debug("Secret of task %s stored in volume %s", self.tag, volume.tag)

    def token(self) -> str:
        """Obscured secret of the task, looked up in its decrypted volume's vault."""
        volume = self._secret_volume()
        try:
            return volume.vault[self.tag]
        except KeyError:
            raise ResolutionError(
                f"no secret for task {self.tag} in volume {volume.tag}"
            ) from None

    # -- processing -------------------------------------------------------

    def process(self) -> bool:
        """Run the task through its external tool.

        Failures are logged and reported as False so that a batch of
        tasks keeps going.
        """
        logger.info("Processing %s task %s", self.operation, self.tag)
        try:
            result = self._process()
        except (BitferryError, LookupError, OSError) as exc:
            logger.error("Task %s failed: %s", self.tag, exc)
            return False
        if not result:
            logger.error("Task %s failed", self.tag)
        return result

    @abstractmethod
    def _process(self) -> bool:
        """Invoke the external tool."""

    def filters(self) -> list[str]:
        """rclone-style filter arguments for include/exclude patterns."""
        args: list[str] = []
        for pattern in self.exclude:
            args.extend(["--filter", f"- {pattern}"])
        for pattern in self.include:
            args.extend(["--filter", f"+ {pattern}"])
        if self.include:
            args.extend(["--filter", "- **"])
        return args

    def describe(self) -> str:
        """One-line human readable summary."""
        first, second = self.legs
        return f"{self.operation} {first} -> {second}"

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.tag} {self.state.value}>"
