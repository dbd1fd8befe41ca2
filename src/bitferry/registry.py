"""
In-memory registries of volumes and tasks.

Each context owns one registry of each kind. Both support partial-tag
lookup, where every pattern is a regular expression searched in the
full tag; the volume registry also turns bare paths into endpoints.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Generic, Iterable, Iterator, Optional, TypeVar

from .endpoint import Endpoint, LocalEndpoint, RemoteEndpoint, VolumeEndpoint
from .errors import AmbiguityError, ConflictError, ResolutionError
from .tags import matches
from .task import Task
from .volume import Volume, canonical

logger = logging.getLogger("bitferry.registry")

T = TypeVar("T", Task, Volume)

# `:tag:path` binds straight to a volume by (partial) tag
_TAGGED = re.compile(r":([^:/\\]+):(.*)", re.DOTALL)
# `remote:path` for rclone remotes; one-letter names are drive letters
_REMOTE = re.compile(r"[\w.+@-][\w.+@ -]*[\w.+@-]:")


class Registry(Generic[T]):
    """Keyed collection of entities with partial-tag lookup."""

    kind = "entity"

    def __init__(self) -> None:
        self._entries: dict[str, T] = {}

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def registered(self) -> list[T]:
        return list(self._entries.values())

    def reset(self) -> None:
        self._entries.clear()

    def lookup(self, *patterns: str, among: Optional[Iterable[T]] = None) -> list[T]:
        """Entities whose tag matches at least one pattern.

        Args:
            patterns: Partial tags (regular expressions).
            among: Candidates to search, defaults to every registered entity.
        """
        candidates = self.registered if among is None else list(among)
        return [e for e in candidates if matches(e.tag, patterns)]

    def match(self, pattern: str, among: Optional[Iterable[T]] = None) -> Optional[T]:
        """The single entity matching a partial tag.

        Returns:
            The entity, or None (with a warning) when nothing matches.

        Raises:
            AmbiguityError: If more than one entity matches.
        """
        found = self.lookup(pattern, among=among)
        if not found:
            logger.warning("No %s matching (partial) tag %s", self.kind, pattern)
            return None
        if len(found) > 1:
            raise AmbiguityError(pattern, [e.tag for e in found], self.kind)
        return found[0]


class TaskRegistry(Registry[Task]):
    """Tasks keyed by tag."""

    kind = "task"

    def get(self, tag: str) -> Optional[Task]:
        return self._entries.get(tag)

    def register(self, task: Task, restored: bool = False) -> Task:
        """Add a task.

        A restored task may already be registered through another volume
        declaring it; the copy with the newer timestamp wins and ties keep
        the earlier registration.

        Returns:
            The task now registered under the tag.

        Raises:
            ConflictError: If a fresh task collides with a registered tag.
        """
        existing = self._entries.get(task.tag)
        if existing is None or existing is task:
            self._entries[task.tag] = task
            return task
        if not restored:
            raise ConflictError(f"task tag collision: {task.tag}")
        if task.modified > existing.modified:
            logger.debug("Task %s superseded by a newer declaration", task.tag)
            self._entries[task.tag] = task
            return task
        return existing

    def unregister(self, task: Task) -> None:
        self._entries.pop(task.tag, None)

    @property
    def live(self) -> list[Task]:
        return [t for t in self if t.live]

    @property
    def intact(self) -> list[Task]:
        return [t for t in self if t.intact]

    @property
    def stale(self) -> list[Task]:
        """Live tasks with at least one leg that does not resolve."""
        return [t for t in self if t.live and not t.intact]


class VolumeRegistry(Registry[Volume]):
    """Volumes keyed by canonical root."""

    kind = "volume"

    def register(self, volume: Volume) -> Volume:
        """Add a volume.

        Raises:
            ConflictError: If the root is already managed or the tag is taken.
        """
        if self.at(volume.root) is not None:
            raise ConflictError(f"volume already registered at {volume.root}")
        if self.by_tag(volume.tag) is not None:
            raise ConflictError(f"volume tag collision: {volume.tag}")
        self._entries[str(volume.root)] = volume
        return volume

    def unregister(self, volume: Volume) -> None:
        self._entries.pop(str(volume.root), None)

    def by_tag(self, tag: str) -> Optional[Volume]:
        for volume in self._entries.values():
            if volume.tag == tag:
                return volume
        return None

    def at(self, root: str | Path) -> Optional[Volume]:
        """The volume registered at a root, if any."""
        return self._entries.get(str(canonical(root)))

    @property
    def intact(self) -> list[Volume]:
        return [v for v in self if v.intact]

    def endpoint(self, spec: str) -> Endpoint:
        """Decode a user supplied endpoint.

        ``local:path`` and ``:path`` give a local endpoint, ``:tag:path``
        binds to the intact volume matching the partial tag,
        ``remote:path`` passes through to rclone and anything else is a
        path resolved against the intact volumes.

        Raises:
            ResolutionError: If no volume matches the tag or encompasses the path.
            AmbiguityError: If several intact volumes match the tag.
        """
        if spec.startswith("local:"):
            return LocalEndpoint(canonical(spec[len("local:"):]))
        if spec.startswith(":"):
            tagged = _TAGGED.fullmatch(spec)
            if tagged is None:
                return LocalEndpoint(canonical(spec[1:]))
            pattern, path = tagged.groups()
            volume = self.match(pattern, among=self.intact)
            if volume is None:
                raise ResolutionError(f"no intact volume matching (partial) tag {pattern}")
            return VolumeEndpoint(self, volume.tag, path)
        if _REMOTE.match(spec):
            return RemoteEndpoint(spec)
        return self.resolve(spec)

    def resolve(self, path: str | Path) -> VolumeEndpoint:
        """Bind a path to the most specific intact volume encompassing it.

        Raises:
            ResolutionError: If no intact volume encompasses the path.
        """
        target = canonical(path)
        for volume in sorted(self.intact, key=lambda v: len(str(v.root)), reverse=True):
            try:
                rel = os.path.relpath(target, volume.root)
            except ValueError:
                continue
            if rel == os.curdir:
                return VolumeEndpoint(self, volume.tag, "")
            if rel != os.pardir and not rel.startswith(os.pardir + os.sep):
                return VolumeEndpoint(self, volume.tag, Path(rel).as_posix())
        raise ResolutionError(f"no volume encompasses path {target}")
