"""
Task endpoints: where a task reads from or writes to.

Local:    an absolute filesystem path outside of any managed volume.
Volume:   a path relative to the root of a tagged bitferry volume.
Remote:   an opaque rclone ``remote:path`` string passed through as is.

Endpoints are values. A volume endpoint keeps only the volume tag and
looks the volume up in its registry whenever it is asked about it, so
an endpoint whose volume is not mounted simply reports not intact.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Optional

from .models import (
    LocalEndpointRecord,
    RemoteEndpointRecord,
    VolumeEndpointRecord,
)

if TYPE_CHECKING:
    from .registry import VolumeRegistry
    from .volume import Volume


class Endpoint(ABC):
    """Abstract task endpoint."""

    @property
    @abstractmethod
    def intact(self) -> bool:
        """Whether the endpoint currently resolves to a usable location."""

    @property
    @abstractmethod
    def generation(self) -> int:
        """Generation of the volume behind the endpoint, 0 if none."""

    @abstractmethod
    def refers(self, volume: Volume) -> bool:
        """Whether the endpoint lives in the given volume."""

    @abstractmethod
    def to_record(self):
        """Build the persisted endpoint record."""

    @abstractmethod
    def location(self) -> str:
        """Concrete location handed to external tools."""

    @staticmethod
    def restore(record, volumes: VolumeRegistry) -> Endpoint:
        """Reconstruct an endpoint from its persisted record."""
        if isinstance(record, VolumeEndpointRecord):
            return VolumeEndpoint(volumes, record.volume, record.path)
        if isinstance(record, RemoteEndpointRecord):
            return RemoteEndpoint(record.url)
        return LocalEndpoint(record.root)


class LocalEndpoint(Endpoint):
    """A bare local path."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    @property
    def intact(self) -> bool:
        return True

    @property
    def generation(self) -> int:
        return 0

    def refers(self, volume: Volume) -> bool:
        return False

    def to_record(self) -> LocalEndpointRecord:
        return LocalEndpointRecord(root=str(self.root))

    def location(self) -> str:
        return str(self.root)

    def __eq__(self, other) -> bool:
        return isinstance(other, LocalEndpoint) and other.root == self.root

    def __hash__(self) -> int:
        return hash(("local", self.root))

    def __repr__(self) -> str:
        return f"LocalEndpoint({str(self.root)!r})"

    def __str__(self) -> str:
        return f"local:{self.root}"


class VolumeEndpoint(Endpoint):
    """A path relative to the root of a bitferry volume."""

    def __init__(self, volumes: VolumeRegistry, volume_tag: str, path: str | PurePosixPath = ""):
        rel = PurePosixPath(str(path).replace("\\", "/"))
        if rel.is_absolute() or ".." in rel.parts:
            raise ValueError(f"volume endpoint path must be relative: {path}")
        self.volumes = volumes
        self.volume_tag = volume_tag
        self.path = "" if str(rel) == "." else str(rel)

    @property
    def volume(self) -> Optional[Volume]:
        """The registered volume bound to this endpoint, if any."""
        return self.volumes.by_tag(self.volume_tag)

    @property
    def intact(self) -> bool:
        volume = self.volume
        return volume is not None and volume.intact

    @property
    def generation(self) -> int:
        volume = self.volume
        return volume.generation if volume is not None else 0

    def refers(self, volume: Volume) -> bool:
        return volume.tag == self.volume_tag

    def to_record(self) -> VolumeEndpointRecord:
        return VolumeEndpointRecord(volume=self.volume_tag, path=self.path)

    def location(self) -> str:
        volume = self.volume
        if volume is None or not volume.intact:
            raise LookupError(f"volume {self.volume_tag} is not available")
        return str(volume.root.joinpath(self.path)) if self.path else str(volume.root)

    def __eq__(self, other) -> bool:
        return (
            isinstance(other, VolumeEndpoint)
            and other.volume_tag == self.volume_tag
            and other.path == self.path
        )

    def __hash__(self) -> int:
        return hash(("bitferry", self.volume_tag, self.path))

    def __repr__(self) -> str:
        return f"VolumeEndpoint({self.volume_tag!r}, {self.path!r})"

    def __str__(self) -> str:
        return f":{self.volume_tag}:{self.path}"


class RemoteEndpoint(Endpoint):
    """An rclone remote reference, never inspected."""

    def __init__(self, url: str):
        self.url = url

    @property
    def intact(self) -> bool:
        return True

    @property
    def generation(self) -> int:
        return 0

    def refers(self, volume: Volume) -> bool:
        return False

    def to_record(self) -> RemoteEndpointRecord:
        return RemoteEndpointRecord(url=self.url)

    def location(self) -> str:
        return self.url

    def __eq__(self, other) -> bool:
        return isinstance(other, RemoteEndpoint) and other.url == self.url

    def __hash__(self) -> int:
        return hash(("rclone", self.url))

    def __repr__(self) -> str:
        return f"RemoteEndpoint({self.url!r})"

    def __str__(self) -> str:
        return self.url
