"""
Pydantic records of the on-disk volume metadata format.

One ``.bitferry`` JSON document lives in every volume root. It names
the volume, carries the full record of every live task touching the
volume and the vault of obscured task secrets.

Absent optional fields are omitted on write (``exclude_none``).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

FORMAT_VERSION = "0"


def _utc(value: datetime) -> datetime:
    """Timestamps without an offset are taken as UTC."""
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


# Option bag as persisted: omitted, false (disabled), profile name or literal list
OptionValue = Union[bool, str, list[str], None]


class LocalEndpointRecord(BaseModel):
    """A bare absolute filesystem path."""

    endpoint: Literal["local"] = "local"
    root: str


class VolumeEndpointRecord(BaseModel):
    """A path relative to the root of a tagged volume."""

    endpoint: Literal["bitferry"] = "bitferry"
    volume: str
    path: str = ""


class RemoteEndpointRecord(BaseModel):
    """An opaque rclone remote reference (``remote:path``)."""

    endpoint: Literal["rclone"] = "rclone"
    url: str


EndpointRecord = Annotated[
    Union[LocalEndpointRecord, VolumeEndpointRecord, RemoteEndpointRecord],
    Field(discriminator="endpoint"),
]


class EncryptionRecord(BaseModel):
    """rclone crypt settings. The secret itself lives in a volume vault."""

    mode: Literal["encrypt", "decrypt"]
    encoder: str = "base32"
    # `off` keeps file and directory names in plaintext
    transformer: str = "standard"


class TaskRecordBase(BaseModel):
    """Fields shared by every task record."""

    tag: str
    modified: datetime
    include: Optional[list[str]] = None
    exclude: Optional[list[str]] = None

    modified_utc = field_validator("modified")(_utc)


class RcloneTaskRecord(TaskRecordBase):
    """rclone copy/update/synchronize task."""

    operation: Literal["copy", "update", "synchronize"]
    source: EndpointRecord
    destination: EndpointRecord
    encryption: Optional[EncryptionRecord] = None
    process: OptionValue = None


class ResticTaskRecord(TaskRecordBase):
    """restic backup/restore task."""

    operation: Literal["backup", "restore"]
    directory: EndpointRecord
    repository: EndpointRecord
    format: Optional[bool] = None
    process: OptionValue = None


TaskRecord = Annotated[
    Union[RcloneTaskRecord, ResticTaskRecord],
    Field(discriminator="operation"),
]


class VolumeRecord(BaseModel):
    """The complete ``.bitferry`` document."""

    bitferry: Literal["0"] = FORMAT_VERSION
    tag: str
    modified: datetime
    tasks: Optional[list[TaskRecord]] = None
    vault: Optional[dict[str, str]] = None

    modified_utc = field_validator("modified")(_utc)
