"""
rclone-driven tasks: copy, update and synchronize.

    copy          rclone copy             never deletes in destination
    update        rclone copy --update    skips newer destination files
    synchronize   rclone sync             mirrors source into destination

An encrypting task wraps its encrypted leg into an on-the-fly rclone
crypt remote. The obscured password is kept in the vault of the volume
holding the plaintext side, so it travels with the data it protects.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar, Optional

from .endpoint import Endpoint
from .models import EncryptionRecord, RcloneTaskRecord
from .options import RCLONE_PROCESS_PROFILES, OptionSpec
from .task import Task

if TYPE_CHECKING:
    from .context import Context

logger = logging.getLogger("bitferry.rclone")

NAME_ENCODERS = ("base32", "base64", "base32768")
NAME_TRANSFORMERS = ("standard", "obfuscate")


def _quote(value: str) -> str:
    """Quote a value for an rclone connection string."""
    return '"' + value.replace('"', '""') + '"'


@dataclass(frozen=True)
class Encryption:
    """rclone crypt settings of a task.

    Attributes:
        mode: ``encrypt`` (plaintext source) or ``decrypt`` (plaintext
            destination).
        encoder: File name encoding of the crypt remote.
        transformer: File name encryption, or None to keep names intact.
    """

    mode: str
    encoder: str = "base32"
    transformer: Optional[str] = "standard"

    def __post_init__(self):
        if self.mode not in ("encrypt", "decrypt"):
            raise ValueError(f"unknown encryption mode {self.mode!r}")
        if self.encoder not in NAME_ENCODERS:
            raise ValueError(f"unknown file name encoder {self.encoder!r}")
        if self.transformer is not None and self.transformer not in NAME_TRANSFORMERS:
            raise ValueError(f"unknown file name transformer {self.transformer!r}")

    @classmethod
    def from_record(cls, record: Optional[EncryptionRecord]) -> Optional[Encryption]:
        if record is None:
            return None
        transformer = None if record.transformer == "off" else record.transformer
        return cls(record.mode, record.encoder, transformer)

    def to_record(self) -> EncryptionRecord:
        return EncryptionRecord(mode=self.mode, encoder=self.encoder, transformer=self.transformer or "off")

    def remote(self, location: str, token: str) -> str:
        """Connection string of a crypt remote layered over a location."""
        options = [
            f"remote={_quote(location)}",
            f"password={token}",
            f"filename_encoding={self.encoder}",
            f"filename_encryption={self.transformer or 'off'}",
        ]
        if self.transformer is None:
            options.append("directory_name_encryption=false")
        return f":crypt,{','.join(options)}:"


class RcloneTask(Task):
    """Common part of rclone tasks."""

    LEGS = ("source", "destination")
    PROFILES = RCLONE_PROCESS_PROFILES
    COMMAND: ClassVar[list[str]] = []

    def __init__(
        self,
        context: Context,
        source: Endpoint,
        destination: Endpoint,
        *,
        encryption: Optional[Encryption] = None,
        **kwargs,
    ):
        super().__init__(context, **kwargs)
        self.source = source
        self.destination = destination
        self.encryption = encryption

    @classmethod
    def from_record(cls, context: Context, record: RcloneTaskRecord) -> RcloneTask:
        volumes = context.volumes
        return cls(
            context,
            Endpoint.restore(record.source, volumes),
            Endpoint.restore(record.destination, volumes),
            encryption=Encryption.from_record(record.encryption),
            tag=record.tag,
            modified=record.modified,
            include=record.include,
            exclude=record.exclude,
            process=OptionSpec.from_value(record.process),
        )

    def to_record(self) -> RcloneTaskRecord:
        return RcloneTaskRecord(
            operation=self.operation,
            source=self.source.to_record(),
            destination=self.destination.to_record(),
            encryption=self.encryption.to_record() if self.encryption else None,
            **self._record_fields(),
        )

    @property
    def legs(self) -> tuple[Endpoint, Endpoint]:
        return self.source, self.destination

    @property
    def decrypted(self) -> Optional[Endpoint]:
        if self.encryption is None:
            return None
        return self.source if self.encryption.mode == "encrypt" else self.destination

    def arguments(self) -> list[str]:
        """Full rclone command line."""
        source = self.source.location()
        destination = self.destination.location()
        if self.encryption is not None:
            token = self.token()
            if self.encryption.mode == "encrypt":
                destination = self.encryption.remote(destination, token)
            else:
                source = self.encryption.remote(source, token)
        args = [self.context.config.rclone, *self.COMMAND, *self.process_options, *self.filters()]
        if self.context.simulate:
            args.append("--dry-run")
        args.extend([source, destination])
        return args

    def _process(self) -> bool:
        return self.context.executor.run(self.arguments())

    def describe(self) -> str:
        text = super().describe()
        if self.encryption is not None:
            text += f" ({self.encryption.mode})"
        return text


class Copy(RcloneTask):
    operation = "copy"
    COMMAND = ["copy"]


class Update(RcloneTask):
    operation = "update"
    COMMAND = ["copy", "--update"]


class Synchronize(RcloneTask):
    operation = "synchronize"
    COMMAND = ["sync"]
