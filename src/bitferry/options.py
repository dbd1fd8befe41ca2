"""
Option bags for external tool invocations.

A task may leave its tool options unset (use the default profile),
disable them altogether, pick a named profile or carry a literal
option list. The choice is an explicit tagged value resolved once,
when the task is constructed.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .errors import ConflictError
from .models import OptionValue

RCLONE_PROCESS_PROFILES: dict[str, list[str]] = {
    "default": ["--metadata"],
    "checksum": ["--metadata", "--checksum"],
    "fast": ["--size-only", "--fast-list"],
}

RESTIC_BACKUP_PROFILES: dict[str, list[str]] = {
    "default": [],
    "extended": ["--one-file-system", "--exclude-caches"],
}

RESTIC_RESTORE_PROFILES: dict[str, list[str]] = {
    "default": [],
    "verify": ["--verify"],
}


class OptionKind(str, Enum):
    """How a task obtains its tool options."""

    NONE = "none"
    DISABLED = "disabled"
    NAMED = "named"
    LITERAL = "literal"


@dataclass(frozen=True)
class OptionSpec:
    """Tagged option-bag configuration value."""

    kind: OptionKind = OptionKind.NONE
    profile: Optional[str] = None
    options: tuple[str, ...] = ()

    @classmethod
    def named(cls, profile: str) -> OptionSpec:
        return cls(OptionKind.NAMED, profile=profile)

    @classmethod
    def literal(cls, options: list[str]) -> OptionSpec:
        return cls(OptionKind.LITERAL, options=tuple(options))

    @classmethod
    def disabled(cls) -> OptionSpec:
        return cls(OptionKind.DISABLED)

    @classmethod
    def from_value(cls, value: OptionValue) -> OptionSpec:
        """Decode the persisted form of an option bag."""
        if value is None or value is True:
            return cls()
        if value is False:
            return cls.disabled()
        if isinstance(value, str):
            return cls.named(value)
        return cls.literal(list(value))

    @classmethod
    def from_cli(cls, text: Optional[str]) -> OptionSpec:
        """Decode a command line argument.

        ``-`` disables the options, text starting with a dash is a
        literal option list, anything else names a profile.
        """
        if text is None:
            return cls()
        if text == "-":
            return cls.disabled()
        if text.startswith("-"):
            return cls.literal(shlex.split(text))
        return cls.named(text)

    def to_value(self) -> OptionValue:
        """Encode into the persisted form."""
        if self.kind == OptionKind.DISABLED:
            return False
        if self.kind == OptionKind.NAMED:
            return self.profile
        if self.kind == OptionKind.LITERAL:
            return list(self.options)
        return None

    def resolve(self, profiles: dict[str, list[str]], default: str = "default") -> list[str]:
        """Expand into a concrete option list.

        Args:
            profiles: Named profile table for the tool and phase.
            default: Profile used when nothing was specified.

        Returns:
            A fresh list of command line options.

        Raises:
            ConflictError: If a named profile does not exist.
        """
        if self.kind == OptionKind.DISABLED:
            return []
        if self.kind == OptionKind.LITERAL:
            return list(self.options)
        name = self.profile if self.kind == OptionKind.NAMED else default
        try:
            return list(profiles[name])
        except KeyError:
            raise ConflictError(
                f"unknown option profile {name!r} (expected one of {', '.join(profiles)})"
            ) from None
