"""Error taxonomy shared by every bitferry module."""

from __future__ import annotations


class BitferryError(Exception):
    """Base class for all bitferry errors."""


class IntegrityError(BitferryError):
    """Raised when a volume metadata file is foreign or malformed."""


class ConflictError(BitferryError):
    """Raised when an operation would clobber or contradict existing state."""


class AmbiguityError(ConflictError):
    """Raised when a partial tag matches more than one entity."""

    def __init__(self, pattern: str, matches: list[str], kind: str = "entity"):
        self.pattern = pattern
        self.matches = matches
        super().__init__(
            f"multiple {kind}s matching (partial) tag {pattern}: {', '.join(matches)}"
        )


class ResolutionError(ConflictError):
    """Raised when a path or tag cannot be bound to an intact volume."""
