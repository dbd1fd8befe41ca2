"""Entity tags: short random handles for volumes and tasks."""

from __future__ import annotations

import re
import secrets
from typing import Iterable

TAG_WIDTH = 8


def new_tag() -> str:
    """Generate a fresh fixed-width hexadecimal tag."""
    return secrets.token_hex(TAG_WIDTH // 2)


def matches(tag: str, patterns: Iterable[str]) -> bool:
    """Check whether a tag matches at least one partial pattern.

    Each pattern is an independent regular expression searched
    anywhere in the full tag string.

    Args:
        tag: Full entity tag.
        patterns: Partial tags / regular expressions.

    Returns:
        True if any pattern matches.
    """
    return any(re.search(p, tag) for p in patterns)
