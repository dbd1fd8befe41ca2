"""Shared utilities for all CLI command modules.

Provides the Rich console instance, the per-invocation session object
and helpers to report errors and resolve partial tags.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass

from rich.console import Console

from ..context import Context
from ..errors import BitferryError

console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger("bitferry.cli")


@dataclass
class Session:
    """State shared between the main group and its commands."""

    context: Context
    quiet: bool = False
    failure: bool = False


def fail(exc: BitferryError) -> None:
    """Report a hard error and stop without committing."""
    err_console.print(f"[bold red]error:[/] {exc}")
    sys.exit(1)


def select(registry, partials: tuple[str, ...], among=None) -> list:
    """Resolve each partial tag to exactly one entity.

    Partial tags matching nothing are warned about and skipped.
    """
    found = []
    for partial in partials:
        try:
            entity = registry.match(partial, among=among)
        except BitferryError as exc:
            fail(exc)
        if entity is None:
            err_console.print(f"[yellow]no {registry.kind} matching (partial) tag {partial}[/]")
            continue
        found.append(entity)
    return found
