"""
Bitferry CLI: the command line front end.

Every invocation restores volumes and tasks first and commits them
afterwards, so each command only has to manipulate the in-memory
registries. Command groups live in their own modules and are attached
to the main group through register functions.

Entry point: bitferry.cli:main
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from .. import __version__
from ..config import load_config
from ..context import Context
from ._common import Session, err_console


@click.group()
@click.version_option(version=__version__, prog_name="bitferry")
@click.option("--quiet", "-q", is_flag=True, help="Be as quiet as possible.")
@click.option("--verbose", "-v", is_flag=True, help="Be more verbose.")
@click.option("--debug", "-d", is_flag=True, help="Debug mode with lots of information.")
@click.option("--dry-run", "-n", "dry_run", is_flag=True, help="Simulation mode (make no on-disk changes).")
@click.option("--config", "config_path", default=None, type=click.Path(dir_okay=False), help="Configuration file.")
@click.pass_context
def main(ctx, quiet, verbose, debug, dry_run, config_path):
    """Bitferry: file synchronization/backup automation.

    Volumes are directories (usually on removable drives) carrying their
    own .bitferry metadata; tasks are rclone/restic operations between
    them.
    """
    level = logging.WARNING
    if verbose:
        level = logging.INFO
    if debug:
        level = logging.DEBUG
    if quiet:
        level = logging.ERROR
    logging.basicConfig(level=level, format="%(name)s: %(levelname)s: %(message)s")
    logging.getLogger("bitferry").setLevel(level)

    config = load_config(Path(config_path).expanduser() if config_path else None)
    session = Session(Context(config, simulate=dry_run), quiet=quiet)
    if not session.context.restore():
        session.failure = True
    ctx.obj = session


@main.result_callback()
@click.pass_obj
def finish(session: Session, result, **kwargs):
    """Commit whatever the command changed and report partial failures."""
    if not session.context.commit():
        session.failure = True
    if session.failure:
        err_console.print("[bold red]failure(s) reported[/]")
        sys.exit(1)


# ---------------------------------------------------------------------------
# Register all command groups/commands from modular files
# ---------------------------------------------------------------------------

from .show import register_show_commands
from .process import register_process_commands
from .create import register_create_commands
from .delete import register_delete_commands

register_show_commands(main)
register_process_commands(main)
register_create_commands(main)
register_delete_commands(main)
