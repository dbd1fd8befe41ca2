"""Entity creation commands: create volume, create task <kind>."""

from __future__ import annotations

from typing import Optional

import click

from ..errors import BitferryError
from ..options import OptionSpec
from ..rclone import NAME_ENCODERS, NAME_TRANSFORMERS, Copy, Encryption, Synchronize, Update
from ..restic import Backup, Restore
from ..volume import Volume
from ._common import Session, console, fail


def _password(password: Optional[str]) -> str:
    if password is not None:
        return password
    return click.prompt("Enter password", hide_input=True, confirmation_prompt="Repeat password")


def _filter_options(f):
    f = click.option("--include", "-i", multiple=True, help="Include pattern (repeatable).")(f)
    f = click.option("--exclude", "-x", multiple=True, help="Exclude pattern (repeatable).")(f)
    f = click.option("--process", "-p", "profile", default=None,
                     help="Option profile, literal options (starting with a dash) or - to disable.")(f)
    f = click.option("--password", envvar="BITFERRY_PASSWORD", default=None,
                     help="Encryption password (prompted for when needed).")(f)
    return f


def register_create_commands(main: click.Group) -> None:
    """Register the create command group (and its new alias)."""

    @main.group("create")
    def create():
        """Create entity (volume, task)."""

    @create.command("volume")
    @click.argument("root", type=click.Path(file_okay=False))
    @click.option("--force", is_flag=True, help="Allow overwriting existing volume storage.")
    @click.pass_obj
    def create_volume(session: Session, root: str, force: bool):
        """Create a new volume rooted at ROOT."""
        try:
            volume = Volume.new(session.context, root, overwrite=force)
        except BitferryError as exc:
            fail(exc)
        if not session.quiet:
            console.print(f"[green]volume[/] [cyan]{volume.tag}[/] {volume.root}")

    @create.group("task")
    def create_task():
        """Create a new task.

        \b
        Endpoints are either paths inside a volume, :TAG:PATH for a path
        inside the volume matching a (partial) tag, local:PATH for an
        unmanaged path or REMOTE:PATH for an rclone remote.
        """

    def rclone_command(name: str, kind, summary: str):
        @create_task.command(name, help=summary)
        @click.argument("source")
        @click.argument("destination")
        @click.option("--encrypt", "-e", "mode", flag_value="encrypt", help="Encrypt files in destination.")
        @click.option("--decrypt", "-d", "mode", flag_value="decrypt", help="Decrypt files from source.")
        @click.option("--encoder", "-c", type=click.Choice(NAME_ENCODERS), default="base32",
                      show_default=True, help="File name encoder.")
        @click.option("--unicode", "-u", is_flag=True, help="Unicode-aware file name encoding (overrides -c).")
        @click.option("--transformer", "-t", type=click.Choice([*NAME_TRANSFORMERS, "-"]), default="standard",
                      show_default=True, help="File name transformer (- to disable).")
        @_filter_options
        @click.pass_obj
        def command(session: Session, source, destination, mode, encoder, unicode, transformer,
                    include, exclude, profile, password):
            context = session.context
            try:
                encryption = None
                if mode is not None:
                    encryption = Encryption(
                        mode,
                        encoder="base32768" if unicode else encoder,
                        transformer=None if transformer == "-" else transformer,
                    )
                task = kind.new(
                    context,
                    context.endpoint(source),
                    context.endpoint(destination),
                    encryption=encryption,
                    include=include,
                    exclude=exclude,
                    process=OptionSpec.from_cli(profile),
                    password=_password(password) if encryption else None,
                )
            except BitferryError as exc:
                fail(exc)
            if not session.quiet:
                console.print(f"[green]task[/] [cyan]{task.tag}[/] {task.describe()}")

        return command

    rclone_command("copy", Copy, "Create a new copy task from SOURCE to DESTINATION.")
    rclone_command("update", Update, "Create a new update task from SOURCE to DESTINATION.")
    rclone_command("synchronize", Synchronize, "Create a new synchronization task from SOURCE to DESTINATION.")

    def restic_command(name: str, kind, summary: str):
        @create_task.command(name, help=summary)
        @click.argument("directory")
        @click.argument("repository")
        @click.option("--format", "-f", "format_", is_flag=True, help="Initialize the repository if missing.")
        @_filter_options
        @click.pass_obj
        def command(session: Session, directory, repository, format_, include, exclude, profile, password):
            context = session.context
            try:
                task = kind.new(
                    context,
                    context.endpoint(directory),
                    context.endpoint(repository),
                    format=format_,
                    include=include,
                    exclude=exclude,
                    process=OptionSpec.from_cli(profile),
                    password=_password(password),
                )
            except BitferryError as exc:
                fail(exc)
            if not session.quiet:
                console.print(f"[green]task[/] [cyan]{task.tag}[/] {task.describe()}")

        return command

    restic_command("backup", Backup, "Create a new restic backup task of DIRECTORY into REPOSITORY.")
    restic_command("restore", Restore, "Create a new restic restore task of REPOSITORY into DIRECTORY.")

    main.add_command(create, "new")
