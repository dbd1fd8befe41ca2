"""Entity deletion commands: delete volume, delete task."""

from __future__ import annotations

import click

from ._common import Session, console, select


def register_delete_commands(main: click.Group) -> None:
    """Register the delete command group (and its remove alias)."""

    @main.group("delete")
    def delete():
        """Delete entity (volume, task)."""

    @delete.command("volume")
    @click.argument("tags", nargs=-1, required=True)
    @click.option("--wipe", is_flag=True, help="Wipe entire volume directory.")
    @click.pass_obj
    def delete_volume(session: Session, tags: tuple[str, ...], wipe: bool):
        """Delete the volumes matching (partial) TAGS."""
        volumes = session.context.volumes
        for volume in select(volumes, tags, among=volumes.intact):
            volume.delete(wipe=wipe)
            if not session.quiet:
                console.print(f"[red]volume[/] [cyan]{volume.tag}[/] {volume.root}")

    @delete.command("task")
    @click.argument("tags", nargs=-1, required=True)
    @click.pass_obj
    def delete_task(session: Session, tags: tuple[str, ...]):
        """Delete the tasks matching (partial) TAGS."""
        tasks = session.context.tasks
        for task in select(tasks, tags, among=tasks.live):
            task.delete()
            if not session.quiet:
                console.print(f"[red]task[/] [cyan]{task.tag}[/] {task.describe()}")

    main.add_command(delete, "remove")
