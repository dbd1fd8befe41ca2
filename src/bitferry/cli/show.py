"""Status command: show (alias info)."""

from __future__ import annotations

import click
from rich.table import Table

from ._common import Session, console


def _table(*columns: str) -> Table:
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    for name in columns:
        table.add_column(name, style="cyan" if name == "Tag" else None)
    return table


def register_show_commands(main: click.Group) -> None:
    """Register the show command (and its info alias)."""

    @main.command("show")
    @click.pass_obj
    def show(session: Session):
        """Show status information: volumes, intact and stale tasks."""
        context = session.context

        volumes = context.volumes.intact
        if volumes:
            table = _table("Tag", "Root")
            for volume in volumes:
                table.add_row(volume.tag, str(volume.root))
            console.print("\n[bold]# Intact volumes[/]\n")
            console.print(table)

        for title, tasks in (("Intact tasks", context.tasks.intact), ("Stale tasks", context.tasks.stale)):
            if not tasks:
                continue
            table = _table("Tag", "Task")
            for task in tasks:
                table.add_row(task.tag, task.describe())
            console.print(f"\n[bold]# {title}[/]\n")
            console.print(table)

        if not volumes and not context.tasks.live:
            console.print("[dim]No volumes or tasks found.[/]")

    main.add_command(show, "info")
