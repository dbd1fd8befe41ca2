"""Task processing command."""

from __future__ import annotations

import click

from ._common import Session, console


def register_process_commands(main: click.Group) -> None:
    """Register the process command."""

    @main.command("process")
    @click.argument("tags", nargs=-1)
    @click.pass_obj
    def process(session: Session, tags: tuple[str, ...]):
        """Process intact tasks, optionally only those matching (partial) TAGS.

        \b
        Examples:

            bitferry process

            bitferry -n process 3fa0 b81c
        """

        def report(total: int, processed: int, failed: int) -> None:
            if not session.quiet:
                colour = "red" if failed else "green"
                console.print(f"  [{colour}]{processed}/{total}[/] task(s) processed, {failed} failed")

        if not session.context.process(*tags, progress=report):
            session.failure = True
