"""autospec history command - list previously run commands."""

from typing import Optional

import click
from rich.table import Table

from autospec.cli.output import console
from autospec.cli.workflow import get_config
from autospec.core.exceptions import EXIT_EXHAUSTED, EXIT_SUCCESS
from autospec.tracking import HistoryStore


@click.command()
@click.option("--spec", "-s", help="Only show commands for this spec")
@click.option(
    "--limit",
    "-n",
    type=int,
    default=20,
    help="Maximum number of entries to show (default: 20)",
)
@click.option("--clear", is_flag=True, help="Delete all history entries")
@click.pass_context
def history_command(ctx: click.Context, spec: Optional[str], limit: int, clear: bool) -> None:
    """List previously run autospec commands, newest first.

    \b
    Examples:
        autospec history                 # Last 20 commands
        autospec history --spec 003-login
        autospec history --clear
    """
    store = HistoryStore(get_config(ctx).get_state_dir())

    if clear:
        store.clear()
        console.print("[green]✓[/green] History cleared")
        return

    entries = store.query(spec=spec, limit=limit)
    if not entries:
        console.print("[yellow]No history found[/yellow]")
        return

    table = Table(title="Command History")
    table.add_column("Time", style="dim")
    table.add_column("Command", style="cyan")
    table.add_column("Spec")
    table.add_column("Exit", justify="right")
    table.add_column("Duration", justify="right")

    for entry in entries:
        table.add_row(
            entry.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            entry.command,
            entry.spec or "-",
            _format_exit_code(entry.exit_code),
            f"{entry.duration_seconds:.1f}s",
        )

    console.print(table)


def _format_exit_code(code: int) -> str:
    if code == EXIT_SUCCESS:
        return f"[green]{code}[/green]"
    if code == EXIT_EXHAUSTED:
        return f"[red]{code}[/red]"
    return f"[yellow]{code}[/yellow]"
