"""autospec status command."""

from pathlib import Path
from typing import List, Optional

import click
import yaml
from rich.table import Table

from autospec.cli.output import console
from autospec.cli.workflow import get_config
from autospec.core.artifact_validator import ArtifactValidator
from autospec.core.phases import Phase
from autospec.core.retry_ledger import RetryLedger, RetryRecord
from autospec.core.spec_resolver import SpecIdentity, SpecResolver, get_spec_directory
from autospec.core.task_stats import get_task_stats


@click.command()
@click.argument("spec", required=False)
@click.pass_context
def status_command(ctx: click.Context, spec: Optional[str]) -> None:
    """Show artifacts, task progress and retry counts for a spec.

    \b
    Examples:
        autospec status             # Current spec
        autospec status 003-login   # A named spec
    """
    config = get_config(ctx)
    specs_dir = config.get_specs_dir()
    ledger = RetryLedger(config.get_state_dir())

    if spec:
        identity = SpecIdentity.from_directory(get_spec_directory(specs_dir, spec))
    else:
        identity = SpecResolver(Path.cwd()).resolve(specs_dir)

    console.print(f"[bold]Spec:[/bold] {identity.name}")
    console.print(f"[dim]Directory:[/dim] {identity.directory}")
    if identity.branch:
        console.print(f"[dim]Branch:[/dim] {identity.branch}")

    _display_artifacts(identity)
    _display_tasks(identity)
    _display_retries(ledger.records_for_spec(identity.name), config.max_retries)


def _display_artifacts(identity: SpecIdentity) -> None:
    validator = ArtifactValidator(project_dir=Path.cwd())

    table = Table(title="Artifacts")
    table.add_column("Phase", style="cyan")
    table.add_column("Artifact")
    table.add_column("Status")

    for phase in Phase:
        if phase == Phase.IMPLEMENT:
            continue
        outcome = validator.validate(identity.directory, phase)
        path = outcome.artifact_path
        name = path.name if path else phase.artifact
        if outcome.passed:
            status = "[green]valid[/green]"
        elif path is not None and path.exists():
            status = "[yellow]invalid[/yellow]"
        else:
            status = "[dim]missing[/dim]"
        table.add_row(phase.value, name, status)

    console.print(table)


def _display_tasks(identity: SpecIdentity) -> None:
    for name in ("tasks.yaml", "tasks.md"):
        path = identity.directory / name
        if path.is_file():
            break
    else:
        return

    try:
        stats = get_task_stats(path)
    except (OSError, ValueError, yaml.YAMLError) as e:
        console.print(f"[yellow]Could not read {path.name}:[/yellow] {e}")
        return

    if stats.total == 0:
        console.print(f"[dim]{path.name} contains no tasks[/dim]")
    elif stats.is_complete():
        console.print(f"[green]All {stats.total} tasks completed[/green]")
    else:
        console.print(
            f"Tasks: {stats.completed}/{stats.total} completed, {stats.summary()}"
        )


def _display_retries(records: List[RetryRecord], max_retries: int) -> None:
    if not records:
        console.print("[dim]No retry history for this spec[/dim]")
        return

    table = Table(title="Retries")
    table.add_column("Phase", style="cyan")
    table.add_column("Attempts", justify="right")
    table.add_column("Last failure")

    for record in records:
        record.max_retries = max_retries
        count = f"{record.count}/{record.max_retries}"
        if not record.can_retry():
            count = f"[red]{count}[/red]"
        last = record.last_attempt.strftime("%Y-%m-%d %H:%M:%S") if record.last_attempt else "-"
        table.add_row(record.phase, count, last)

    console.print(table)
