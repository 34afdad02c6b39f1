"""autospec reset command."""

from pathlib import Path
from typing import Optional

import click

from autospec.cli.output import console
from autospec.cli.workflow import get_config
from autospec.core.exceptions import SpecResolutionError
from autospec.core.phases import Phase
from autospec.core.retry_ledger import RetryLedger
from autospec.core.spec_resolver import SpecResolver, get_spec_directory
from autospec.orchestrator import reset_retries
from autospec.tracking import ActivityLogger


def resolve_ledger_spec(ledger: RetryLedger, specs_dir: Path, spec: str) -> str:
    """Ledger spec name for a user-supplied spec argument.

    Names already in the ledger are used as given. Otherwise the argument is
    resolved like any other spec argument (full name, number or slug).
    Specify retries are keyed by a description slug with no spec directory,
    so an unresolvable name is kept as given.
    """
    if ledger.records_for_spec(spec):
        return spec
    try:
        return get_spec_directory(specs_dir, spec).name
    except SpecResolutionError:
        return spec


@click.command()
@click.argument("spec", required=False)
@click.option(
    "--phase",
    "-p",
    "phase_name",
    type=click.Choice([phase.value for phase in Phase]),
    help="Reset only this phase",
)
@click.pass_context
def reset_command(ctx: click.Context, spec: Optional[str], phase_name: Optional[str]) -> None:
    """Reset retry counts so exhausted phases can run again.

    SPEC is the name shown in the retry-exhausted message, or its number or
    slug; it defaults to the current spec. Without --phase every phase of
    the spec is reset.

    \b
    Examples:
        autospec reset 003-login --phase plan
        autospec reset 003 -p plan
        autospec reset              # All phases of the current spec
    """
    config = get_config(ctx)
    ledger = RetryLedger(config.get_state_dir())
    specs_dir = config.get_specs_dir()
    if spec:
        spec_name = resolve_ledger_spec(ledger, specs_dir, spec)
    else:
        spec_name = SpecResolver(Path.cwd()).resolve(specs_dir).name

    if phase_name:
        phases = [phase_name]
    else:
        phases = [record.phase for record in ledger.records_for_spec(spec_name)]

    if not phases:
        console.print(f"[yellow]No retry history for {spec_name}[/yellow]")
        return

    activity_logger = ActivityLogger(config.get_log_dir()) if config.logging.enabled else None
    for name in phases:
        record = reset_retries(ledger, spec_name, name, config.max_retries, activity_logger)
        console.print(f"[green]✓[/green] Reset {record.key}")
