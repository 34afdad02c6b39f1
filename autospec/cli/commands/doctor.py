"""autospec doctor command."""

import shutil

import click

from autospec.cli.output import console
from autospec.cli.workflow import get_agent, get_config
from autospec.core.exceptions import EXIT_MISSING_DEPENDENCY, AgentNotFoundError


@click.command()
@click.pass_context
def doctor_command(ctx: click.Context) -> None:
    """Run health checks on the autospec setup.

    Loads the configuration, checks that the configured agent (the Claude
    CLI by default) can be found, and looks for Git, which is used to pick
    the current spec from the branch name.

    Exits with code 4 if the agent is missing and 3 if the configuration is
    invalid.

    \b
    Examples:
        autospec doctor
    """
    config = get_config(ctx)
    console.print(f"[green]✓[/green] Configuration loaded (agent: {config.agent.name})")

    healthy = True
    try:
        get_agent(ctx, config)
    except AgentNotFoundError as e:
        console.print(f"[red]✗[/red] Agent: {e}")
        healthy = False
    else:
        console.print(f"[green]✓[/green] Agent '{config.agent.name}' is available")

    if shutil.which("git") is None:
        console.print(
            "[yellow]![/yellow] Git not found - the current spec is taken "
            "from the newest spec directory"
        )
    else:
        console.print("[green]✓[/green] Git is available")

    specs_dir = config.get_specs_dir()
    if specs_dir.is_dir():
        console.print(f"[green]✓[/green] Specs directory: {specs_dir}")
    else:
        console.print(
            f"[yellow]![/yellow] Specs directory {specs_dir} does not exist yet - "
            "run 'autospec specify' to create a spec"
        )

    if not healthy:
        ctx.exit(EXIT_MISSING_DEPENDENCY)
    console.print("\n[green]All required dependencies are available[/green]")
