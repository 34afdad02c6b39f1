"""Main CLI entry point for autospec."""

import sys
from pathlib import Path
from typing import Optional

import click

from autospec import __version__
from autospec.cli.commands.doctor import doctor_command
from autospec.cli.commands.history import history_command
from autospec.cli.commands.init import init_command
from autospec.cli.commands.phases import PHASE_COMMANDS
from autospec.cli.commands.reset import reset_command
from autospec.cli.commands.run import run_command
from autospec.cli.commands.status import status_command
from autospec.cli.output import console, print_error
from autospec.core.exceptions import EXIT_FAILED, AutospecError


class AutospecGroup(click.Group):
    """Command group that turns autospec errors into exit codes."""

    def invoke(self, ctx: click.Context):
        try:
            return super().invoke(ctx)
        except AutospecError as e:
            print_error(e)
            ctx.exit(e.exit_code)


@click.group(cls=AutospecGroup)
@click.version_option(__version__, prog_name="autospec")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file",
)
@click.option(
    "--specs-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory containing feature specs",
)
@click.pass_context
def cli(
    ctx: click.Context, verbose: bool, config: Optional[Path], specs_dir: Optional[Path]
) -> None:
    """autospec: spec-driven development with CLI coding agents.

    Runs an AI coding agent through the constitution, specify, clarify,
    plan, tasks, checklist, analyze and implement phases. Each phase's
    artifact is validated, and failed phases can be retried up to a
    configurable limit that persists across runs.

    \b
    Exit codes:
        0  success
        1  phase failed, retry allowed
        2  retry limit exhausted
        3  invalid input or configuration
        4  missing dependency (agent not installed)

    \b
    Examples:
        autospec init                        # Initialize in current project
        autospec specify "Add dark mode"     # Create a spec
        autospec run -pti                    # Plan, tasks, implement
        autospec full "Add dark mode"        # Everything from specify to implement
        autospec status                      # Artifacts and retry counts
        autospec reset 001-dark-mode -p plan # Allow plan to be retried again
        autospec doctor                      # Check the agent and Git
    """
    ctx.ensure_object(dict)

    ctx.obj["verbose"] = verbose
    ctx.obj["config"] = config
    ctx.obj["specs_dir"] = specs_dir

    if verbose:
        console.print("[dim]autospec starting with verbose output enabled[/dim]")


cli.add_command(init_command, name="init")
cli.add_command(run_command, name="run")
for command in PHASE_COMMANDS:
    cli.add_command(command)
cli.add_command(status_command, name="status")
cli.add_command(reset_command, name="reset")
cli.add_command(history_command, name="history")
cli.add_command(doctor_command, name="doctor")


def main() -> None:
    """Main entry point for the CLI."""
    try:
        cli()
    except AutospecError as e:
        print_error(e)
        sys.exit(e.exit_code)
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[red]Unexpected error:[/red] {e}")
        if "--verbose" in sys.argv or "-v" in sys.argv:
            console.print_exception()
        sys.exit(EXIT_FAILED)


if __name__ == "__main__":
    main()
