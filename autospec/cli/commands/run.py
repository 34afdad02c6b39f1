"""autospec run command."""

from typing import Optional

import click

from autospec.cli.workflow import run_workflow, workflow_options
from autospec.core.exceptions import InvalidInputError
from autospec.core.phases import Phase


@click.command()
@click.option("--constitution", "-n", is_flag=True, help="Run the constitution phase")
@click.option("--specify", "-s", is_flag=True, help="Run the specify phase")
@click.option("--clarify", "-r", is_flag=True, help="Run the clarify phase")
@click.option("--plan", "-p", is_flag=True, help="Run the plan phase")
@click.option("--tasks", "-t", is_flag=True, help="Run the tasks phase")
@click.option("--checklist", "-l", is_flag=True, help="Run the checklist phase")
@click.option("--analyze", "-z", is_flag=True, help="Run the analyze phase")
@click.option("--implement", "-i", is_flag=True, help="Run the implement phase")
@click.option("--all", "-a", "run_all", is_flag=True, help="Run every phase")
@click.option(
    "--description",
    "-d",
    help="Feature description for the specify phase",
)
@click.argument("spec", required=False)
@workflow_options
@click.pass_context
def run_command(
    ctx: click.Context,
    constitution: bool,
    specify: bool,
    clarify: bool,
    plan: bool,
    tasks: bool,
    checklist: bool,
    analyze: bool,
    implement: bool,
    run_all: bool,
    description: Optional[str],
    spec: Optional[str],
    max_retries: Optional[int],
    skip_preflight: bool,
    yes: bool,
) -> None:
    """Run any combination of workflow phases.

    Phases always execute in canonical order regardless of the order the
    flags are given in: constitution, specify, clarify, plan, tasks,
    checklist, analyze, implement.

    \b
    Examples:
        autospec run -a -d "Add dark mode"   # Every phase for a new feature
        autospec run -pti                    # Plan, tasks, implement on the current spec
        autospec run -ti 003-login           # Tasks and implement on a named spec
    """
    flags = {
        Phase.CONSTITUTION: constitution,
        Phase.SPECIFY: specify,
        Phase.CLARIFY: clarify,
        Phase.PLAN: plan,
        Phase.TASKS: tasks,
        Phase.CHECKLIST: checklist,
        Phase.ANALYZE: analyze,
        Phase.IMPLEMENT: implement,
    }
    phases = list(Phase) if run_all else [phase for phase, on in flags.items() if on]
    if not phases:
        raise InvalidInputError(
            "No phases selected. Use phase flags such as -s, -p, -t, -i or -a for all phases"
        )

    arguments = {Phase.SPECIFY: description} if description else None
    run_workflow(
        ctx,
        phases,
        spec_name=spec,
        arguments=arguments,
        max_retries=max_retries,
        skip_preflight=skip_preflight,
        assume_yes=yes,
        command_name="run",
    )
