"""Single-phase shortcut commands and the full workflow command."""

from typing import Optional

import click

from autospec.cli.workflow import run_workflow, workflow_options
from autospec.core.phases import CORE_PHASES, Phase

SPEC_PHASE_HELP = {
    Phase.CLARIFY: "Resolve open questions in spec.yaml.",
    Phase.PLAN: "Generate plan.yaml from the feature spec.",
    Phase.TASKS: "Break plan.yaml down into tasks.yaml.",
    Phase.CHECKLIST: "Generate quality checklists for the spec.",
    Phase.ANALYZE: "Cross-check spec, plan and tasks for consistency.",
    Phase.IMPLEMENT: "Implement the tasks in tasks.yaml.",
}


def _spec_phase_command(phase: Phase) -> click.Command:
    """Build the command that runs one phase against an existing spec."""

    @click.command(name=phase.value)
    @click.argument("spec", required=False)
    @click.option("--prompt", "extra_prompt", help="Extra instructions for the phase")
    @workflow_options
    @click.pass_context
    def command(
        ctx: click.Context,
        spec: Optional[str],
        extra_prompt: Optional[str],
        max_retries: Optional[int],
        skip_preflight: bool,
        yes: bool,
    ) -> None:
        run_workflow(
            ctx,
            [phase],
            spec_name=spec,
            arguments={phase: extra_prompt} if extra_prompt else None,
            max_retries=max_retries,
            skip_preflight=skip_preflight,
            assume_yes=yes,
            command_name=phase.value,
        )

    command.help = (
        f"{SPEC_PHASE_HELP[phase]}\n\n"
        f"SPEC defaults to the spec of the current git branch, or the most "
        f"recently modified spec directory."
    )
    return command


@click.command(name="specify")
@click.argument("description")
@workflow_options
@click.pass_context
def specify_command(
    ctx: click.Context,
    description: str,
    max_retries: Optional[int],
    skip_preflight: bool,
    yes: bool,
) -> None:
    """Create a new feature spec from a description.

    \b
    Examples:
        autospec specify "Add OAuth login with GitHub"
    """
    run_workflow(
        ctx,
        [Phase.SPECIFY],
        arguments={Phase.SPECIFY: description},
        max_retries=max_retries,
        skip_preflight=skip_preflight,
        assume_yes=yes,
        command_name="specify",
    )


@click.command(name="constitution")
@click.option("--prompt", "extra_prompt", help="Extra instructions for the phase")
@workflow_options
@click.pass_context
def constitution_command(
    ctx: click.Context,
    extra_prompt: Optional[str],
    max_retries: Optional[int],
    skip_preflight: bool,
    yes: bool,
) -> None:
    """Create or update the project constitution."""
    run_workflow(
        ctx,
        [Phase.CONSTITUTION],
        arguments={Phase.CONSTITUTION: extra_prompt} if extra_prompt else None,
        max_retries=max_retries,
        skip_preflight=skip_preflight,
        assume_yes=yes,
        command_name="constitution",
    )


@click.command(name="full")
@click.argument("description")
@workflow_options
@click.pass_context
def full_command(
    ctx: click.Context,
    description: str,
    max_retries: Optional[int],
    skip_preflight: bool,
    yes: bool,
) -> None:
    """Run specify, plan, tasks and implement for a new feature.

    \b
    Examples:
        autospec full "Add a CSV export to the reports page"
    """
    run_workflow(
        ctx,
        CORE_PHASES,
        arguments={Phase.SPECIFY: description},
        max_retries=max_retries,
        skip_preflight=skip_preflight,
        assume_yes=yes,
        command_name="full",
    )


PHASE_COMMANDS = [specify_command, constitution_command, full_command] + [
    _spec_phase_command(phase) for phase in SPEC_PHASE_HELP
]
