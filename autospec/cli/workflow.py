"""Shared wiring for commands that run workflow phases."""

import sys
import time
from pathlib import Path
from typing import Dict, Iterable, Optional

import click

from autospec.agents import Agent, ExecOptions, build_default_registry
from autospec.cli.output import (
    console,
    print_phase_result,
    print_phase_start,
    print_warnings,
    print_workflow_summary,
)
from autospec.config import AutospecConfig, load_config
from autospec.core.artifact_validator import ArtifactValidator
from autospec.core.exceptions import ExecutionError
from autospec.core.phases import Phase, PhaseConfig
from autospec.core.retry_ledger import RetryLedger
from autospec.core.spec_resolver import SpecResolver
from autospec.orchestrator.phase_executor import PhaseExecutor, WorkflowResult
from autospec.orchestrator.sequencer import PhaseSequencer
from autospec.tracking import ActivityLogger, EventType, HistoryStore


def workflow_options(func):
    """Options shared by every phase-running command."""
    func = click.option(
        "--yes", "-y", is_flag=True, help="Continue past pre-flight warnings without asking"
    )(func)
    func = click.option(
        "--skip-preflight", is_flag=True, help="Skip pre-flight checks"
    )(func)
    func = click.option(
        "--max-retries",
        type=click.IntRange(0, 10),
        default=None,
        help="Override the retry ceiling for this run",
    )(func)
    return func


def get_config(ctx: click.Context) -> AutospecConfig:
    """Load configuration once per invocation, applying global CLI overrides."""
    obj = ctx.ensure_object(dict)
    if obj.get("app_config") is None:
        config = load_config(project_config_path=obj.get("config"))
        if obj.get("specs_dir"):
            config = config.model_copy(update={"specs_dir": str(obj["specs_dir"])})
        obj["app_config"] = config
    return obj["app_config"]


def get_agent(ctx: click.Context, config: AutospecConfig) -> Agent:
    """The configured agent, checked for availability.

    Tests may preset ``ctx.obj["agent"]``.
    """
    obj = ctx.ensure_object(dict)
    agent = obj.get("agent")
    if agent is None:
        registry = build_default_registry(
            claude_command=config.agent.command,
            claude_args=config.agent.extra_args,
            custom_command=config.agent.custom_command,
        )
        agent = registry.require(config.agent.name)
    agent.validate()
    return agent


def run_workflow(
    ctx: click.Context,
    phases: Iterable[Phase],
    spec_name: Optional[str] = None,
    arguments: Optional[Dict[Phase, str]] = None,
    max_retries: Optional[int] = None,
    skip_preflight: bool = False,
    assume_yes: bool = False,
    command_name: str = "run",
) -> None:
    """Sequence and execute phases, then exit with the workflow's exit code."""
    start_time = time.monotonic()
    verbose = ctx.ensure_object(dict).get("verbose", False)
    config = get_config(ctx)
    if max_retries is None:
        max_retries = config.max_retries
    skip_preflight = skip_preflight or config.skip_preflight

    specs_dir = config.get_specs_dir()
    resolver = SpecResolver(Path.cwd())
    sequencer = PhaseSequencer(resolver=resolver)
    plan = sequencer.resolve(PhaseConfig.from_phases(phases), specs_dir, spec_name)

    activity_logger = ActivityLogger(config.get_log_dir()) if config.logging.enabled else None
    if plan.warnings and not skip_preflight:
        print_warnings(plan.warnings)
        if activity_logger:
            for warning in plan.warnings:
                activity_logger.log_event(
                    EventType.PREFLIGHT_WARNING,
                    warning.message,
                    spec_name=plan.spec.name if plan.spec else None,
                    phase=warning.phase.value,
                    missing_artifact=warning.missing_artifact,
                )
        if not assume_yes:
            click.confirm("Continue anyway?", default=False, abort=True)

    agent = get_agent(ctx, config)
    timeout = config.agent.timeout_seconds

    executor = PhaseExecutor(
        agent=agent,
        validator=ArtifactValidator(project_dir=Path.cwd()),
        ledger=RetryLedger(config.get_state_dir()),
        max_retries=max_retries,
        exec_options=ExecOptions(
            work_dir=Path.cwd(),
            timeout=timeout or None,
            stdout=sys.stdout,
            stderr=sys.stderr,
        ),
        activity_logger=activity_logger,
        resolver=resolver,
        command_prefix=config.command_prefix,
        on_phase_start=lambda phase, record, command: print_phase_start(
            phase, record, command, verbose
        ),
        on_phase_end=print_phase_result,
    )

    if plan.spec is not None:
        console.print(f"[dim]Spec:[/dim] {plan.spec.name}")

    workflow = executor.run(plan, specs_dir, arguments=arguments)
    print_workflow_summary(workflow)

    _record_history(config, command_name, workflow, time.monotonic() - start_time)
    ctx.exit(workflow.exit_code)


def _record_history(
    config: AutospecConfig, command_name: str, workflow: WorkflowResult, duration: float
) -> None:
    spec = workflow.spec.name if workflow.spec else None
    try:
        HistoryStore(config.get_state_dir()).record(
            command=command_name,
            spec=spec,
            exit_code=workflow.exit_code,
            duration_seconds=duration,
        )
    except ExecutionError as e:
        console.print(f"[yellow]Warning:[/yellow] {e}")
