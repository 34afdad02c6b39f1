"""Console rendering for workflow progress and errors."""

from typing import List

from rich.console import Console

from autospec.core.exceptions import (
    AutospecError,
    RetryExhaustedError,
    SpecResolutionError,
)
from autospec.core.phases import Phase
from autospec.core.retry_ledger import RetryRecord
from autospec.orchestrator.phase_executor import PhaseResult, WorkflowResult
from autospec.orchestrator.sequencer import PreflightWarning

console = Console()


def print_error(error: AutospecError) -> None:
    """Print an error with whatever follow-up the user needs."""
    console.print(f"[red]Error:[/red] {error}")
    if isinstance(error, SpecResolutionError) and error.suggestions:
        console.print("\n[bold]Suggestions:[/bold]")
        for suggestion in error.suggestions:
            console.print(f"  - {suggestion}")
    elif isinstance(error, RetryExhaustedError):
        console.print(f"Run [cyan]{error.reset_command}[/cyan] to try again")


def print_warnings(warnings: List[PreflightWarning]) -> None:
    console.print("[yellow]Pre-flight warnings:[/yellow]")
    for warning in warnings:
        console.print(f"  [yellow]![/yellow] {warning.message}")


def print_phase_start(phase: Phase, record: RetryRecord, command: str, verbose: bool) -> None:
    attempt = record.count + 1
    console.print(
        f"\n[bold]> {phase.value}[/bold] "
        f"[dim](attempt {attempt}/{record.max_retries + 1})[/dim]"
    )
    if verbose:
        console.print(f"[dim]$ {command}[/dim]")


def print_phase_result(result: PhaseResult) -> None:
    phase = result.phase.value
    if result.success:
        console.print(f"[green]✓[/green] {phase} completed in {result.duration_seconds:.1f}s")
        return

    if result.exhausted:
        console.print(f"[red]✗ {phase} failed:[/red] {result.error}")
        if isinstance(result.error, RetryExhaustedError):
            console.print(f"Run [cyan]{result.error.reset_command}[/cyan] to try again")
        return

    console.print(
        f"[red]✗ {phase} failed[/red] "
        f"(attempt {result.retry_count}/{result.max_retries}): {result.error}"
    )
    console.print(f"Run the same command again to retry {phase}")


def print_workflow_summary(workflow: WorkflowResult) -> None:
    if workflow.success:
        spec = f" for {workflow.spec.name}" if workflow.spec else ""
        console.print(
            f"\n[green]All {len(workflow.phases)} phase(s) completed{spec}[/green] "
            f"[dim]({workflow.duration_seconds:.1f}s)[/dim]"
        )
        return

    skipped = workflow.phases[len(workflow.results):]
    if skipped:
        console.print(
            "[dim]Not run: " + ", ".join(phase.value for phase in skipped) + "[/dim]"
        )
