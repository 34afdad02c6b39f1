"""Phase executor: runs workflow phases against the agent with bounded retries.

Each phase execution is one attempt. A failed attempt is counted in the
retry ledger so that the limit holds across separate processes; once the
count reaches the ceiling, the next failure reports exhaustion instead of
recording another attempt. A successful attempt resets the count.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional

from ..agents.base import Agent, AgentResult, ExecOptions
from ..core.artifact_validator import ArtifactValidator, ValidationOutcome
from ..core.exceptions import (
    EXIT_EXHAUSTED,
    EXIT_FAILED,
    EXIT_SUCCESS,
    AgentExecutionError,
    ArtifactValidationError,
    InvalidInputError,
    RetryExhaustedError,
    SpecResolutionError,
)
from ..core.phases import Phase
from ..core.retry_ledger import RetryLedger, RetryRecord
from ..core.spec_resolver import (
    SpecIdentity,
    SpecResolver,
    list_spec_directories,
    slugify_description,
)
from ..tracking.activity_logger import ActivityLogger, AgentRunEvent, EventType
from .prompts import DEFAULT_COMMAND_PREFIX, build_phase_prompt
from .sequencer import SequencePlan

# Characters of agent output kept in the agent run log
OUTPUT_TAIL_CHARS = 2000


class PhaseOutcome(str, Enum):
    """How a single phase attempt ended."""

    SUCCEEDED = "succeeded"
    RETRYABLE = "retryable"
    EXHAUSTED = "exhausted"


@dataclass
class PhaseResult:
    """Result of one phase attempt."""

    phase: Phase
    outcome: PhaseOutcome
    spec: Optional[SpecIdentity] = None
    retry_count: int = 0
    max_retries: int = 0
    error: Optional[Exception] = None
    validation: Optional[ValidationOutcome] = None
    agent_result: Optional[AgentResult] = None
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.outcome == PhaseOutcome.SUCCEEDED

    @property
    def exhausted(self) -> bool:
        return self.outcome == PhaseOutcome.EXHAUSTED

    @property
    def exit_code(self) -> int:
        if self.success:
            return EXIT_SUCCESS
        if self.exhausted:
            return EXIT_EXHAUSTED
        return EXIT_FAILED


@dataclass
class WorkflowResult:
    """Result of running a sequence of phases."""

    phases: List[Phase]
    spec: Optional[SpecIdentity] = None
    results: List[PhaseResult] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def failed_result(self) -> Optional[PhaseResult]:
        for result in self.results:
            if not result.success:
                return result
        return None

    @property
    def success(self) -> bool:
        return self.failed_result is None and len(self.results) == len(self.phases)

    @property
    def exit_code(self) -> int:
        failed = self.failed_result
        if failed is not None:
            return failed.exit_code
        return EXIT_SUCCESS if self.success else EXIT_FAILED


def reset_retries(
    ledger: RetryLedger,
    spec_name: str,
    phase_name: str,
    max_retries: int,
    activity_logger: Optional[ActivityLogger] = None,
) -> RetryRecord:
    """Clear the retry count for a spec and phase and log the reset."""
    record = ledger.reset(spec_name, phase_name, max_retries)
    if activity_logger:
        activity_logger.log_event(
            EventType.RETRY_RESET,
            f"Retry count reset for {record.key}",
            spec_name=spec_name,
            phase=phase_name,
            retry_count=0,
        )
    return record


class PhaseExecutor:
    """Runs phases through the agent, validating artifacts and tracking retries."""

    def __init__(
        self,
        agent: Agent,
        validator: ArtifactValidator,
        ledger: RetryLedger,
        max_retries: int = 3,
        exec_options: Optional[ExecOptions] = None,
        activity_logger: Optional[ActivityLogger] = None,
        resolver: Optional[SpecResolver] = None,
        command_prefix: str = DEFAULT_COMMAND_PREFIX,
        on_phase_start: Optional[Callable[[Phase, RetryRecord, str], None]] = None,
        on_phase_end: Optional[Callable[[PhaseResult], None]] = None,
    ):
        """Initialize phase executor.

        Args:
            agent: Agent that runs the phase prompts
            validator: Artifact validator
            ledger: Persistent retry ledger
            max_retries: Retry ceiling for this run
            exec_options: Options passed to every agent execution
            activity_logger: Optional structured activity log
            resolver: Spec resolver used to find a spec created by specify
            command_prefix: Slash-command prefix for phase prompts
            on_phase_start: Called before each agent execution with the
                phase, its retry record and the printable command line
            on_phase_end: Called with each phase result during ``run``
        """
        self.agent = agent
        self.validator = validator
        self.ledger = ledger
        self.max_retries = max_retries
        self.exec_options = exec_options or ExecOptions()
        self.activity_logger = activity_logger
        self.resolver = resolver or SpecResolver()
        self.command_prefix = command_prefix
        self.on_phase_start = on_phase_start
        self.on_phase_end = on_phase_end

    def execute_phase(
        self,
        spec_name: str,
        phase: Phase,
        prompt: str,
        spec_dir: Optional[Path] = None,
        locate_spec: Optional[Callable[[], SpecIdentity]] = None,
    ) -> PhaseResult:
        """Run one attempt of a phase.

        Args:
            spec_name: Ledger key for the spec
            phase: Phase to run
            prompt: Prompt given to the agent
            spec_dir: Spec directory the artifact is validated in
            locate_spec: Called after the agent finishes when ``spec_dir`` is
                not known yet (specify creating a new spec)

        Returns:
            PhaseResult. Failures are reported as RETRYABLE or EXHAUSTED
            results, never raised.

        Raises:
            RetryLedgerError: If the ledger cannot be written
        """
        start_time = time.monotonic()
        record = self.ledger.load(spec_name, phase.value, self.max_retries)

        if self.activity_logger:
            self.activity_logger.log_phase_start(
                spec_name, phase.value, record.count, record.max_retries
            )
        if self.on_phase_start:
            self.on_phase_start(phase, record, self.agent.format_command(prompt))

        try:
            agent_result = self._run_agent(spec_name, phase, prompt)
        except AgentExecutionError as e:
            return self._handle_failure(record, phase, e, start_time)

        spec = None
        if spec_dir is None and locate_spec is not None:
            try:
                spec = locate_spec()
                spec_dir = spec.directory
            except SpecResolutionError as e:
                error = ArtifactValidationError(
                    f"{phase.value} did not create a spec directory: {e}",
                    hint="check the agent output for errors",
                )
                return self._handle_failure(record, phase, error, start_time, agent_result)

        validation = self.validator.validate(spec_dir, phase)
        if not validation.passed:
            error = validation.to_error()
            if not agent_result.success:
                error = ArtifactValidationError(
                    f"{agent_result.error_message}; {validation.message}", hint=validation.hint
                )
            return self._handle_failure(
                record, phase, error, start_time, agent_result, validation, spec
            )

        record.reset()
        self.ledger.save(record)

        duration = time.monotonic() - start_time
        if self.activity_logger:
            self.activity_logger.log_phase_complete(
                spec_name, phase.value, int(duration * 1000)
            )

        return PhaseResult(
            phase=phase,
            outcome=PhaseOutcome.SUCCEEDED,
            spec=spec,
            retry_count=0,
            max_retries=record.max_retries,
            validation=validation,
            agent_result=agent_result,
            duration_seconds=duration,
        )

    def run(
        self,
        plan: SequencePlan,
        specs_dir: Path,
        arguments: Optional[Dict[Phase, str]] = None,
    ) -> WorkflowResult:
        """Run every phase of a plan in order, stopping at the first failure.

        Args:
            plan: Sequenced phases and target spec
            specs_dir: Root directory of spec directories
            arguments: Per-phase slash-command arguments. The specify entry
                is the feature description.

        Raises:
            InvalidInputError: If specify must create a spec but no
                description was given
            RetryLedgerError: If the ledger cannot be written
        """
        arguments = arguments or {}
        start_time = time.monotonic()
        workflow = WorkflowResult(phases=list(plan.phases), spec=plan.spec)

        if plan.creates_spec and not arguments.get(Phase.SPECIFY):
            raise InvalidInputError("specify requires a feature description")

        if self.activity_logger:
            self.activity_logger.log_run_start(
                [p.value for p in plan.phases],
                spec_name=plan.spec.name if plan.spec else None,
            )

        for phase in plan.phases:
            spec = workflow.spec
            argument = arguments.get(phase)

            if phase == Phase.SPECIFY and spec is None:
                result = self._run_specify(Path(specs_dir), argument)
                if result.spec is not None:
                    workflow.spec = result.spec
            else:
                spec_name = spec.name if spec else phase.value
                context = self._continuation_context(spec) if phase == Phase.IMPLEMENT else None
                prompt = build_phase_prompt(
                    phase, argument, context=context, prefix=self.command_prefix
                )
                result = self.execute_phase(
                    spec_name, phase, prompt, spec_dir=spec.directory if spec else None
                )

            workflow.results.append(result)
            if self.on_phase_end:
                self.on_phase_end(result)
            if not result.success:
                break

        workflow.duration_seconds = time.monotonic() - start_time
        if self.activity_logger:
            self.activity_logger.log_run_end(
                workflow.exit_code,
                int(workflow.duration_seconds * 1000),
                spec_name=workflow.spec.name if workflow.spec else None,
            )
        return workflow

    def reset_phase(self, spec_name: str, phase: Phase) -> RetryRecord:
        """Clear the retry count for a spec and phase."""
        return reset_retries(
            self.ledger, spec_name, phase.value, self.max_retries, self.activity_logger
        )

    def get_retry_state(self, spec_name: str, phase: Phase) -> RetryRecord:
        return self.ledger.load(spec_name, phase.value, self.max_retries)

    def _run_specify(self, specs_dir: Path, description: str) -> PhaseResult:
        """Run specify when the spec does not exist yet.

        The ledger key is derived from the description so that retries of
        the same feature share one retry count.
        """
        existing = set(list_spec_directories(specs_dir))

        def locate_spec() -> SpecIdentity:
            created = [d for d in list_spec_directories(specs_dir) if d not in existing]
            if created:
                newest = max(created, key=lambda d: d.stat().st_mtime)
                return SpecIdentity.from_directory(newest)
            return self.resolver.resolve(specs_dir)

        prompt = build_phase_prompt(Phase.SPECIFY, description, prefix=self.command_prefix)
        return self.execute_phase(
            slugify_description(description), Phase.SPECIFY, prompt, locate_spec=locate_spec
        )

    def _continuation_context(self, spec: Optional[SpecIdentity]) -> Optional[str]:
        """Describe unfinished tasks when implement resumes earlier work."""
        if spec is None:
            return None
        record = self.ledger.load(spec.name, Phase.IMPLEMENT.value, self.max_retries)
        if record.count == 0:
            return None
        outcome = self.validator.validate(spec.directory, Phase.IMPLEMENT)
        return outcome.continuation_prompt

    def _run_agent(self, spec_name: str, phase: Phase, prompt: str) -> AgentResult:
        start_time = time.monotonic()
        command = self.agent.format_command(prompt)
        work_dir = self.exec_options.work_dir or Path.cwd()

        try:
            result = self.agent.execute(prompt, self.exec_options)
        except AgentExecutionError as e:
            if self.activity_logger:
                self.activity_logger.log_agent_run(
                    AgentRunEvent(
                        agent=self.agent.name,
                        command=command,
                        working_directory=str(work_dir),
                        duration_ms=int((time.monotonic() - start_time) * 1000),
                        error=str(e),
                    ),
                    spec_name=spec_name,
                    phase=phase.value,
                )
            raise

        if self.activity_logger:
            self.activity_logger.log_agent_run(
                AgentRunEvent(
                    agent=self.agent.name,
                    command=command,
                    working_directory=str(work_dir),
                    exit_code=result.exit_code,
                    duration_ms=int(result.duration_seconds * 1000),
                    stdout_tail=result.stdout[-OUTPUT_TAIL_CHARS:] or None,
                    stderr_tail=result.stderr[-OUTPUT_TAIL_CHARS:] or None,
                ),
                spec_name=spec_name,
                phase=phase.value,
            )
        return result

    def _handle_failure(
        self,
        record: RetryRecord,
        phase: Phase,
        error: Exception,
        start_time: float,
        agent_result: Optional[AgentResult] = None,
        validation: Optional[ValidationOutcome] = None,
        spec: Optional[SpecIdentity] = None,
    ) -> PhaseResult:
        """Count a failed attempt, or report exhaustion if none remain."""
        duration = time.monotonic() - start_time
        try:
            record.increment()
        except RetryExhaustedError:
            self.ledger.save(record)
            exhausted = RetryExhaustedError(
                spec_name=record.spec_name,
                phase=record.phase,
                count=record.count,
                max_retries=record.max_retries,
                cause=error,
            )
            exhausted.__cause__ = error
            if self.activity_logger:
                self.activity_logger.log_phase_fail(
                    record.spec_name,
                    phase.value,
                    str(exhausted),
                    record.count,
                    exhausted=True,
                    duration_ms=int(duration * 1000),
                )
            return PhaseResult(
                phase=phase,
                outcome=PhaseOutcome.EXHAUSTED,
                spec=spec,
                retry_count=record.count,
                max_retries=record.max_retries,
                error=exhausted,
                validation=validation,
                agent_result=agent_result,
                duration_seconds=duration,
            )

        self.ledger.save(record)
        if self.activity_logger:
            self.activity_logger.log_phase_fail(
                record.spec_name,
                phase.value,
                str(error),
                record.count,
                duration_ms=int(duration * 1000),
            )
        return PhaseResult(
            phase=phase,
            outcome=PhaseOutcome.RETRYABLE,
            spec=spec,
            retry_count=record.count,
            max_retries=record.max_retries,
            error=error,
            validation=validation,
            agent_result=agent_result,
            duration_seconds=duration,
        )
