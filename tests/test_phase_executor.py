"""Tests for the phase executor retry state machine."""

import json
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from autospec.core.exceptions import (
    AgentNotFoundError,
    AgentTimeoutError,
    ArtifactValidationError,
    InvalidInputError,
    RetryExhaustedError,
    RetryLedgerError,
)
from autospec.core.phases import Phase, PhaseConfig
from autospec.core.spec_resolver import SpecIdentity
from autospec.orchestrator.phase_executor import (
    PhaseExecutor,
    PhaseOutcome,
    PhaseResult,
)
from autospec.orchestrator.prompts import build_phase_prompt
from autospec.orchestrator.sequencer import PhaseSequencer, SequencePlan
from autospec.tracking import ActivityLogger
from tests.mocks import MockResponse, write_plan, write_spec, write_tasks


PLAN_PROMPT = "/autospec.plan"


class TestExecutePhase:
    """Test single-attempt execution."""

    def test_success_resets_persisted_count(self, executor, mock_agent, ledger, spec_dir):
        ledger.increment(spec_dir.name, "plan", 3)
        ledger.increment(spec_dir.name, "plan", 3)
        mock_agent.add_response("plan", MockResponse(action=lambda p: write_plan(spec_dir)))

        result = executor.execute_phase(spec_dir.name, Phase.PLAN, PLAN_PROMPT, spec_dir=spec_dir)

        assert result.outcome == PhaseOutcome.SUCCEEDED
        assert result.success
        assert result.exit_code == 0
        assert result.error is None
        assert ledger.load(spec_dir.name, "plan", 3).count == 0
        assert mock_agent.prompts == [PLAN_PROMPT]

    def test_validation_failure_is_retryable(self, executor, ledger, specs_dir):
        fresh = specs_dir / "001-fresh"
        fresh.mkdir()

        result = executor.execute_phase(fresh.name, Phase.PLAN, PLAN_PROMPT, spec_dir=fresh)

        assert result.outcome == PhaseOutcome.RETRYABLE
        assert result.exit_code == 1
        assert result.retry_count == 1
        assert result.max_retries == 3
        assert isinstance(result.error, ArtifactValidationError)
        assert "specify" in result.error.hint
        assert ledger.load(fresh.name, "plan", 3).count == 1

    def test_exhaustion_after_ceiling(self, executor, ledger, spec_dir):
        outcomes = []
        for _ in range(3):
            result = executor.execute_phase(spec_dir.name, Phase.PLAN, PLAN_PROMPT, spec_dir=spec_dir)
            outcomes.append((result.outcome, result.retry_count))

        assert outcomes == [
            (PhaseOutcome.RETRYABLE, 1),
            (PhaseOutcome.RETRYABLE, 2),
            (PhaseOutcome.RETRYABLE, 3),
        ]

        result = executor.execute_phase(spec_dir.name, Phase.PLAN, PLAN_PROMPT, spec_dir=spec_dir)

        assert result.outcome == PhaseOutcome.EXHAUSTED
        assert result.exhausted
        assert result.exit_code == 2
        assert result.retry_count == 3
        assert isinstance(result.error, RetryExhaustedError)
        assert isinstance(result.error.__cause__, ArtifactValidationError)
        assert result.error.cause is result.error.__cause__
        assert "retry limit exhausted" in str(result.error)
        assert "plan.yaml not found" in str(result.error)
        assert ledger.load(spec_dir.name, "plan", 3).count == 3

    def test_exhausted_phase_can_still_succeed(self, executor, mock_agent, ledger, spec_dir):
        for _ in range(3):
            ledger.increment(spec_dir.name, "plan", 3)
        mock_agent.add_response("plan", MockResponse(action=lambda p: write_plan(spec_dir)))

        result = executor.execute_phase(spec_dir.name, Phase.PLAN, PLAN_PROMPT, spec_dir=spec_dir)

        assert result.success
        assert ledger.load(spec_dir.name, "plan", 3).count == 0

    def test_zero_ceiling_exhausts_on_first_failure(self, mock_agent, validator, ledger, spec_dir):
        executor = PhaseExecutor(mock_agent, validator, ledger, max_retries=0)

        result = executor.execute_phase(spec_dir.name, Phase.PLAN, PLAN_PROMPT, spec_dir=spec_dir)

        assert result.exhausted
        assert ledger.load(spec_dir.name, "plan", 0).count == 0

    @pytest.mark.parametrize(
        "error",
        [AgentTimeoutError("timed out"), AgentNotFoundError("no such agent")],
    )
    def test_agent_errors_are_retryable_failures(self, executor, mock_agent, ledger, spec_dir, error):
        mock_agent.set_default_response(MockResponse(error=error))

        result = executor.execute_phase(spec_dir.name, Phase.PLAN, PLAN_PROMPT, spec_dir=spec_dir)

        assert result.outcome == PhaseOutcome.RETRYABLE
        assert result.error is error
        assert result.agent_result is None
        assert ledger.load(spec_dir.name, "plan", 3).count == 1

    def test_non_zero_exit_with_valid_artifact_succeeds(self, executor, mock_agent, spec_dir):
        mock_agent.add_response(
            "plan", MockResponse(exit_code=1, action=lambda p: write_plan(spec_dir))
        )

        result = executor.execute_phase(spec_dir.name, Phase.PLAN, PLAN_PROMPT, spec_dir=spec_dir)

        assert result.success
        assert result.agent_result.exit_code == 1

    def test_non_zero_exit_is_reported_with_validation_failure(
        self, executor, mock_agent, spec_dir
    ):
        mock_agent.add_response("plan", MockResponse(exit_code=5, stderr="rate limited"))

        result = executor.execute_phase(spec_dir.name, Phase.PLAN, PLAN_PROMPT, spec_dir=spec_dir)

        assert result.outcome == PhaseOutcome.RETRYABLE
        assert "exited with code 5" in str(result.error)
        assert "rate limited" in str(result.error)

    def test_ceiling_from_current_run_applies(self, mock_agent, validator, ledger, spec_dir):
        for _ in range(3):
            ledger.increment(spec_dir.name, "plan", 3)

        executor = PhaseExecutor(mock_agent, validator, ledger, max_retries=5)
        result = executor.execute_phase(spec_dir.name, Phase.PLAN, PLAN_PROMPT, spec_dir=spec_dir)

        assert result.outcome == PhaseOutcome.RETRYABLE
        assert result.retry_count == 4
        assert result.max_retries == 5

    def test_ledger_write_failure_propagates(self, executor, spec_dir):
        with patch.object(Path, "replace", side_effect=OSError("read-only")):
            with pytest.raises(RetryLedgerError):
                executor.execute_phase(spec_dir.name, Phase.PLAN, PLAN_PROMPT, spec_dir=spec_dir)

    def test_callbacks_receive_record_and_command(self, mock_agent, validator, ledger, spec_dir):
        seen = []
        on_start = Mock(
            side_effect=lambda phase, record, command: seen.append((phase, record.count, command))
        )
        executor = PhaseExecutor(mock_agent, validator, ledger, on_phase_start=on_start)

        executor.execute_phase(spec_dir.name, Phase.PLAN, PLAN_PROMPT, spec_dir=spec_dir)

        assert seen == [(Phase.PLAN, 0, f"mock -p {PLAN_PROMPT}")]


class TestRun:
    """Test running sequenced phases."""

    def _plan(self, spec_dir: Path, *phases: Phase) -> SequencePlan:
        return SequencePlan(phases=list(phases), spec=SpecIdentity.from_directory(spec_dir))

    def test_runs_all_phases_in_order(self, executor, mock_agent, spec_dir, specs_dir):
        mock_agent.add_response("plan", MockResponse(action=lambda p: write_plan(spec_dir)))
        mock_agent.add_response("tasks", MockResponse(action=lambda p: write_tasks(spec_dir, ["Pending"])))
        mock_agent.add_response(
            "implement", MockResponse(action=lambda p: write_tasks(spec_dir, ["Completed"]))
        )

        workflow = executor.run(
            self._plan(spec_dir, Phase.PLAN, Phase.TASKS, Phase.IMPLEMENT), specs_dir
        )

        assert workflow.success
        assert workflow.exit_code == 0
        assert [r.phase for r in workflow.results] == [Phase.PLAN, Phase.TASKS, Phase.IMPLEMENT]
        assert mock_agent.prompts == ["/autospec.plan", "/autospec.tasks", "/autospec.implement"]

    def test_stops_at_first_failure(self, executor, mock_agent, spec_dir, specs_dir):
        workflow = executor.run(
            self._plan(spec_dir, Phase.PLAN, Phase.TASKS, Phase.IMPLEMENT), specs_dir
        )

        assert not workflow.success
        assert workflow.exit_code == 1
        assert len(workflow.results) == 1
        assert workflow.failed_result.phase == Phase.PLAN
        assert mock_agent.call_count == 1

    def test_exhausted_phase_sets_exit_code(self, executor, ledger, spec_dir, specs_dir):
        for _ in range(3):
            ledger.increment(spec_dir.name, "plan", 3)

        workflow = executor.run(self._plan(spec_dir, Phase.PLAN, Phase.TASKS), specs_dir)

        assert workflow.exit_code == 2
        assert workflow.failed_result.exhausted

    def test_phase_arguments_reach_prompt(self, executor, mock_agent, spec_dir, specs_dir):
        mock_agent.add_response("plan", MockResponse(action=lambda p: write_plan(spec_dir)))

        executor.run(
            self._plan(spec_dir, Phase.PLAN),
            specs_dir,
            arguments={Phase.PLAN: "focus on security"},
        )

        assert mock_agent.prompts == ['/autospec.plan "focus on security"']

    def test_on_phase_end_called_per_result(self, mock_agent, validator, ledger, spec_dir, specs_dir):
        ended = []
        executor = PhaseExecutor(mock_agent, validator, ledger, on_phase_end=ended.append)
        mock_agent.add_response("plan", MockResponse(action=lambda p: write_plan(spec_dir)))

        executor.run(self._plan(spec_dir, Phase.PLAN, Phase.TASKS), specs_dir)

        assert [(r.phase, r.outcome) for r in ended] == [
            (Phase.PLAN, PhaseOutcome.SUCCEEDED),
            (Phase.TASKS, PhaseOutcome.RETRYABLE),
        ]


class TestSpecifyCreatesSpec:
    """Test specify runs that create a new spec directory."""

    def test_new_spec_is_picked_up_by_later_phases(self, executor, mock_agent, specs_dir, ledger):
        new_dir = specs_dir / "003-dark-mode"

        def create_spec(prompt):
            new_dir.mkdir()
            write_spec(new_dir)

        mock_agent.add_response("specify", MockResponse(action=create_spec))
        mock_agent.add_response("plan", MockResponse(action=lambda p: write_plan(new_dir)))
        plan = PhaseSequencer().resolve(PhaseConfig(specify=True, plan=True), specs_dir)

        workflow = executor.run(
            plan, specs_dir, arguments={Phase.SPECIFY: "Add dark mode to the app"}
        )

        assert workflow.success
        assert workflow.spec.name == "003-dark-mode"
        assert workflow.results[0].spec.directory == new_dir
        assert mock_agent.prompts[0] == '/autospec.specify "Add dark mode to the app"'

        data = json.loads((ledger.path).read_text())
        assert set(data["retries"]) == {"dark-mode-app:specify", "003-dark-mode:plan"}

    def test_specify_without_new_directory_is_retryable(
        self, executor, mock_agent, specs_dir, ledger
    ):
        plan = SequencePlan(phases=[Phase.SPECIFY, Phase.PLAN], spec=None)

        workflow = executor.run(plan, specs_dir, arguments={Phase.SPECIFY: "Add dark mode"})

        result = workflow.results[0]
        assert result.outcome == PhaseOutcome.RETRYABLE
        assert "did not create a spec directory" in str(result.error)
        assert len(workflow.results) == 1
        assert ledger.load("dark-mode", "specify", 3).count == 1

    def test_specify_requires_description(self, executor, specs_dir):
        plan = SequencePlan(phases=[Phase.SPECIFY], spec=None)

        with pytest.raises(InvalidInputError):
            executor.run(plan, specs_dir)


class TestImplementContinuation:
    def test_retry_includes_unfinished_tasks(self, executor, mock_agent, ledger, spec_dir, specs_dir):
        write_tasks(spec_dir, ["Completed", "Pending", "Blocked"])
        ledger.increment(spec_dir.name, "implement", 3)
        plan = SequencePlan(phases=[Phase.IMPLEMENT], spec=SpecIdentity.from_directory(spec_dir))

        executor.run(plan, specs_dir)

        prompt = mock_agent.prompts[0]
        assert prompt.startswith("/autospec.implement\n\n")
        assert "2 task(s) remain unfinished" in prompt
        assert "T002" in prompt

    def test_first_attempt_has_plain_prompt(self, executor, mock_agent, spec_dir, specs_dir):
        write_tasks(spec_dir, ["Pending"])
        plan = SequencePlan(phases=[Phase.IMPLEMENT], spec=SpecIdentity.from_directory(spec_dir))

        executor.run(plan, specs_dir)

        assert mock_agent.prompts == ["/autospec.implement"]


class TestRetryHelpers:
    def test_reset_phase(self, executor, ledger, spec_dir):
        ledger.increment(spec_dir.name, "plan", 3)

        record = executor.reset_phase(spec_dir.name, Phase.PLAN)

        assert record.count == 0
        assert executor.get_retry_state(spec_dir.name, Phase.PLAN).count == 0


class TestActivityLogging:
    def test_phase_events_are_logged(self, mock_agent, validator, ledger, spec_dir, tmp_path):
        activity_logger = ActivityLogger(tmp_path / "logs", session_id="test-session")
        executor = PhaseExecutor(
            mock_agent, validator, ledger, activity_logger=activity_logger
        )

        executor.execute_phase(spec_dir.name, Phase.PLAN, PLAN_PROMPT, spec_dir=spec_dir)
        executor.reset_phase(spec_dir.name, Phase.PLAN)

        events = [e.event_type.value for e in activity_logger.get_recent_events()]
        assert events == ["phase_start", "agent_execute", "phase_fail", "retry_reset"]

        agent_log = activity_logger.agent_log_file.read_text().splitlines()
        assert len(agent_log) == 1
        assert json.loads(agent_log[0])["command"] == f"mock -p {PLAN_PROMPT}"


def test_phase_result_exit_codes():
    assert PhaseResult(Phase.PLAN, PhaseOutcome.SUCCEEDED).exit_code == 0
    assert PhaseResult(Phase.PLAN, PhaseOutcome.RETRYABLE).exit_code == 1
    assert PhaseResult(Phase.PLAN, PhaseOutcome.EXHAUSTED).exit_code == 2


def test_build_phase_prompt_escapes_quotes():
    prompt = build_phase_prompt(Phase.SPECIFY, 'Say "hi"')

    assert prompt == '/autospec.specify "Say \\"hi\\""'
