"""Orchestration layer for running workflow phases.

Sequences the requested phases, then executes them one at a time through
the configured agent with bounded, persistent retries.
"""

from .phase_executor import (
    PhaseExecutor,
    PhaseOutcome,
    PhaseResult,
    WorkflowResult,
    reset_retries,
)
from .prompts import build_phase_prompt
from .sequencer import PhaseSequencer, PreflightWarning, SequencePlan

__all__ = [
    "PhaseExecutor",
    "PhaseOutcome",
    "PhaseResult",
    "WorkflowResult",
    "PhaseSequencer",
    "PreflightWarning",
    "SequencePlan",
    "build_phase_prompt",
    "reset_retries",
]
