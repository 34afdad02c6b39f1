"""Workflow phase definitions and canonical ordering."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .exceptions import InvalidInputError


class Phase(str, Enum):
    """Workflow phases.

    The declaration order is the canonical execution order.
    """

    CONSTITUTION = "constitution"
    SPECIFY = "specify"
    CLARIFY = "clarify"
    PLAN = "plan"
    TASKS = "tasks"
    CHECKLIST = "checklist"
    ANALYZE = "analyze"
    IMPLEMENT = "implement"

    @property
    def position(self) -> int:
        """1-based position in the canonical order."""
        return _POSITIONS[self]

    @property
    def artifact(self) -> str:
        """Artifact file name this phase creates or updates."""
        return PHASE_ARTIFACTS[self]

    @property
    def artifact_candidates(self) -> Tuple[str, ...]:
        """Accepted artifact file names, preferred first."""
        return PHASE_ARTIFACT_CANDIDATES[self]

    @property
    def prerequisite(self) -> Optional["Phase"]:
        """Phase whose artifact must exist before this one can run."""
        return PHASE_PREREQUISITES.get(self)

    @property
    def flag(self) -> str:
        return f"--{self.value}"

    @property
    def short_flag(self) -> str:
        return f"-{PHASE_SHORT_FLAGS[self]}"

    @property
    def is_core(self) -> bool:
        """Whether the phase belongs to the specify/plan/tasks/implement core."""
        return self in CORE_PHASES

    @classmethod
    def parse(cls, value: str) -> "Phase":
        """Parse a phase name, raising InvalidInputError for unknown names."""
        try:
            return cls(value.strip().lower())
        except ValueError:
            valid = ", ".join(p.value for p in cls)
            raise InvalidInputError(
                f"Unknown phase '{value}'. Valid phases: {valid}"
            ) from None


CANONICAL_ORDER: List[Phase] = list(Phase)

_POSITIONS: Dict[Phase, int] = {phase: i + 1 for i, phase in enumerate(CANONICAL_ORDER)}

CORE_PHASES = (Phase.SPECIFY, Phase.PLAN, Phase.TASKS, Phase.IMPLEMENT)

PHASE_ARTIFACTS: Dict[Phase, str] = {
    Phase.CONSTITUTION: "constitution.yaml",
    Phase.SPECIFY: "spec.yaml",
    Phase.CLARIFY: "spec.yaml",
    Phase.PLAN: "plan.yaml",
    Phase.TASKS: "tasks.yaml",
    Phase.CHECKLIST: "checklists",
    Phase.ANALYZE: "analysis.yaml",
    Phase.IMPLEMENT: "tasks.yaml",
}

# YAML first, Markdown as a fallback for agents that write Markdown artifacts
PHASE_ARTIFACT_CANDIDATES: Dict[Phase, Tuple[str, ...]] = {
    phase: (name, name[: -len(".yaml")] + ".md") if name.endswith(".yaml") else (name,)
    for phase, name in PHASE_ARTIFACTS.items()
}

PHASE_PREREQUISITES: Dict[Phase, Phase] = {
    Phase.CLARIFY: Phase.SPECIFY,
    Phase.PLAN: Phase.SPECIFY,
    Phase.TASKS: Phase.PLAN,
    Phase.CHECKLIST: Phase.SPECIFY,
    Phase.ANALYZE: Phase.TASKS,
    Phase.IMPLEMENT: Phase.TASKS,
}

PHASE_SHORT_FLAGS: Dict[Phase, str] = {
    Phase.CONSTITUTION: "n",
    Phase.SPECIFY: "s",
    Phase.CLARIFY: "r",
    Phase.PLAN: "p",
    Phase.TASKS: "t",
    Phase.CHECKLIST: "l",
    Phase.ANALYZE: "z",
    Phase.IMPLEMENT: "i",
}


@dataclass
class PhaseConfig:
    """Requested set of phases.

    ``all`` is shorthand for every phase and is expanded before ordering.
    """

    constitution: bool = False
    specify: bool = False
    clarify: bool = False
    plan: bool = False
    tasks: bool = False
    checklist: bool = False
    analyze: bool = False
    implement: bool = False
    all: bool = False

    @classmethod
    def from_phases(cls, phases) -> "PhaseConfig":
        """Build a config from an iterable of Phase values or names."""
        config = cls()
        for phase in phases:
            if not isinstance(phase, Phase):
                phase = Phase.parse(phase)
            setattr(config, phase.value, True)
        return config

    def ordered_phases(self) -> List[Phase]:
        """Requested phases in canonical order."""
        if self.all:
            return list(CANONICAL_ORDER)
        return [phase for phase in CANONICAL_ORDER if getattr(self, phase.value)]

    def includes(self, phase: Phase) -> bool:
        return self.all or getattr(self, phase.value)

    def is_empty(self) -> bool:
        return not self.ordered_phases()
