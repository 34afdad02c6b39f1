"""Phase sequencing and pre-flight checks.

Turns a requested set of phases into the canonical execution order,
identifies the spec to operate on, and describes (without acting on) any
prerequisite artifacts that are missing.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from ..core.artifact_validator import artifact_exists
from ..core.exceptions import InvalidInputError, SpecResolutionError
from ..core.phases import Phase, PhaseConfig
from ..core.spec_resolver import SpecIdentity, SpecResolver, get_spec_directory


@dataclass
class PreflightWarning:
    """A requested phase whose prerequisite artifact is missing."""

    phase: Phase
    prerequisite: Phase
    missing_artifact: str

    @property
    def suggestion(self) -> str:
        return (
            f"add {self.prerequisite.short_flag}/{self.prerequisite.flag} "
            f"to run {self.prerequisite.value} first"
        )

    @property
    def message(self) -> str:
        return (
            f"{self.phase.value} requires {self.missing_artifact}, which does not exist "
            f"- {self.suggestion}"
        )


@dataclass
class SequencePlan:
    """Ordered phases plus the spec they run against."""

    phases: List[Phase]
    spec: Optional[SpecIdentity]
    warnings: List[PreflightWarning] = field(default_factory=list)

    @property
    def creates_spec(self) -> bool:
        """True when the specify phase will create the spec."""
        return self.spec is None and Phase.SPECIFY in self.phases


class PhaseSequencer:
    """Resolves requested phases into an executable plan."""

    def __init__(
        self,
        resolver: Optional[SpecResolver] = None,
        exists: Callable[[Path, Phase], bool] = artifact_exists,
    ):
        """Initialize sequencer.

        Args:
            resolver: Spec resolver used when no spec is named
            exists: Artifact existence check ``(spec_dir, phase) -> bool``
        """
        self.resolver = resolver or SpecResolver()
        self.exists = exists

    def resolve(
        self,
        phase_config: PhaseConfig,
        specs_dir: Path,
        spec_name: Optional[str] = None,
    ) -> SequencePlan:
        """Build the execution plan.

        Raises:
            InvalidInputError: If no phases were requested
            SpecResolutionError: If no spec can be found and none will be
                created by the specify phase
        """
        phases = phase_config.ordered_phases()
        if not phases:
            raise InvalidInputError("No phases requested")

        spec = self._resolve_spec(phases, Path(specs_dir), spec_name)
        return SequencePlan(
            phases=phases,
            spec=spec,
            warnings=self.check_prerequisites(phases, spec),
        )

    def check_prerequisites(
        self, phases: List[Phase], spec: Optional[SpecIdentity]
    ) -> List[PreflightWarning]:
        """Warnings for phases whose prerequisite will be missing."""
        warnings = []
        for phase in phases:
            prerequisite = phase.prerequisite
            if prerequisite is None or prerequisite in phases:
                continue
            if spec is not None and self.exists(spec.directory, prerequisite):
                continue
            warnings.append(
                PreflightWarning(
                    phase=phase,
                    prerequisite=prerequisite,
                    missing_artifact=prerequisite.artifact,
                )
            )
        return warnings

    def _resolve_spec(
        self, phases: List[Phase], specs_dir: Path, spec_name: Optional[str]
    ) -> Optional[SpecIdentity]:
        creates_spec = Phase.SPECIFY in phases

        if spec_name:
            try:
                return SpecIdentity.from_directory(get_spec_directory(specs_dir, spec_name))
            except SpecResolutionError:
                if creates_spec:
                    return None
                raise

        if creates_spec:
            return None

        if all(phase == Phase.CONSTITUTION for phase in phases):
            return None

        return self.resolver.resolve(specs_dir)
