"""Per-phase validation of workflow artifacts.

Validation is read-only and cheap: it checks that the artifact a phase is
responsible for exists, parses, and carries its minimum required top-level
fields. For the implement phase it also requires every task in the task
list to be completed.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .exceptions import ArtifactValidationError
from .phases import Phase
from .task_stats import TaskStats, get_task_stats

CONSTITUTION_DIR = Path(".autospec") / "memory"

REQUIRED_FIELDS: Dict[Phase, Tuple[str, ...]] = {
    Phase.CONSTITUTION: ("constitution", "principles"),
    Phase.SPECIFY: ("feature", "user_stories", "requirements"),
    Phase.CLARIFY: ("feature", "user_stories", "requirements"),
    Phase.PLAN: ("plan", "summary", "technical_context"),
    Phase.TASKS: ("tasks", "summary", "phases"),
    Phase.CHECKLIST: ("checklist", "items"),
    Phase.ANALYZE: ("analysis", "summary"),
}

MAX_LISTED_TASKS = 5


@dataclass
class ValidationOutcome:
    """Result of validating one phase artifact."""

    phase: Phase
    passed: bool
    errors: List[str] = field(default_factory=list)
    hint: Optional[str] = None
    artifact_path: Optional[Path] = None
    continuation_prompt: Optional[str] = None

    @property
    def message(self) -> str:
        """Errors joined for display, followed by the hint if any."""
        if self.passed:
            return f"{self.phase.value} artifact is valid"
        text = "; ".join(self.errors) or f"{self.phase.value} validation failed"
        if self.hint:
            text += f" - {self.hint}"
        return text

    def to_error(self) -> ArtifactValidationError:
        return ArtifactValidationError(self.message, hint=self.hint)


def artifact_exists(spec_dir: Path, phase: Phase) -> bool:
    """Whether any accepted artifact for a phase exists in a spec directory."""
    return any((Path(spec_dir) / name).exists() for name in phase.artifact_candidates)


class ArtifactValidator:
    """Validates the artifact each phase is expected to produce.

    Example:
        >>> validator = ArtifactValidator(project_dir=Path.cwd())
        >>> outcome = validator.validate(Path("specs/001-login"), Phase.PLAN)
        >>> if not outcome.passed:
        ...     print(outcome.message)
    """

    def __init__(self, project_dir: Optional[Path] = None):
        """Initialize validator.

        Args:
            project_dir: Project root, used to locate the constitution
                (default: current directory)
        """
        self.project_dir = Path(project_dir) if project_dir else Path.cwd()

    def artifact_path(self, spec_dir: Optional[Path], phase: Phase) -> Path:
        """Location of the artifact for a phase.

        Returns the first accepted file name that exists, so a Markdown
        artifact is found when no YAML one was written. Falls back to the
        preferred name when none exists.
        """
        if phase == Phase.CONSTITUTION:
            base = self.project_dir / CONSTITUTION_DIR
        elif spec_dir is None:
            raise ArtifactValidationError(
                f"No spec directory to validate {phase.value} against"
            )
        else:
            base = Path(spec_dir)
        for name in phase.artifact_candidates:
            if (base / name).exists():
                return base / name
        return base / phase.artifact

    def validate(self, spec_dir: Optional[Path], phase: Phase) -> ValidationOutcome:
        """Validate the artifact for a phase.

        Parse errors and missing fields are reported in the outcome, never
        raised.
        """
        if phase != Phase.CONSTITUTION and spec_dir is None:
            return ValidationOutcome(
                phase=phase,
                passed=False,
                errors=["no spec directory found"],
                hint="run 'autospec specify' to create a spec",
            )

        if phase == Phase.IMPLEMENT:
            return self._validate_implement(Path(spec_dir))
        if phase == Phase.CHECKLIST:
            return self._validate_checklists(Path(spec_dir))

        path = self.artifact_path(spec_dir, phase)
        if not path.is_file():
            return self._missing(spec_dir, phase, path)

        errors = self._check_fields(path, REQUIRED_FIELDS[phase])
        return ValidationOutcome(
            phase=phase,
            passed=not errors,
            errors=errors,
            hint=None if not errors else f"re-run 'autospec {phase.value}' to fix {path.name}",
            artifact_path=path,
        )

    def _missing(
        self, spec_dir: Optional[Path], phase: Phase, path: Path
    ) -> ValidationOutcome:
        prerequisite = phase.prerequisite
        hint = f"run 'autospec {phase.value}' to create it"
        if prerequisite is not None and spec_dir is not None:
            prerequisite_path = self.artifact_path(spec_dir, prerequisite)
            if prerequisite_path == path:
                hint = f"run 'autospec {prerequisite.value}' to create {path.name}"
            elif not prerequisite_path.exists():
                hint = (
                    f"{path.name} requires {prerequisite_path.name} - "
                    f"run 'autospec {prerequisite.value}' first"
                )
        location = path.parent if spec_dir is None else Path(spec_dir)
        return ValidationOutcome(
            phase=phase,
            passed=False,
            errors=[f"{path.name} not found in {location}"],
            hint=hint,
            artifact_path=path,
        )

    def _check_fields(self, path: Path, required: Tuple[str, ...]) -> List[str]:
        # Markdown artifacts have no schema, only content
        if path.suffix == ".md":
            return self._check_markdown(path)
        return self._check_yaml_fields(path, required)

    def _check_markdown(self, path: Path) -> List[str]:
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            return [f"failed to read {path.name}: {e}"]
        return [] if text.strip() else [f"{path.name} is empty"]

    def _check_yaml_fields(self, path: Path, required: Tuple[str, ...]) -> List[str]:
        """Return problems with a YAML artifact (empty when valid)."""
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            return [f"failed to read {path.name}: {e}"]

        if not text.strip():
            return [f"{path.name} is empty"]

        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            return [f"invalid YAML in {path.name}: {e}"]

        if not isinstance(data, dict):
            return [f"{path.name} must contain a YAML mapping, got {type(data).__name__}"]

        errors = []
        for name in required:
            if name not in data:
                errors.append(f"{path.name}: missing required field '{name}'")
            elif _is_blank(data[name]):
                errors.append(f"{path.name}: required field '{name}' is empty")
        return errors

    def _validate_checklists(self, spec_dir: Path) -> ValidationOutcome:
        checklist_dir = spec_dir / Phase.CHECKLIST.artifact
        files: List[Path] = []
        if checklist_dir.is_dir():
            files = sorted(
                p for p in checklist_dir.iterdir() if p.suffix in (".yaml", ".md")
            )
        if not files:
            return self._missing(spec_dir, Phase.CHECKLIST, checklist_dir)

        errors: List[str] = []
        for path in files:
            errors.extend(self._check_fields(path, REQUIRED_FIELDS[Phase.CHECKLIST]))
        return ValidationOutcome(
            phase=Phase.CHECKLIST,
            passed=not errors,
            errors=errors,
            hint=None if not errors else "re-run 'autospec checklist' to fix the checklists",
            artifact_path=checklist_dir,
        )

    def _validate_implement(self, spec_dir: Path) -> ValidationOutcome:
        tasks_path = self.artifact_path(spec_dir, Phase.IMPLEMENT)
        if not tasks_path.is_file():
            return self._missing(spec_dir, Phase.IMPLEMENT, tasks_path)

        try:
            stats = get_task_stats(tasks_path)
        except (OSError, ValueError, yaml.YAMLError) as e:
            return ValidationOutcome(
                phase=Phase.IMPLEMENT,
                passed=False,
                errors=[f"failed to parse {tasks_path.name}: {e}"],
                hint="run 'autospec tasks' to regenerate the task list",
                artifact_path=tasks_path,
            )

        if stats.total == 0:
            return ValidationOutcome(
                phase=Phase.IMPLEMENT,
                passed=False,
                errors=[f"{tasks_path.name} contains no tasks"],
                hint="run 'autospec tasks' to generate the task list",
                artifact_path=tasks_path,
            )

        if stats.is_complete():
            return ValidationOutcome(
                phase=Phase.IMPLEMENT, passed=True, artifact_path=tasks_path
            )

        return ValidationOutcome(
            phase=Phase.IMPLEMENT,
            passed=False,
            errors=[f"implementation incomplete: {stats.summary()}"],
            hint="run 'autospec implement' to continue",
            artifact_path=tasks_path,
            continuation_prompt=build_continuation_prompt(spec_dir, stats),
        )


def build_continuation_prompt(spec_dir: Path, stats: TaskStats) -> str:
    """Describe unfinished work so the agent can pick up where it stopped."""
    lines = [
        f"The implement phase is incomplete. {stats.remaining} task(s) remain unfinished.",
    ]
    for group in stats.groups:
        incomplete = group.incomplete
        if not incomplete:
            continue
        lines.append("")
        lines.append(
            f"## {group.name} ({group.completed_count}/{len(group.tasks)} tasks complete)"
        )
        for task in incomplete[:MAX_LISTED_TASKS]:
            lines.append(f"- [{task.status.value}] {task.id}: {task.title}")
        extra = len(incomplete) - MAX_LISTED_TASKS
        if extra > 0:
            lines.append(f"... and {extra} more unfinished tasks")

    lines.append("")
    lines.append(f"Please continue working on the implementation for {spec_dir}.")
    return "\n".join(lines)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, list, dict)) and not value:
        return True
    return False
