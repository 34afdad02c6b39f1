"""Task status counting for task list artifacts.

Supports the structured ``tasks.yaml`` format (``phases[*].tasks[*].status``)
and plain Markdown checklists (``- [ ]`` / ``- [x]``).
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml


class TaskStatus(str, Enum):
    """Task lifecycle status as written in task artifacts."""

    PENDING = "Pending"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    BLOCKED = "Blocked"


_STATUS_ALIASES = {
    "pending": TaskStatus.PENDING,
    "todo": TaskStatus.PENDING,
    "inprogress": TaskStatus.IN_PROGRESS,
    "started": TaskStatus.IN_PROGRESS,
    "completed": TaskStatus.COMPLETED,
    "complete": TaskStatus.COMPLETED,
    "done": TaskStatus.COMPLETED,
    "blocked": TaskStatus.BLOCKED,
}

_CHECKBOX_PATTERN = re.compile(r"^\s*[-*]\s+\[([ xX])\]\s*(.*)$")
_HEADING_PATTERN = re.compile(r"^#{2,}\s+(.*)$")


def normalize_status(value: Any) -> TaskStatus:
    """Map a free-form status string onto TaskStatus.

    Matching ignores case, spaces, dashes and underscores. Anything
    unrecognised counts as pending.
    """
    if value is None:
        return TaskStatus.PENDING
    key = re.sub(r"[\s_\-]", "", str(value)).lower()
    return _STATUS_ALIASES.get(key, TaskStatus.PENDING)


@dataclass
class TaskEntry:
    """One task from a task list."""

    id: str
    title: str
    status: TaskStatus


@dataclass
class TaskGroup:
    """A named group of tasks (a task phase or a Markdown section)."""

    name: str
    tasks: List[TaskEntry] = field(default_factory=list)

    @property
    def incomplete(self) -> List[TaskEntry]:
        return [t for t in self.tasks if t.status != TaskStatus.COMPLETED]

    @property
    def completed_count(self) -> int:
        return len(self.tasks) - len(self.incomplete)


@dataclass
class TaskStats:
    """Counts of tasks by status."""

    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    blocked: int = 0
    groups: List[TaskGroup] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.pending + self.in_progress + self.completed + self.blocked

    @property
    def remaining(self) -> int:
        return self.pending + self.in_progress + self.blocked

    def is_complete(self) -> bool:
        return self.remaining == 0

    def breakdown(self) -> str:
        """Non-zero remaining counts, e.g. ``"2 pending, 1 blocked"``."""
        parts = []
        for count, label in (
            (self.pending, "pending"),
            (self.in_progress, "in-progress"),
            (self.blocked, "blocked"),
        ):
            if count:
                parts.append(f"{count} {label}")
        return ", ".join(parts)

    def summary(self) -> str:
        noun = "task" if self.remaining == 1 else "tasks"
        return f"{self.remaining} {noun} remain ({self.breakdown()})"

    def add(self, group: TaskGroup) -> None:
        self.groups.append(group)
        for task in group.tasks:
            if task.status == TaskStatus.PENDING:
                self.pending += 1
            elif task.status == TaskStatus.IN_PROGRESS:
                self.in_progress += 1
            elif task.status == TaskStatus.COMPLETED:
                self.completed += 1
            else:
                self.blocked += 1


def stats_from_yaml_data(data: Dict[str, Any]) -> TaskStats:
    """Count tasks in a parsed ``tasks.yaml`` document."""
    stats = TaskStats()

    phases = data.get("phases") or []
    if isinstance(phases, list):
        for index, phase in enumerate(phases, start=1):
            if not isinstance(phase, dict):
                continue
            name = str(phase.get("title") or phase.get("name") or f"Phase {index}")
            stats.add(TaskGroup(name=name, tasks=_parse_task_list(phase.get("tasks"))))

    # Some task files list tasks at the top level instead of per phase
    top_level = data.get("tasks")
    if isinstance(top_level, list):
        stats.add(TaskGroup(name="Tasks", tasks=_parse_task_list(top_level)))

    return stats


def stats_from_markdown(text: str) -> TaskStats:
    """Count checkbox tasks in a Markdown task list."""
    stats = TaskStats()
    current = TaskGroup(name="Tasks")
    counter = 0

    for line in text.splitlines():
        heading = _HEADING_PATTERN.match(line)
        if heading:
            if current.tasks:
                stats.add(current)
            current = TaskGroup(name=heading.group(1).strip())
            continue

        match = _CHECKBOX_PATTERN.match(line)
        if match:
            counter += 1
            checked = match.group(1).lower() == "x"
            current.tasks.append(
                TaskEntry(
                    id=f"T{counter:03d}",
                    title=match.group(2).strip(),
                    status=TaskStatus.COMPLETED if checked else TaskStatus.PENDING,
                )
            )

    if current.tasks:
        stats.add(current)
    return stats


def get_task_stats(tasks_path: Path) -> TaskStats:
    """Read a task file and count its tasks by status.

    Raises:
        OSError: If the file cannot be read
        yaml.YAMLError: If a YAML task file cannot be parsed
        ValueError: If a YAML task file is not a mapping
    """
    tasks_path = Path(tasks_path)
    text = tasks_path.read_text(encoding="utf-8")

    if tasks_path.suffix == ".md":
        return stats_from_markdown(text)

    data = yaml.safe_load(text)
    if not isinstance(data, dict):
        raise ValueError(f"{tasks_path.name} must contain a YAML mapping")
    return stats_from_yaml_data(data)


def _parse_task_list(raw: Optional[Any]) -> List[TaskEntry]:
    tasks: List[TaskEntry] = []
    if not isinstance(raw, list):
        return tasks
    for index, item in enumerate(raw, start=1):
        if not isinstance(item, dict):
            continue
        tasks.append(
            TaskEntry(
                id=str(item.get("id") or f"T{index:03d}"),
                title=str(item.get("title") or item.get("description") or ""),
                status=normalize_status(item.get("status")),
            )
        )
    return tasks
