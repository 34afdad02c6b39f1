"""Helpers that write minimal valid workflow artifacts."""

from pathlib import Path
from typing import Iterable, Tuple

import yaml


def _dump(path: Path, data: dict) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    return path


def write_constitution(project_dir: Path) -> Path:
    return _dump(
        project_dir / ".autospec" / "memory" / "constitution.yaml",
        {
            "constitution": {"project_name": "demo", "version": "1.0.0"},
            "principles": [{"name": "Test first", "description": "Write tests first"}],
        },
    )


def write_spec(spec_dir: Path, feature: str = "Dark mode") -> Path:
    return _dump(
        spec_dir / "spec.yaml",
        {
            "feature": {"name": feature, "status": "draft"},
            "user_stories": [{"id": "US-001", "title": "Toggle theme"}],
            "requirements": {"functional": [{"id": "FR-001", "description": "Theme toggle"}]},
        },
    )


def write_plan(spec_dir: Path) -> Path:
    return _dump(
        spec_dir / "plan.yaml",
        {
            "plan": {"branch": spec_dir.name},
            "summary": "Add a theme toggle to the settings page",
            "technical_context": {"language": "Python"},
        },
    )


def write_tasks(
    spec_dir: Path,
    statuses: Iterable[str] = ("Completed",),
    name: str = "tasks.yaml",
) -> Path:
    """Write a task list with one task per status, all in one phase."""
    tasks = [
        {"id": f"T{i:03d}", "title": f"Task {i}", "status": status}
        for i, status in enumerate(statuses, start=1)
    ]
    return _dump(
        spec_dir / name,
        {
            "tasks": {"branch": spec_dir.name},
            "summary": {"total_tasks": len(tasks)},
            "phases": [{"number": 1, "title": "Setup", "tasks": tasks}],
        },
    )


def write_checklist(spec_dir: Path, name: str = "ux.yaml") -> Path:
    return _dump(
        spec_dir / "checklists" / name,
        {
            "checklist": {"feature": spec_dir.name, "domain": "ux"},
            "items": [{"id": "CHK001", "description": "Toggle is discoverable"}],
        },
    )


def write_analysis(spec_dir: Path) -> Path:
    return _dump(
        spec_dir / "analysis.yaml",
        {"analysis": {"spec": spec_dir.name}, "summary": {"issues": 0}},
    )


def make_spec_dir(specs_dir: Path, name: str = "001-dark-mode", with_spec: bool = True) -> Path:
    spec_dir = specs_dir / name
    spec_dir.mkdir(parents=True, exist_ok=True)
    if with_spec:
        write_spec(spec_dir)
    return spec_dir


def task_counts(*pairs: Tuple[str, int]) -> list:
    """Expand ``("Completed", 7), ("Pending", 2)`` into a status list."""
    statuses = []
    for status, count in pairs:
        statuses.extend([status] * count)
    return statuses

