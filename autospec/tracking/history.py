"""Command history stored in ``<state>/history.yaml``."""

from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from ..core.exceptions import ExecutionError

HISTORY_FILE_NAME = "history.yaml"
MAX_HISTORY_ENTRIES = 500


class HistoryEntry(BaseModel):
    """One recorded autospec command."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    command: str = Field(..., description="Command name, e.g. 'plan' or 'run'")
    spec: Optional[str] = Field(None, description="Spec the command ran against")
    exit_code: int = Field(..., description="Process exit code")
    duration_seconds: float = Field(default=0.0, ge=0, description="Wall-clock duration")


class HistoryFile(BaseModel):
    entries: List[HistoryEntry] = Field(default_factory=list)


class HistoryStore:
    """Append-only command history with a bounded size.

    A history file that cannot be parsed reads as empty. It is moved aside
    to a ``.bak`` file before the next write replaces it.
    """

    def __init__(self, state_dir: Path, max_entries: int = MAX_HISTORY_ENTRIES):
        self.state_dir = Path(state_dir)
        self.path = self.state_dir / HISTORY_FILE_NAME
        self.max_entries = max_entries

    def load(self) -> List[HistoryEntry]:
        """All entries, oldest first."""
        return self._read() or []

    def _read(self) -> Optional[List[HistoryEntry]]:
        """Entries on disk, or None if the file is corrupt."""
        if not self.path.exists():
            return []

        try:
            data = yaml.safe_load(self.path.read_text(encoding="utf-8"))
            if data is None:
                return []
            if not isinstance(data, dict):
                raise ValueError("history file must contain a mapping")
            return HistoryFile.model_validate(data).entries
        except (OSError, ValueError, yaml.YAMLError, ValidationError):
            return None

    def record(
        self,
        command: str,
        exit_code: int,
        spec: Optional[str] = None,
        duration_seconds: float = 0.0,
    ) -> HistoryEntry:
        """Append an entry and rewrite the file atomically."""
        entry = HistoryEntry(
            command=command,
            spec=spec,
            exit_code=exit_code,
            duration_seconds=round(duration_seconds, 3),
        )
        entries = self._read()
        if entries is None:
            self._backup_corrupt_file()
            entries = []
        entries.append(entry)
        self._write(entries[-self.max_entries:])
        return entry

    def query(self, spec: Optional[str] = None, limit: Optional[int] = None) -> List[HistoryEntry]:
        """Most recent entries first, optionally filtered by spec."""
        entries = [e for e in reversed(self.load()) if spec is None or e.spec == spec]
        return entries[:limit] if limit else entries

    def clear(self) -> None:
        if self._read() is None:
            self._backup_corrupt_file()
        self._write([])

    def _write(self, entries: List[HistoryEntry]) -> None:
        try:
            self.state_dir.mkdir(parents=True, exist_ok=True)
            temp_file = self.path.with_name(self.path.name + ".tmp")
            data = HistoryFile(entries=entries).model_dump(mode="json")
            with open(temp_file, "w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
            temp_file.replace(self.path)
        except OSError as e:
            raise ExecutionError(f"Failed to write history to {self.path}: {e}") from e

    def _backup_corrupt_file(self) -> Path:
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
        backup = self.path.with_name(f"{self.path.name}.{timestamp}.bak")
        try:
            self.path.replace(backup)
        except OSError as e:
            raise ExecutionError(
                f"Failed to back up corrupt history {self.path}: {e}"
            ) from e
        return backup
