"""Durable per-(spec, phase) retry ledger.

The ledger is a single JSON document (``retry.json``) mapping
``"<spec>:<phase>"`` keys to retry records. It is always rewritten as a
whole: the full store is re-read, the record merged in, and the result
written to a temporary file that is then renamed over the canonical path.
A reader therefore only ever sees the last completed write.

A ledger file that cannot be parsed is treated as empty. This means a
corrupted file resets the counters of *every* spec and phase it held, not
just the one being touched. The corrupt file is renamed to a ``.bak``
backup on the next save so its content can still be inspected.
"""

import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from .exceptions import RetryExhaustedError, RetryLedgerError

RETRY_FILE_NAME = "retry.json"


def retry_key(spec_name: str, phase: str) -> str:
    """Ledger key for a (spec, phase) pair."""
    return f"{spec_name}:{phase}"


class RetryRecord(BaseModel):
    """Retry tracking for one spec and phase combination."""

    spec_name: str = Field(..., description="Spec identifier")
    phase: str = Field(..., description="Phase identifier")
    count: int = Field(default=0, ge=0, description="Failed attempts so far")
    last_attempt: Optional[datetime] = Field(
        default=None, description="Time of the last failed attempt"
    )
    max_retries: int = Field(default=3, ge=0, description="Retry ceiling for this run")

    @property
    def key(self) -> str:
        return retry_key(self.spec_name, self.phase)

    @property
    def remaining(self) -> int:
        return max(self.max_retries - self.count, 0)

    def can_retry(self) -> bool:
        """Return True if another failure can still be recorded."""
        return self.count < self.max_retries

    def increment(self) -> None:
        """Record one more failed attempt.

        Does not persist; callers save the record themselves.

        Raises:
            RetryExhaustedError: If the ceiling has been reached. The record
                is left unchanged.
        """
        if not self.can_retry():
            raise RetryExhaustedError(
                spec_name=self.spec_name,
                phase=self.phase,
                count=self.count,
                max_retries=self.max_retries,
            )
        self.count += 1
        self.last_attempt = datetime.now(timezone.utc)

    def reset(self) -> None:
        """Clear the attempt count and timestamp."""
        self.count = 0
        self.last_attempt = None


class RetryStore(BaseModel):
    """On-disk representation of the whole ledger."""

    retries: Dict[str, RetryRecord] = Field(default_factory=dict)


class RetryLedger:
    """Sole reader and writer of the retry ledger file."""

    def __init__(self, state_dir: Path):
        """Initialize the ledger.

        Args:
            state_dir: Directory holding ``retry.json``. Created lazily on
                the first save.
        """
        self.state_dir = Path(state_dir)
        self.path = self.state_dir / RETRY_FILE_NAME

    def load(self, spec_name: str, phase: str, max_retries: int) -> RetryRecord:
        """Load the record for a spec and phase.

        The ceiling of the current run always replaces whatever ceiling was
        persisted, since retry limits are run-time policy.

        Returns:
            The stored record, or a fresh zero-count record if the pair is
            unknown or the ledger is missing or corrupt.
        """
        store = self._read_store()
        record = store.retries.get(retry_key(spec_name, phase)) if store else None
        if record is None:
            return RetryRecord(spec_name=spec_name, phase=phase, max_retries=max_retries)
        record.max_retries = max_retries
        return record

    def save(self, record: RetryRecord) -> None:
        """Merge a record into the ledger and write it atomically.

        Raises:
            RetryLedgerError: If the directory or file cannot be written.
        """
        try:
            self.state_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise RetryLedgerError(
                f"Failed to create state directory {self.state_dir}: {e}"
            ) from e

        store = self._read_store()
        if store is None:
            if self.path.exists():
                self._backup_corrupt_file()
            store = RetryStore()

        store.retries[record.key] = record
        self._write_store(store)

    def increment(self, spec_name: str, phase: str, max_retries: int) -> RetryRecord:
        """Load, increment and save in one step."""
        record = self.load(spec_name, phase, max_retries)
        record.increment()
        self.save(record)
        return record

    def reset(self, spec_name: str, phase: str, max_retries: int = 3) -> RetryRecord:
        """Load, reset and save in one step.

        The record stays in the ledger with a zero count.
        """
        record = self.load(spec_name, phase, max_retries)
        record.reset()
        self.save(record)
        return record

    def all_records(self) -> List[RetryRecord]:
        """Every record in the ledger, sorted by key."""
        store = self._read_store()
        if store is None:
            return []
        return [store.retries[key] for key in sorted(store.retries)]

    def records_for_spec(self, spec_name: str) -> List[RetryRecord]:
        return [r for r in self.all_records() if r.spec_name == spec_name]

    def _read_store(self) -> Optional[RetryStore]:
        """Read the full store, returning None when absent or unparsable."""
        if not self.path.exists():
            return None

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                return None
            if data.get("retries") is None:
                data["retries"] = {}
            return RetryStore.model_validate(data)
        except (OSError, ValueError, ValidationError):
            return None

    def _write_store(self, store: RetryStore) -> None:
        temp_file = self.path.with_name(self.path.name + ".tmp")
        data = store.model_dump(mode="json")

        try:
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.flush()
                os.fsync(f.fileno())

            # Rename is atomic on POSIX and Windows for same-directory paths
            temp_file.replace(self.path)

        except OSError as e:
            temp_file.unlink(missing_ok=True)
            raise RetryLedgerError(f"Failed to save retry state to {self.path}: {e}") from e

    def _backup_corrupt_file(self) -> Path:
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
        backup = self.path.with_name(f"{self.path.name}.{timestamp}.bak")
        try:
            self.path.replace(backup)
        except OSError as e:
            raise RetryLedgerError(
                f"Failed to back up corrupt retry state {self.path}: {e}"
            ) from e
        return backup
