"""Activity logging for autospec runs.

Events are appended as JSON lines to ``<logs>/sessions/<session>/``:
``activity.jsonl`` holds every event, ``agent_runs.jsonl`` holds the
details of each agent invocation.
"""

import json
import threading
import uuid
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """Types of events that can be logged."""

    RUN_START = "run_start"
    RUN_END = "run_end"
    PREFLIGHT_WARNING = "preflight_warning"
    PHASE_START = "phase_start"
    PHASE_COMPLETE = "phase_complete"
    PHASE_FAIL = "phase_fail"
    PHASE_EXHAUSTED = "phase_exhausted"
    AGENT_EXECUTE = "agent_execute"
    RETRY_RESET = "retry_reset"
    INFO = "info"


class ActivityEvent(BaseModel):
    """Activity event model."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    event_type: EventType = Field(..., description="Type of event")
    session_id: str = Field(..., description="Session identifier")
    spec_name: Optional[str] = Field(None, description="Spec identifier")
    phase: Optional[str] = Field(None, description="Workflow phase")
    message: str = Field(..., description="Event message")

    data: Dict[str, Any] = Field(
        default_factory=dict, description="Additional event data"
    )

    duration_ms: Optional[int] = Field(None, description="Duration in milliseconds")
    exit_code: Optional[int] = Field(None, description="Exit code for commands")
    retry_count: Optional[int] = Field(None, description="Retry count after the event")


class AgentRunEvent(BaseModel):
    """Details of one agent invocation."""

    agent: str = Field(..., description="Agent name")
    command: str = Field(..., description="Command line executed")
    working_directory: str = Field(..., description="Working directory")
    exit_code: Optional[int] = Field(None, description="Exit code, None if it never finished")
    duration_ms: int = Field(..., description="Execution duration in milliseconds")
    stdout_tail: Optional[str] = Field(None, description="End of standard output")
    stderr_tail: Optional[str] = Field(None, description="End of standard error")
    error: Optional[str] = Field(None, description="Start or timeout error")


def generate_session_id() -> str:
    """Generate a unique session ID."""
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    short_uuid = str(uuid.uuid4())[:8]
    return f"autospec-{timestamp}-{short_uuid}"


class ActivityLogger:
    """Thread-safe activity logger for autospec runs."""

    _EVENT_FIELDS = {"duration_ms", "exit_code", "retry_count"}

    def __init__(self, logs_dir: Path, session_id: Optional[str] = None):
        """Initialize activity logger.

        Args:
            logs_dir: Directory to store log files
            session_id: Session identifier (generated if None)
        """
        self.session_id = session_id or generate_session_id()
        self.logs_dir = Path(logs_dir)
        self.session_log_dir = self.logs_dir / "sessions" / self.session_id

        self.session_log_dir.mkdir(parents=True, exist_ok=True)

        self.main_log_file = self.session_log_dir / "activity.jsonl"
        self.agent_log_file = self.session_log_dir / "agent_runs.jsonl"

        self._lock = threading.Lock()

    def log_event(
        self,
        event_type: EventType,
        message: str,
        spec_name: Optional[str] = None,
        phase: Optional[str] = None,
        **kwargs,
    ) -> None:
        """Log a general activity event.

        Args:
            event_type: Type of event
            message: Event message
            spec_name: Optional spec identifier
            phase: Optional phase name
            **kwargs: Additional event data
        """
        event_fields: Dict[str, Any] = {
            "event_type": event_type,
            "session_id": self.session_id,
            "spec_name": spec_name,
            "phase": phase,
            "message": message,
        }

        data_fields = {}
        for key, value in kwargs.items():
            if key in self._EVENT_FIELDS:
                event_fields[key] = value
            else:
                data_fields[key] = value
        if data_fields:
            event_fields["data"] = data_fields

        self._write_event(self.main_log_file, ActivityEvent(**event_fields))

    def log_run_start(self, phases: List[str], spec_name: Optional[str] = None) -> None:
        self.log_event(
            EventType.RUN_START,
            f"Run started: {', '.join(phases)}",
            spec_name=spec_name,
            phases=phases,
        )

    def log_run_end(self, exit_code: int, duration_ms: int, spec_name: Optional[str] = None) -> None:
        self.log_event(
            EventType.RUN_END,
            f"Run finished with exit code {exit_code}",
            spec_name=spec_name,
            exit_code=exit_code,
            duration_ms=duration_ms,
        )

    def log_phase_start(self, spec_name: str, phase: str, retry_count: int, max_retries: int) -> None:
        self.log_event(
            EventType.PHASE_START,
            f"Phase {phase} started (attempt {retry_count + 1}/{max_retries + 1})",
            spec_name=spec_name,
            phase=phase,
            retry_count=retry_count,
            max_retries=max_retries,
        )

    def log_phase_complete(self, spec_name: str, phase: str, duration_ms: int) -> None:
        self.log_event(
            EventType.PHASE_COMPLETE,
            f"Phase {phase} completed",
            spec_name=spec_name,
            phase=phase,
            duration_ms=duration_ms,
            retry_count=0,
        )

    def log_phase_fail(
        self,
        spec_name: str,
        phase: str,
        error: str,
        retry_count: int,
        exhausted: bool = False,
        duration_ms: Optional[int] = None,
    ) -> None:
        self.log_event(
            EventType.PHASE_EXHAUSTED if exhausted else EventType.PHASE_FAIL,
            f"Phase {phase} failed: {error}",
            spec_name=spec_name,
            phase=phase,
            retry_count=retry_count,
            duration_ms=duration_ms,
            error=error,
        )

    def log_agent_run(
        self,
        run_event: AgentRunEvent,
        spec_name: Optional[str] = None,
        phase: Optional[str] = None,
    ) -> None:
        """Log an agent invocation to the main log and the agent log."""
        self.log_event(
            EventType.AGENT_EXECUTE,
            f"Executed agent {run_event.agent}",
            spec_name=spec_name,
            phase=phase,
            exit_code=run_event.exit_code,
            duration_ms=run_event.duration_ms,
        )
        self._write_event(
            self.agent_log_file,
            run_event,
            extra={"spec_name": spec_name, "phase": phase},
        )

    def log_info(self, message: str, spec_name: Optional[str] = None, **kwargs) -> None:
        self.log_event(EventType.INFO, message, spec_name=spec_name, **kwargs)

    def get_recent_events(self, limit: int = 100) -> List[ActivityEvent]:
        """Get recent events from the session.

        Args:
            limit: Maximum number of events to return

        Returns:
            List of recent events
        """
        events = []

        if self.main_log_file.exists():
            with open(self.main_log_file, "r", encoding="utf-8") as f:
                lines = f.readlines()

            for line in lines[-limit:]:
                try:
                    events.append(ActivityEvent(**json.loads(line.strip())))
                except (json.JSONDecodeError, ValueError):
                    continue

        return events

    def _write_event(
        self,
        log_file: Path,
        event: Union[BaseModel, Dict[str, Any]],
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Append one event as a JSON line.

        Logging failures never interrupt the workflow.
        """
        with self._lock:
            try:
                if isinstance(event, BaseModel):
                    event_dict = event.model_dump(mode="json")
                else:
                    event_dict = dict(event)

                for key, value in (extra or {}).items():
                    if value is not None:
                        event_dict.setdefault(key, value)
                event_dict.setdefault("timestamp", datetime.now(timezone.utc).isoformat())

                with open(log_file, "a", encoding="utf-8") as f:
                    json.dump(event_dict, f, default=str, separators=(",", ":"))
                    f.write("\n")

            except OSError as e:
                print(f"Warning: failed to write activity log {log_file}: {e}")
