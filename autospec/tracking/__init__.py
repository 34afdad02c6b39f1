"""Activity logging and command history."""

from .activity_logger import ActivityEvent, ActivityLogger, AgentRunEvent, EventType
from .history import HistoryEntry, HistoryStore

__all__ = [
    "ActivityEvent",
    "ActivityLogger",
    "AgentRunEvent",
    "EventType",
    "HistoryEntry",
    "HistoryStore",
]
