"""Mock utilities for testing."""

from .agent_mocks import MockAgent, MockResponse
from .artifacts import (
    write_analysis,
    write_checklist,
    write_constitution,
    write_plan,
    write_spec,
    write_tasks,
)

__all__ = [
    "MockAgent",
    "MockResponse",
    "write_analysis",
    "write_checklist",
    "write_constitution",
    "write_plan",
    "write_spec",
    "write_tasks",
]
