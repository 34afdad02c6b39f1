"""Registry of available agents.

The registry is an ordinary object: build it once at start-up and pass it
to whatever needs to look agents up.
"""

import threading
from typing import Dict, List, Optional

from ..core.exceptions import AutospecError, InvalidInputError
from .base import Agent
from .claude import ClaudeAgent
from .custom import CustomAgent


class AgentRegistry:
    """Thread-safe name to agent mapping."""

    def __init__(self):
        self._agents: Dict[str, Agent] = {}
        self._lock = threading.Lock()

    def register(self, agent: Agent) -> None:
        """Add an agent, replacing any agent with the same name."""
        with self._lock:
            self._agents[agent.name] = agent

    def get(self, name: str) -> Optional[Agent]:
        with self._lock:
            return self._agents.get(name)

    def require(self, name: str) -> Agent:
        """Look up an agent by name.

        Raises:
            InvalidInputError: If no agent with that name is registered
        """
        agent = self.get(name)
        if agent is None:
            known = ", ".join(self.list()) or "none"
            raise InvalidInputError(f"Unknown agent '{name}'. Registered agents: {known}")
        return agent

    def list(self) -> List[str]:
        """Registered agent names in alphabetical order."""
        with self._lock:
            return sorted(self._agents)

    def available(self) -> List[Agent]:
        """Agents that pass validation on this system, by name."""
        with self._lock:
            agents = list(self._agents.values())

        usable = []
        for agent in agents:
            try:
                agent.validate()
            except AutospecError:
                continue
            usable.append(agent)
        return sorted(usable, key=lambda a: a.name)


def build_default_registry(
    claude_command: Optional[str] = None,
    claude_args: Optional[List[str]] = None,
    custom_command: Optional[str] = None,
) -> AgentRegistry:
    """Registry with the built-in agents and an optional custom template."""
    registry = AgentRegistry()
    if claude_command:
        registry.register(ClaudeAgent(command=claude_command, extra_args=claude_args))
    else:
        registry.register(ClaudeAgent(extra_args=claude_args))
    if custom_command:
        registry.register(CustomAgent(custom_command))
    return registry
