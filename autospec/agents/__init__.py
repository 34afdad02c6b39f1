"""CLI coding agents and their execution."""

from .base import Agent, AgentResult, ExecOptions, Invocation, run_invocation
from .claude import ClaudeAgent
from .custom import PROMPT_PLACEHOLDER, CustomAgent, needs_shell
from .registry import AgentRegistry, build_default_registry

__all__ = [
    "Agent",
    "AgentResult",
    "ExecOptions",
    "Invocation",
    "run_invocation",
    "ClaudeAgent",
    "CustomAgent",
    "PROMPT_PLACEHOLDER",
    "needs_shell",
    "AgentRegistry",
    "build_default_registry",
]
