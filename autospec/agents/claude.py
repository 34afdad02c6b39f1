"""Built-in Claude Code CLI agent."""

import shlex
import shutil
from typing import List, Optional

from ..core.exceptions import AgentNotFoundError, InvalidInputError
from .base import Agent, ExecOptions, Invocation, build_env

DEFAULT_CLAUDE_COMMAND = "claude --dangerously-skip-permissions"


class ClaudeAgent(Agent):
    """Run prompts through ``claude -p``.

    The prompt is always passed as a single argv element; no shell is
    involved.
    """

    name = "claude"

    def __init__(self, command: str = DEFAULT_CLAUDE_COMMAND, extra_args: Optional[List[str]] = None):
        """Initialize Claude agent.

        Args:
            command: Claude CLI command (e.g., "claude --dangerously-skip-permissions")
            extra_args: Additional arguments placed before ``-p``
        """
        self.command = command
        self.extra_args = list(extra_args or [])

    def _base_argv(self) -> List[str]:
        try:
            argv = shlex.split(self.command)
        except ValueError as e:
            raise InvalidInputError(f"Invalid Claude command '{self.command}': {e}") from e
        if not argv:
            raise InvalidInputError("Claude command is empty")
        return argv + self.extra_args

    def validate(self) -> None:
        program = self._base_argv()[0]
        if shutil.which(program) is None:
            raise AgentNotFoundError(
                f"Claude CLI not found. Is it installed? Command: {self.command}"
            )

    def build_invocation(self, prompt: str, options: ExecOptions) -> Invocation:
        return Invocation(
            argv=self._base_argv() + ["-p", prompt],
            cwd=options.work_dir,
            env=build_env(options.env),
        )
