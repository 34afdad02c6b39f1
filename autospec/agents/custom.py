"""Agent driven by a user-supplied command template.

The template must contain the ``{{PROMPT}}`` placeholder, for example::

    aider --yes --message {{PROMPT}}
    ANTHROPIC_MODEL=opus claude -p {{PROMPT}} | tee agent.log

Templates that contain shell syntax are run through ``sh -c``; all others
are split into argv and executed directly.
"""

import re
import shlex
import shutil
from typing import List

from ..core.exceptions import AgentNotFoundError, InvalidInputError
from .base import Agent, ExecOptions, Invocation, build_env

PROMPT_PLACEHOLDER = "{{PROMPT}}"

SHELL_METACHARACTERS = ("|", "&&", "||", ";", ">", "<", "$(", "`")

_ENV_PREFIX = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*=")


def needs_shell(template: str) -> bool:
    """Return True if the template only makes sense inside a shell.

    That is the case when it contains pipes, redirects, command separators,
    command substitution, or starts with a ``NAME=value`` environment prefix.
    """
    if any(meta in template for meta in SHELL_METACHARACTERS):
        return True
    parts = template.split()
    return bool(parts) and bool(_ENV_PREFIX.match(parts[0]))


class CustomAgent(Agent):
    """Agent built from a ``{{PROMPT}}`` command template."""

    def __init__(self, template: str, name: str = "custom"):
        if PROMPT_PLACEHOLDER not in template:
            raise InvalidInputError(
                f"custom agent template must contain {PROMPT_PLACEHOLDER} placeholder"
            )
        self.name = name
        self.template = template
        self.use_shell = needs_shell(template)

    def validate(self) -> None:
        if self.use_shell:
            if shutil.which("sh") is None:
                raise AgentNotFoundError("custom agent: shell (sh) not found in PATH")
            return

        argv = self._split("test")
        if shutil.which(argv[0]) is None:
            raise AgentNotFoundError(f"custom agent: command '{argv[0]}' not found in PATH")

    def build_invocation(self, prompt: str, options: ExecOptions) -> Invocation:
        if self.use_shell:
            expanded = self.template.replace(PROMPT_PLACEHOLDER, shlex.quote(prompt))
            argv = ["sh", "-c", expanded]
        else:
            argv = self._split(prompt)

        return Invocation(
            argv=argv,
            use_shell=self.use_shell,
            cwd=options.work_dir,
            env=build_env(options.env),
        )

    def _split(self, prompt: str) -> List[str]:
        """Expand the template and split it without a shell.

        The prompt is quoted first, so it survives splitting as exactly one
        argument whatever it contains.
        """
        expanded = self.template.replace(PROMPT_PLACEHOLDER, shlex.quote(prompt))
        try:
            argv = shlex.split(expanded)
        except ValueError as e:
            raise InvalidInputError(f"custom agent: invalid template: {e}") from e
        if not argv:
            raise InvalidInputError("custom agent: template produces no command")
        return argv
