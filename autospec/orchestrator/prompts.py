"""Prompt construction for workflow phases.

Each phase is driven by a slash command (``/autospec.plan``) that the agent
resolves against the command templates installed in the project.
"""

from typing import Optional

from ..core.phases import Phase

DEFAULT_COMMAND_PREFIX = "/autospec."


def build_phase_prompt(
    phase: Phase,
    argument: Optional[str] = None,
    context: Optional[str] = None,
    prefix: str = DEFAULT_COMMAND_PREFIX,
) -> str:
    """Build the prompt that runs a phase.

    Args:
        phase: Phase to run
        argument: Optional argument for the slash command (e.g. the
            feature description for specify)
        context: Optional free text appended after the command, such as a
            continuation prompt for unfinished implementation work
        prefix: Slash-command prefix

    Examples:
        >>> build_phase_prompt(Phase.SPECIFY, "Add dark mode")
        '/autospec.specify "Add dark mode"'
    """
    prompt = f"{prefix}{phase.value}"
    if argument:
        escaped = argument.replace("\\", "\\\\").replace('"', '\\"')
        prompt += f' "{escaped}"'
    if context:
        prompt += f"\n\n{context}"
    return prompt
