"""Agent interface and subprocess execution.

An agent turns a prompt into a process invocation. Running the invocation
is shared by every agent: output is read on background threads (into
buffers or caller-supplied sinks), an optional timeout kills the whole
process group, and a non-zero exit is reported on the result rather than
raised.
"""

import os
import shlex
import signal
import subprocess
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Callable, Dict, List, Optional

from ..core.exceptions import AgentExecutionError, AgentNotFoundError, AgentTimeoutError

_POSIX = os.name == "posix"

# Seconds to wait for reader threads after the process has exited
READER_JOIN_TIMEOUT = 5


@dataclass
class ExecOptions:
    """Options for one agent execution."""

    work_dir: Optional[Path] = None
    env: Dict[str, str] = field(default_factory=dict)
    timeout: Optional[float] = None
    stdout: Optional[IO[str]] = None
    """Sink for stdout; when set, stdout is not buffered on the result"""
    stderr: Optional[IO[str]] = None
    """Sink for stderr; when set, stderr is not buffered on the result"""
    output_callback: Optional[Callable[[str], None]] = None
    """Called with each stdout line as it arrives"""


@dataclass
class Invocation:
    """A fully built process invocation."""

    argv: List[str]
    use_shell: bool = False
    cwd: Optional[Path] = None
    env: Optional[Dict[str, str]] = None

    def format(self) -> str:
        """Printable form of the command line."""
        return shlex.join(self.argv)


@dataclass
class AgentResult:
    """Outcome of a completed agent process."""

    exit_code: int
    stdout: str
    stderr: str
    duration_seconds: float

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    @property
    def error_message(self) -> Optional[str]:
        if self.success:
            return None
        message = f"agent exited with code {self.exit_code}"
        if self.stderr:
            message += f": {self.stderr.strip()[:500]}"
        return message


class Agent(ABC):
    """A CLI coding agent the workflow can drive."""

    name: str = "agent"

    @abstractmethod
    def validate(self) -> None:
        """Check the agent can run on this system.

        Raises:
            AgentNotFoundError: If the agent binary is missing
            InvalidInputError: If the agent is misconfigured
        """

    @abstractmethod
    def build_invocation(self, prompt: str, options: ExecOptions) -> Invocation:
        """Build the process invocation for a prompt."""

    def execute(self, prompt: str, options: Optional[ExecOptions] = None) -> AgentResult:
        """Run the agent with a prompt.

        Returns:
            AgentResult, including for non-zero exits

        Raises:
            AgentNotFoundError: If the program does not exist
            AgentExecutionError: If the process cannot be started
            AgentTimeoutError: If the timeout expired and the process was killed
        """
        options = options or ExecOptions()
        return run_invocation(self.build_invocation(prompt, options), options)

    def format_command(self, prompt: str) -> str:
        """Printable command line for a prompt, for display only."""
        return self.build_invocation(prompt, ExecOptions()).format()


def build_env(extra: Optional[Dict[str, str]]) -> Optional[Dict[str, str]]:
    """Process environment with ``extra`` layered on top."""
    if not extra:
        return None
    env = dict(os.environ)
    env.update(extra)
    return env


def run_invocation(invocation: Invocation, options: ExecOptions) -> AgentResult:
    """Execute an invocation and wait for it, honouring the timeout."""
    start_time = time.monotonic()
    program = invocation.argv[0] if invocation.argv else ""

    try:
        process = subprocess.Popen(
            invocation.argv,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            cwd=str(invocation.cwd) if invocation.cwd else None,
            env=invocation.env,
            text=True,
            encoding="utf-8",
            errors="replace",
            bufsize=1,
            start_new_session=_POSIX,
        )
    except FileNotFoundError as e:
        raise AgentNotFoundError(f"Agent command not found: {program}") from e
    except OSError as e:
        raise AgentExecutionError(f"Failed to start agent '{program}': {e}") from e

    stdout_lines: List[str] = []
    stderr_lines: List[str] = []
    readers = [
        _start_reader(process.stdout, options.stdout, stdout_lines, options.output_callback),
        _start_reader(process.stderr, options.stderr, stderr_lines, None),
    ]

    try:
        exit_code = process.wait(timeout=options.timeout)
    except subprocess.TimeoutExpired:
        _terminate(process)
        _join(readers)
        raise AgentTimeoutError(
            f"Agent execution timed out after {options.timeout}s: {program}"
        ) from None
    except KeyboardInterrupt:
        _terminate(process)
        _join(readers)
        raise

    _join(readers)
    return AgentResult(
        exit_code=exit_code,
        stdout="".join(stdout_lines),
        stderr="".join(stderr_lines),
        duration_seconds=time.monotonic() - start_time,
    )


def _start_reader(
    stream: IO[str],
    sink: Optional[IO[str]],
    buffer: List[str],
    callback: Optional[Callable[[str], None]],
) -> threading.Thread:
    def read() -> None:
        try:
            for line in iter(stream.readline, ""):
                if sink is not None:
                    sink.write(line)
                else:
                    buffer.append(line)
                if callback:
                    callback(line.rstrip("\n"))
        finally:
            stream.close()

    thread = threading.Thread(target=read, daemon=True)
    thread.start()
    return thread


def _join(readers: List[threading.Thread]) -> None:
    for reader in readers:
        reader.join(timeout=READER_JOIN_TIMEOUT)


def _terminate(process: subprocess.Popen) -> None:
    """Kill the process (and its group on POSIX) and wait for it to exit."""
    try:
        if _POSIX:
            os.killpg(process.pid, signal.SIGKILL)
        else:
            process.kill()
    except ProcessLookupError:
        pass
    process.wait()
