"""autospec exception classes and process exit codes."""

from typing import List, Optional

EXIT_SUCCESS = 0
EXIT_FAILED = 1
EXIT_EXHAUSTED = 2
EXIT_INVALID_INPUT = 3
EXIT_MISSING_DEPENDENCY = 4


class AutospecError(Exception):
    """Base exception for all autospec errors."""

    exit_code = EXIT_FAILED


class ConfigurationError(AutospecError):
    """Raised when configuration is invalid."""

    exit_code = EXIT_INVALID_INPUT


class InvalidInputError(AutospecError):
    """Raised when user-supplied arguments are invalid."""

    exit_code = EXIT_INVALID_INPUT


class ExecutionError(AutospecError):
    """Raised when phase execution fails."""

    pass


class AgentExecutionError(ExecutionError):
    """Raised when the agent process cannot be started or run."""

    pass


class AgentTimeoutError(AgentExecutionError):
    """Raised when the agent process is cancelled by its timeout."""

    pass


class AgentNotFoundError(AgentExecutionError):
    """Raised when the agent binary is not installed."""

    exit_code = EXIT_MISSING_DEPENDENCY


class ArtifactValidationError(ExecutionError):
    """Raised when a phase artifact is missing, malformed or incomplete."""

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.hint = hint


class RetryLedgerError(ExecutionError):
    """Raised when the retry ledger cannot be written."""

    pass


class RetryExhaustedError(AutospecError):
    """Raised when a phase has used up its retries."""

    exit_code = EXIT_EXHAUSTED

    def __init__(
        self,
        spec_name: str,
        phase: str,
        count: int,
        max_retries: int,
        cause: Optional[BaseException] = None,
    ):
        self.spec_name = spec_name
        self.phase = phase
        self.count = count
        self.max_retries = max_retries
        self.cause = cause
        message = (
            f"retry limit exhausted for {spec_name}:{phase} "
            f"({count}/{max_retries} attempts)"
        )
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)

    @property
    def reset_command(self) -> str:
        """Command that clears this phase's retry count."""
        return f"autospec reset {self.spec_name} --phase {self.phase}"


class SpecResolutionError(AutospecError):
    """Raised when no spec can be identified for the requested phases."""

    exit_code = EXIT_INVALID_INPUT

    def __init__(self, message: str, suggestions: Optional[List[str]] = None):
        super().__init__(message)
        self.suggestions = suggestions or []
