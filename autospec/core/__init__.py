"""Core autospec functionality."""

from .artifact_validator import ArtifactValidator, ValidationOutcome, artifact_exists
from .exceptions import (
    EXIT_EXHAUSTED,
    EXIT_FAILED,
    EXIT_INVALID_INPUT,
    EXIT_MISSING_DEPENDENCY,
    EXIT_SUCCESS,
    AgentExecutionError,
    AgentNotFoundError,
    AgentTimeoutError,
    ArtifactValidationError,
    AutospecError,
    ConfigurationError,
    ExecutionError,
    InvalidInputError,
    RetryExhaustedError,
    RetryLedgerError,
    SpecResolutionError,
)
from .phases import CANONICAL_ORDER, Phase, PhaseConfig
from .retry_ledger import RetryLedger, RetryRecord, RetryStore
from .spec_resolver import SpecIdentity, SpecResolver
from .task_stats import TaskStats, TaskStatus, get_task_stats

__all__ = [
    # Exit codes
    "EXIT_SUCCESS",
    "EXIT_FAILED",
    "EXIT_EXHAUSTED",
    "EXIT_INVALID_INPUT",
    "EXIT_MISSING_DEPENDENCY",
    # Exceptions
    "AutospecError",
    "ConfigurationError",
    "InvalidInputError",
    "ExecutionError",
    "AgentExecutionError",
    "AgentTimeoutError",
    "AgentNotFoundError",
    "ArtifactValidationError",
    "RetryLedgerError",
    "RetryExhaustedError",
    "SpecResolutionError",
    # Phases
    "Phase",
    "PhaseConfig",
    "CANONICAL_ORDER",
    # Retry ledger
    "RetryLedger",
    "RetryRecord",
    "RetryStore",
    # Validation
    "ArtifactValidator",
    "ValidationOutcome",
    "artifact_exists",
    "TaskStats",
    "TaskStatus",
    "get_task_stats",
    # Spec resolution
    "SpecIdentity",
    "SpecResolver",
]
