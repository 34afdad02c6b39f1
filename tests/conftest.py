"""Shared pytest fixtures and utilities for autospec tests."""

import sys
from pathlib import Path
from typing import Generator

import pytest

from autospec.core.artifact_validator import ArtifactValidator
from autospec.core.retry_ledger import RetryLedger
from autospec.orchestrator.phase_executor import PhaseExecutor
from tests.mocks import MockAgent
from tests.mocks.artifacts import make_spec_dir


# ============================================================================
# Directory Fixtures
# ============================================================================


@pytest.fixture
def project_dir(tmp_path: Path, monkeypatch) -> Generator[Path, None, None]:
    """Temporary project root used as the working directory.

    Yields:
        Path to the project root, with an empty ``specs`` directory
    """
    (tmp_path / "specs").mkdir()
    monkeypatch.chdir(tmp_path)
    for var in (
        "AUTOSPEC_MAX_RETRIES",
        "AUTOSPEC_SPECS_DIR",
        "AUTOSPEC_STATE_DIR",
        "AUTOSPEC_SKIP_PREFLIGHT",
        "AUTOSPEC_AGENT",
        "AUTOSPEC_AGENT_COMMAND",
        "AUTOSPEC_CUSTOM_COMMAND",
        "AUTOSPEC_TIMEOUT",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    yield tmp_path


@pytest.fixture
def specs_dir(project_dir: Path) -> Path:
    return project_dir / "specs"


@pytest.fixture
def spec_dir(specs_dir: Path) -> Path:
    """A spec directory containing a valid spec.yaml."""
    return make_spec_dir(specs_dir)


@pytest.fixture
def state_dir(project_dir: Path) -> Path:
    return project_dir / ".autospec" / "state"


# ============================================================================
# Component Fixtures
# ============================================================================


@pytest.fixture
def ledger(state_dir: Path) -> RetryLedger:
    return RetryLedger(state_dir)


@pytest.fixture
def validator(project_dir: Path) -> ArtifactValidator:
    return ArtifactValidator(project_dir=project_dir)


@pytest.fixture
def mock_agent() -> MockAgent:
    return MockAgent()


@pytest.fixture
def executor(mock_agent, validator, ledger) -> PhaseExecutor:
    """Phase executor wired to the mock agent with a ceiling of 3."""
    return PhaseExecutor(
        agent=mock_agent,
        validator=validator,
        ledger=ledger,
        max_retries=3,
    )


@pytest.fixture
def python_executable() -> str:
    return sys.executable
