"""Configuration models for autospec."""

import os
import re
from pathlib import Path
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

_DURATION_PATTERN = re.compile(r"^(\d+)([hms])$")
_DURATION_UNITS = {"h": 3600, "m": 60, "s": 1}


def parse_duration(value: str) -> int:
    """Convert a duration like ``"30m"`` into seconds."""
    match = _DURATION_PATTERN.match(value)
    if not match:
        raise ValueError("Duration must be in format like '30m', '2h', or '300s'")
    return int(match.group(1)) * _DURATION_UNITS[match.group(2)]


class AgentConfig(BaseModel):
    """Agent selection and execution configuration."""

    name: str = Field(default="claude", description="Registered agent to run")
    command: str = Field(
        default="claude --dangerously-skip-permissions", description="Claude command"
    )
    extra_args: List[str] = Field(
        default_factory=list, description="Extra arguments passed before the prompt"
    )
    custom_command: Optional[str] = Field(
        default=None, description="Custom agent template containing {{PROMPT}}"
    )
    timeout: str = Field(default="30m", description="Per-phase agent timeout")

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: str) -> str:
        """Validate timeout format."""
        parse_duration(v)
        return v

    @field_validator("custom_command")
    @classmethod
    def validate_custom_command(cls, v: Optional[str]) -> Optional[str]:
        """Validate that custom templates carry the prompt placeholder."""
        if v is not None and "{{PROMPT}}" not in v:
            raise ValueError("custom_command must contain the {{PROMPT}} placeholder")
        return v

    @model_validator(mode="after")
    def validate_agent_choice(self) -> "AgentConfig":
        """The custom agent needs a template."""
        if self.name == "custom" and not self.custom_command:
            raise ValueError("custom_command is required when name is 'custom'")
        return self

    @property
    def timeout_seconds(self) -> int:
        return parse_duration(self.timeout)


class LoggingConfig(BaseModel):
    """Activity logging configuration."""

    enabled: bool = Field(default=True, description="Write JSONL activity logs")
    output_dir: str = Field(default=".autospec/logs", description="Log output directory")
    level: str = Field(default="INFO", description="Console verbosity")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARN", "ERROR"]
        if v.upper() not in valid_levels:
            raise ValueError(f"level must be one of: {', '.join(valid_levels)}")
        return v.upper()


class AutospecConfig(BaseModel):
    """Main autospec configuration."""

    agent: AgentConfig = Field(
        default_factory=AgentConfig, description="Agent configuration"
    )
    max_retries: int = Field(default=3, description="Retry ceiling per spec and phase")
    specs_dir: str = Field(default="./specs", description="Directory containing feature specs")
    state_dir: str = Field(default=".autospec/state", description="Retry and history state")
    skip_preflight: bool = Field(default=False, description="Skip pre-flight checks")
    command_prefix: str = Field(
        default="/autospec.", description="Slash-command prefix for phase prompts"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )

    @field_validator("max_retries")
    @classmethod
    def validate_max_retries(cls, v: int) -> int:
        """Validate retry ceiling."""
        if v < 0:
            raise ValueError("max_retries cannot be negative")
        if v > 10:
            raise ValueError("max_retries cannot exceed 10")
        return v

    def resolve_env_vars(self) -> "AutospecConfig":
        """Resolve environment variables in configuration values."""
        config_dict = self.model_dump()
        resolved_dict = _resolve_env_vars_recursive(config_dict)
        return AutospecConfig(**resolved_dict)

    def get_specs_dir(self) -> Path:
        return Path(self.specs_dir).expanduser().resolve()

    def get_state_dir(self) -> Path:
        return Path(self.state_dir).expanduser().resolve()

    def get_log_dir(self) -> Path:
        """Get the log directory as a Path object."""
        return Path(self.logging.output_dir).expanduser().resolve()


def _resolve_env_vars_recursive(obj: Any) -> Any:
    """Recursively resolve environment variables in configuration."""
    if isinstance(obj, dict):
        return {key: _resolve_env_vars_recursive(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [_resolve_env_vars_recursive(item) for item in obj]
    elif isinstance(obj, str):
        return _resolve_env_var_string(obj)
    else:
        return obj


def _resolve_env_var_string(value: str) -> str:
    """Resolve environment variables in a string."""
    # Pattern for ${VAR_NAME} or ${VAR_NAME:default_value}
    pattern = r"\$\{([^}:]+)(?::([^}]*))?\}"

    def replace_var(match):
        var_name = match.group(1)
        default_value = match.group(2) if match.group(2) is not None else ""
        return os.getenv(var_name, default_value)

    return re.sub(pattern, replace_var, value)
