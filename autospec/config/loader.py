"""Configuration loading and management."""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from autospec.config.models import AutospecConfig
from autospec.core.exceptions import ConfigurationError

PROJECT_DIR_NAME = ".autospec"

# Environment variable -> (section, key); section None means top level
ENV_OVERRIDES = {
    "AUTOSPEC_MAX_RETRIES": (None, "max_retries"),
    "AUTOSPEC_SPECS_DIR": (None, "specs_dir"),
    "AUTOSPEC_STATE_DIR": (None, "state_dir"),
    "AUTOSPEC_SKIP_PREFLIGHT": (None, "skip_preflight"),
    "AUTOSPEC_AGENT": ("agent", "name"),
    "AUTOSPEC_AGENT_COMMAND": ("agent", "command"),
    "AUTOSPEC_CUSTOM_COMMAND": ("agent", "custom_command"),
    "AUTOSPEC_TIMEOUT": ("agent", "timeout"),
}


def load_config(
    project_config_path: Optional[Path] = None,
    global_config_path: Optional[Path] = None,
) -> AutospecConfig:
    """Load autospec configuration from multiple sources.

    Configuration is loaded in the following order (later sources override earlier ones):
    1. Default configuration (built into the models)
    2. Global configuration (~/.config/autospec/config.yaml)
    3. Project configuration (.autospec/config.yaml)
    4. ``AUTOSPEC_*`` environment variables

    Args:
        project_config_path: Explicit path to project config file
        global_config_path: Explicit path to global config file

    Returns:
        Merged and validated configuration

    Raises:
        ConfigurationError: If configuration is invalid or cannot be loaded
    """
    try:
        config_data: Dict[str, Any] = {}

        global_path = global_config_path or _get_global_config_path()
        if global_path and global_path.exists():
            config_data = _merge_config(config_data, _load_yaml_file(global_path))

        project_path = project_config_path or _get_project_config_path()
        if project_path and project_path.exists():
            config_data = _merge_config(config_data, _load_yaml_file(project_path))

        config_data = _merge_config(config_data, _env_overrides())

        config = AutospecConfig(**config_data)
        return config.resolve_env_vars()

    except ConfigurationError:
        raise
    except ValidationError as e:
        raise ConfigurationError(f"Configuration validation failed: {e}") from e
    except Exception as e:
        raise ConfigurationError(f"Failed to load configuration: {e}") from e


def save_config(config: AutospecConfig, config_path: Path) -> None:
    """Save configuration to a YAML file.

    Raises:
        ConfigurationError: If configuration cannot be saved
    """
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_dict = config.model_dump(exclude_none=True, mode="json")

        with open(config_path, "w", encoding="utf-8") as f:
            yaml.dump(
                config_dict,
                f,
                default_flow_style=False,
                sort_keys=False,
                indent=2,
                allow_unicode=True,
            )

    except OSError as e:
        raise ConfigurationError(
            f"Failed to save configuration to {config_path}: {e}"
        ) from e


def create_default_config() -> AutospecConfig:
    """Create a default configuration."""
    return AutospecConfig()


def get_config_paths() -> Dict[str, Optional[Path]]:
    """Get all possible configuration file paths.

    Returns:
        Dictionary with 'global' and 'project' config paths
    """
    return {"global": _get_global_config_path(), "project": _get_project_config_path()}


def _get_global_config_path() -> Optional[Path]:
    """Get the global configuration file path."""
    xdg_config = os.getenv("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / "autospec" / "config.yaml"

    return Path.home() / ".config" / "autospec" / "config.yaml"


def _get_project_config_path() -> Optional[Path]:
    """Get the project configuration file path."""
    current = Path.cwd()

    for path in [current] + list(current.parents):
        project_dir = path / PROJECT_DIR_NAME
        if project_dir.is_dir():
            return project_dir / "config.yaml"

    return None


def _env_overrides() -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for var_name, (section, key) in ENV_OVERRIDES.items():
        value = os.getenv(var_name)
        if value is None or value == "":
            continue
        if section is None:
            overrides[key] = value
        else:
            overrides.setdefault(section, {})[key] = value
    return overrides


def _load_yaml_file(file_path: Path) -> Dict[str, Any]:
    """Load and parse a YAML file.

    Raises:
        ConfigurationError: If file cannot be loaded or parsed
    """
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {file_path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Failed to read {file_path}: {e}") from e

    if data is None:
        return {}

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration file must contain a YAML object, got {type(data).__name__}"
        )

    return data


def _merge_config(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge two configuration dictionaries recursively."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_config(result[key], value)
        else:
            result[key] = value

    return result
