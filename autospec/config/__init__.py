"""autospec configuration."""

from .loader import create_default_config, load_config, save_config
from .models import AgentConfig, AutospecConfig, LoggingConfig, parse_duration

__all__ = [
    "AgentConfig",
    "AutospecConfig",
    "LoggingConfig",
    "parse_duration",
    "create_default_config",
    "load_config",
    "save_config",
]
