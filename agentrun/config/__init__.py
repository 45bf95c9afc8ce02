"""
Configuration: environment settings and session/run config models.
"""

from .exceptions import ConfigError, MissingCredentialsError
from .schema import DEFAULT_LIMIT_NOTICE, ExecutionConfig, SessionConfig, ToolsFormat
from .settings import AgentrunSettings, settings

__all__ = [
    "AgentrunSettings",
    "settings",
    "ExecutionConfig",
    "SessionConfig",
    "ToolsFormat",
    "DEFAULT_LIMIT_NOTICE",
    "ConfigError",
    "MissingCredentialsError",
]
