"""
Global settings from environment variables.
"""

from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class AgentrunSettings(BaseSettings):
    """
    Global configuration loaded from environment variables.

    Environment variables should be prefixed with AGENTRUN_
    Example: AGENTRUN_LOG_LEVEL=DEBUG, AGENTRUN_DEFAULT_MODEL=gpt-4o-mini
    """

    model_config = SettingsConfigDict(
        env_prefix="AGENTRUN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        protected_namespaces=(),
    )

    # Core settings
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["console", "json"] = "console"

    # Model provider
    openai_api_key: SecretStr | None = None
    openai_base_url: str | None = None
    default_model: str = "gpt-4o-mini"
    temperature: float = Field(default=0.2, ge=0.0, le=2.0)

    # Run defaults
    default_max_iterations: int = Field(default=5, ge=1)
    tool_timeout: float | None = Field(default=None, gt=0)
    max_parallel_tools: int = Field(default=8, ge=1)


# Global settings instance (singleton)
settings = AgentrunSettings()


__all__ = ["AgentrunSettings", "settings"]
