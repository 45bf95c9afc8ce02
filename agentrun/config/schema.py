"""
Configuration models for sessions and runs.
"""

from typing import Literal

from pydantic import BaseModel, Field

ToolsFormat = Literal["snippet", "detailed_snippet", "text", "json"]

DEFAULT_LIMIT_NOTICE = (
    "I reached the limit of {max_iterations} iterations before finishing the task. "
    "Here is what I gathered so far; ask me to continue if you need more."
)


class ExecutionConfig(BaseModel):
    """
    Runtime execution configuration for a single run.
    """

    # Loop configuration
    max_iterations: int = Field(default=5, ge=1, description="Maximum loop iterations")

    # Tool dispatch
    tool_timeout: float | None = Field(
        default=None, gt=0, description="Per tool call timeout (seconds)"
    )
    max_parallel_tools: int = Field(
        default=8, ge=1, description="Maximum tool calls running at once within an iteration"
    )

    # Termination
    limit_notice: str = Field(
        default=DEFAULT_LIMIT_NOTICE,
        description="Final message used when max_iterations is reached. "
        "May reference {max_iterations}.",
    )

    @classmethod
    def from_settings(cls) -> "ExecutionConfig":
        """Build an ExecutionConfig from the global environment settings."""
        from agentrun.config.settings import settings

        return cls(
            max_iterations=settings.default_max_iterations,
            tool_timeout=settings.tool_timeout,
            max_parallel_tools=settings.max_parallel_tools,
        )

    def render_limit_notice(self, max_iterations: int) -> str:
        return self.limit_notice.format(max_iterations=max_iterations)


class SessionConfig(BaseModel):
    """
    Configuration for an AgentSession.
    """

    name: str = Field(default="agentrun", description="Session name, used in logs")
    persona: str | None = Field(
        default=None, description="Persona or extra instructions appended to the system prompt"
    )
    tools_format: ToolsFormat = Field(
        default="snippet", description="How the tool manifest is rendered in the system prompt"
    )
    include_datetime: bool = Field(
        default=True, description="Include the current date and time in the system prompt"
    )
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)


__all__ = ["DEFAULT_LIMIT_NOTICE", "ExecutionConfig", "SessionConfig", "ToolsFormat"]
