"""
Error taxonomy.

Tool errors are recovered at the dispatch boundary and reported to the model
as tool results. ModelUnavailableError ends a run as failed, while
ModelResponseError is recovered by treating the raw text as the final
answer. RunCancelledError is not a failure; it is only raised for callers
that ask for the final message of a cancelled run.
"""


class AgentrunError(Exception):
    """Base exception for all agentrun errors."""


# ============================================================================
# Tool errors
# ============================================================================


class ToolError(AgentrunError):
    """Base class for errors raised by the tool registry."""

    def __init__(self, tool_name: str, message: str):
        super().__init__(message)
        self.tool_name = tool_name


class DuplicateToolError(ToolError):
    """A tool with the same name is already registered."""

    def __init__(self, tool_name: str):
        super().__init__(tool_name, f"Tool already registered: {tool_name}")


class UnknownToolError(ToolError):
    """The requested tool is not registered."""

    def __init__(self, tool_name: str, available: list[str] | None = None):
        message = f"Tool {tool_name} not found"
        if available:
            message += f". Available tools: {', '.join(sorted(available))}"
        super().__init__(tool_name, message)
        self.available = available or []


class ArgumentValidationError(ToolError):
    """The arguments do not conform to the tool's argument schema."""

    def __init__(self, tool_name: str, details: str):
        super().__init__(tool_name, f"Invalid arguments for {tool_name}: {details}")
        self.details = details


class ToolExecutionError(ToolError):
    """The tool handler raised. The original exception is chained as __cause__."""

    def __init__(self, tool_name: str, error: BaseException):
        super().__init__(tool_name, f"Tool {tool_name} failed: {type(error).__name__}: {error}")
        self.original = error


# ============================================================================
# Model errors
# ============================================================================


class ModelError(AgentrunError):
    """Base class for model gateway errors."""


class ModelUnavailableError(ModelError):
    """The model service could not produce a response (transport, quota, outage)."""


class ModelResponseError(ModelError):
    """The model answered but the text could not be parsed into a structured response."""

    def __init__(self, message: str, raw_text: str):
        super().__init__(message)
        self.raw_text = raw_text


# ============================================================================
# Run errors
# ============================================================================


class RunCancelledError(AgentrunError):
    """The run ended because cancellation was requested."""


class RunFailedError(AgentrunError):
    """The run ended in the failed state."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class SessionClosedError(AgentrunError):
    """The session was destroyed and cannot start new runs."""


__all__ = [
    "AgentrunError",
    "ToolError",
    "DuplicateToolError",
    "UnknownToolError",
    "ArgumentValidationError",
    "ToolExecutionError",
    "ModelError",
    "ModelUnavailableError",
    "ModelResponseError",
    "RunCancelledError",
    "RunFailedError",
    "SessionClosedError",
]
