"""
Domain module - Pure domain models with no runtime dependencies.

This module contains the run data model and the error taxonomy.
"""

# Errors
from .errors import (
    AgentrunError,
    ArgumentValidationError,
    DuplicateToolError,
    ModelError,
    ModelResponseError,
    ModelUnavailableError,
    RunCancelledError,
    RunFailedError,
    SessionClosedError,
    ToolError,
    ToolExecutionError,
    UnknownToolError,
)

# Models
from .models import (
    Conversation,
    IterationLogEntry,
    Message,
    MessageRole,
    RequestedToolCall,
    RunMetrics,
    RunOutcome,
    RunPhase,
    RunState,
    RunStatus,
    StructuredResponse,
    TerminationReason,
    ToolCall,
    ToolCallStatus,
    safe_repr,
    stringify_result,
)

__all__ = [
    # Models
    "Conversation",
    "IterationLogEntry",
    "Message",
    "MessageRole",
    "RequestedToolCall",
    "RunMetrics",
    "RunOutcome",
    "RunPhase",
    "RunState",
    "RunStatus",
    "StructuredResponse",
    "TerminationReason",
    "ToolCall",
    "ToolCallStatus",
    "safe_repr",
    "stringify_result",
    # Errors
    "AgentrunError",
    "ArgumentValidationError",
    "DuplicateToolError",
    "ModelError",
    "ModelResponseError",
    "ModelUnavailableError",
    "RunCancelledError",
    "RunFailedError",
    "SessionClosedError",
    "ToolError",
    "ToolExecutionError",
    "UnknownToolError",
]
