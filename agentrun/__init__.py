"""
agentrun - Agent run engine

Top-level exports for easy access to core functionality.
"""

# Runtime
from agentrun.runtime import (
    AgentSession,
    CancellationToken,
    IterationEngine,
    RunHandle,
    StreamingProperty,
    dumps_transcript,
    export_transcript,
    load_transcript,
)

# Domain models
from agentrun.domain import (
    AgentrunError,
    ArgumentValidationError,
    DuplicateToolError,
    IterationLogEntry,
    ModelResponseError,
    ModelUnavailableError,
    RunCancelledError,
    RunFailedError,
    RunOutcome,
    RunPhase,
    RunState,
    RunStatus,
    SessionClosedError,
    StructuredResponse,
    TerminationReason,
    ToolCall,
    ToolCallStatus,
    ToolExecutionError,
    UnknownToolError,
)

# Gateways and tools
from agentrun.llm import ModelGateway, OpenAIGateway, ScriptedGateway
from agentrun.tools import ToolDescriptor, ToolRegistry, default_registry, tool

# Config
from agentrun.config import ExecutionConfig, SessionConfig, settings

__version__ = "0.1.0"

__all__ = [
    # Runtime
    "AgentSession",
    "CancellationToken",
    "IterationEngine",
    "RunHandle",
    "StreamingProperty",
    "export_transcript",
    "dumps_transcript",
    "load_transcript",
    # Domain
    "IterationLogEntry",
    "RunOutcome",
    "RunPhase",
    "RunState",
    "RunStatus",
    "StructuredResponse",
    "TerminationReason",
    "ToolCall",
    "ToolCallStatus",
    # Errors
    "AgentrunError",
    "ArgumentValidationError",
    "DuplicateToolError",
    "ModelResponseError",
    "ModelUnavailableError",
    "RunCancelledError",
    "RunFailedError",
    "SessionClosedError",
    "ToolExecutionError",
    "UnknownToolError",
    # Gateways and tools
    "ModelGateway",
    "OpenAIGateway",
    "ScriptedGateway",
    "ToolDescriptor",
    "ToolRegistry",
    "default_registry",
    "tool",
    # Config
    "ExecutionConfig",
    "SessionConfig",
    "settings",
]
