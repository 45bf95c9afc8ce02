"""
Core domain models for agentrun.

This module contains all core data models:
- ToolCall / IterationLogEntry: the per-iteration log of a run
- RunState / RunOutcome: run status and results
- Message / Conversation: the context sent to the model
- StructuredResponse: the parsed model output
"""

import json
import time
from enum import Enum
from typing import Any, Iterator
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Enums
# ============================================================================


class MessageRole(str, Enum):
    """Standard LLM message roles"""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class RunStatus(str, Enum):
    """Agent run status"""

    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not RunStatus.RUNNING


class RunPhase(str, Enum):
    """What a running run is doing right now, for progress display"""

    THINKING = "thinking"
    CALLING_TOOLS = "calling_tools"
    DONE = "done"


class ToolCallStatus(str, Enum):
    """Status of a single tool call within an iteration"""

    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"

    @property
    def is_settled(self) -> bool:
        return self in (ToolCallStatus.SUCCESS, ToolCallStatus.ERROR)


class TerminationReason(str, Enum):
    """Why a run reached its terminal status"""

    FINAL_ANSWER = "final_answer"
    MAX_ITERATIONS = "max_iterations"
    CANCELLED = "cancelled"
    MODEL_UNAVAILABLE = "model_unavailable"
    INTERNAL_ERROR = "internal_error"


# ============================================================================
# Iteration log
# ============================================================================


class ToolCall(BaseModel):
    """
    A tool invocation requested by the model and its eventual result.

    Created pending by the engine, updated in place while the call runs and
    kept in the run history once the iteration is folded.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: str = Field(default_factory=lambda: f"call_{uuid4().hex[:12]}")
    tool: str
    args: dict[str, Any] = Field(default_factory=dict)
    status: ToolCallStatus = ToolCallStatus.PENDING
    result: Any = None
    error: str | None = None
    started_at: float | None = None
    finished_at: float | None = None

    @property
    def duration(self) -> float | None:
        if self.started_at is None or self.finished_at is None:
            return None
        return self.finished_at - self.started_at

    def mark_running(self) -> None:
        self.status = ToolCallStatus.RUNNING
        self.started_at = time.time()

    def mark_success(self, result: Any) -> None:
        self.status = ToolCallStatus.SUCCESS
        self.result = result
        self.error = None
        self.finished_at = time.time()

    def mark_error(self, error: str) -> None:
        self.status = ToolCallStatus.ERROR
        self.error = error
        self.finished_at = time.time()


class IterationLogEntry(BaseModel):
    """
    One iteration of the agent loop.

    `message` is the final answer and is only set when the iteration made no
    tool calls. Text the model sent alongside tool calls is kept as
    `interim_message`, the progress note shown while tools run.
    """

    iteration: int = Field(ge=1)
    thoughts: str | None = None
    plan: list[str] = Field(default_factory=list)
    tool_calls: list[ToolCall] = Field(default_factory=list)
    message: str | None = None
    interim_message: str | None = None

    @property
    def is_final(self) -> bool:
        return not self.tool_calls and bool(self.message)

    def snapshot(self) -> "IterationLogEntry":
        """Deep copy, so published values never change under subscribers."""
        return self.model_copy(deep=True)


# ============================================================================
# Run state
# ============================================================================


class RunMetrics(BaseModel):
    """Counters for a single run."""

    start_time: float = 0.0
    end_time: float = 0.0
    duration: float = 0.0

    iterations: int = 0
    model_calls: int = 0
    tool_calls_count: int = 0
    tool_errors_count: int = 0


class RunState(BaseModel):
    """Read-only snapshot of a run."""

    run_id: str
    status: RunStatus = RunStatus.RUNNING
    history: list[IterationLogEntry] = Field(default_factory=list)
    current_iteration: IterationLogEntry | None = None
    termination_reason: TerminationReason | None = None
    error: str | None = None


class RunOutcome(BaseModel):
    """Terminal result of a run."""

    run_id: str
    status: RunStatus
    termination_reason: TerminationReason
    message: str | None = None
    error: str | None = None
    history: list[IterationLogEntry] = Field(default_factory=list)
    metrics: RunMetrics = Field(default_factory=RunMetrics)

    @property
    def succeeded(self) -> bool:
        return self.status is RunStatus.COMPLETED


# ============================================================================
# Conversation
# ============================================================================


class Message(BaseModel):
    """A role-tagged message in the conversation."""

    role: MessageRole
    content: str
    name: str | None = None
    tool_call_id: str | None = None

    def to_openai(self) -> dict[str, Any]:
        # Tool results are sent as user messages: the structured JSON
        # protocol carries tool calls in the assistant text, so there is no
        # native tool_call id for the provider to match against.
        if self.role is MessageRole.TOOL:
            label = self.name or "tool"
            return {"role": "user", "content": f"TOOL_RESULT for {label}: {self.content}"}
        return {"role": self.role.value, "content": self.content}


class Conversation:
    """
    Ordered, append-only list of messages for one run.
    """

    def __init__(self, messages: list[Message] | None = None):
        self._messages: list[Message] = list(messages or [])

    @classmethod
    def seed(cls, system_prompt: str | None, user_input: str) -> "Conversation":
        conversation = cls()
        if system_prompt:
            conversation.append(Message(role=MessageRole.SYSTEM, content=system_prompt))
        conversation.append(Message(role=MessageRole.USER, content=user_input))
        return conversation

    def append(self, message: Message) -> None:
        self._messages.append(message)

    def add_assistant(self, content: str) -> None:
        self.append(Message(role=MessageRole.ASSISTANT, content=content))

    def add_tool_result(self, call: ToolCall) -> None:
        if call.status is ToolCallStatus.SUCCESS:
            content = stringify_result(call.result)
        else:
            content = f"ERROR - {call.error}"
        self.append(
            Message(role=MessageRole.TOOL, content=content, name=call.tool, tool_call_id=call.id)
        )

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    def to_openai(self) -> list[dict[str, Any]]:
        return [m.to_openai() for m in self._messages]

    def __iter__(self) -> Iterator[Message]:
        return iter(tuple(self._messages))

    def __len__(self) -> int:
        return len(self._messages)

    def __repr__(self) -> str:
        return f"Conversation(messages={len(self._messages)})"


def stringify_result(result: Any) -> str:
    """Render a tool result as text for the model."""
    if isinstance(result, str):
        return result
    if isinstance(result, BaseModel):
        return result.model_dump_json()
    try:
        return json.dumps(result, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        pass
    return safe_repr(result)


def safe_repr(value: Any) -> str:
    """repr() that never raises, e.g. for ints past the str conversion limit."""
    try:
        return repr(value)
    except Exception as e:
        return f"<unrenderable {type(value).__name__}: {e}>"


# ============================================================================
# Structured model output
# ============================================================================


class RequestedToolCall(BaseModel):
    """A tool call as emitted by the model, before execution."""

    tool: str
    args: dict[str, Any] = Field(default_factory=dict)


class StructuredResponse(BaseModel):
    """The model's output parsed into thoughts/plan/tool calls/final message."""

    thoughts: str | None = None
    plan: list[str] = Field(default_factory=list)
    tool_calls: list[RequestedToolCall] = Field(default_factory=list)
    message: str | None = None
    raw: str | None = Field(default=None, exclude=True)

    def to_assistant_text(self) -> str:
        """Text recorded as the assistant turn in the conversation."""
        if self.raw is not None:
            return self.raw
        return self.model_dump_json(exclude_none=True)


__all__ = [
    "MessageRole",
    "RunStatus",
    "RunPhase",
    "ToolCallStatus",
    "TerminationReason",
    "ToolCall",
    "IterationLogEntry",
    "RunMetrics",
    "RunState",
    "RunOutcome",
    "Message",
    "Conversation",
    "safe_repr",
    "stringify_result",
    "RequestedToolCall",
    "StructuredResponse",
]
