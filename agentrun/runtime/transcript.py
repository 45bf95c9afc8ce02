"""
Transcript export for completed runs.

A transcript is the run history flattened to JSON-compatible data: a list of
iterations, each with thoughts, plan, tool calls, the progress note sent
with them and the final message.
"""

import json
from typing import Any, Iterable, TypedDict

from agentrun.domain import IterationLogEntry, ToolCall, safe_repr


class TranscriptToolCall(TypedDict):
    id: str
    tool: str
    args: dict[str, Any]
    status: str
    result: Any
    error: str | None
    started_at: float | None
    finished_at: float | None


class TranscriptEntry(TypedDict):
    iteration: int
    thoughts: str | None
    plan: list[str]
    tool_calls: list[TranscriptToolCall]
    message: str | None
    interim_message: str | None


def _json_safe(value: Any) -> Any:
    """Return value unchanged if it is JSON-serializable, else its repr."""
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return safe_repr(value)
    return value


def _export_call(call: ToolCall) -> TranscriptToolCall:
    return {
        "id": call.id,
        "tool": call.tool,
        "args": _json_safe(call.args),
        "status": call.status.value,
        "result": _json_safe(call.result),
        "error": call.error,
        "started_at": call.started_at,
        "finished_at": call.finished_at,
    }


def export_transcript(history: Iterable[IterationLogEntry]) -> list[TranscriptEntry]:
    """Flatten run history into JSON-compatible dictionaries."""
    return [
        {
            "iteration": entry.iteration,
            "thoughts": entry.thoughts,
            "plan": list(entry.plan),
            "tool_calls": [_export_call(call) for call in entry.tool_calls],
            "message": entry.message,
            "interim_message": entry.interim_message,
        }
        for entry in history
    ]


def dumps_transcript(history: Iterable[IterationLogEntry], indent: int | None = 2) -> str:
    return json.dumps(export_transcript(history), indent=indent, ensure_ascii=False)


def load_transcript(data: str | list[dict[str, Any]]) -> list[IterationLogEntry]:
    """
    Rebuild history entries from an exported transcript.

    Accepts either the JSON text or the already decoded list.
    """
    if isinstance(data, str):
        data = json.loads(data)
    return [IterationLogEntry.model_validate(item) for item in data]


__all__ = [
    "TranscriptEntry",
    "TranscriptToolCall",
    "dumps_transcript",
    "export_transcript",
    "load_transcript",
]
