"""
Parse raw model text into a StructuredResponse.

Models are asked to answer with a JSON object (see RESPONSE_SCHEMA). Real
output is often wrapped in markdown fences, preceded by chatter, or uses
slightly different field names; this module tolerates those variations and
raises ModelResponseError for anything it cannot interpret.
"""

import json
import re
from typing import Any

from pydantic import ValidationError

from agentrun.domain import ModelResponseError, RequestedToolCall, StructuredResponse

RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "thoughts": {
            "type": "string",
            "description": "Your analysis of the request, the tools available and the results so far.",
        },
        "plan": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Steps to complete the request, one short sentence each.",
        },
        "tool_calls": {
            "type": "array",
            "description": "Tool calls to execute now. Empty when you can answer.",
            "items": {
                "type": "object",
                "properties": {
                    "tool": {"type": "string", "description": "Name of the tool to invoke."},
                    "args": {
                        "type": "object",
                        "additionalProperties": True,
                        "description": "Arguments for the tool.",
                    },
                },
                "required": ["tool", "args"],
            },
        },
        "message": {
            "type": "string",
            "description": "Progress note while calling tools, or the complete final answer "
            "when tool_calls is empty.",
        },
    },
    "required": ["thoughts", "plan", "tool_calls", "message"],
}

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)

_MESSAGE_KEYS = ("message", "final_message", "finalMessage", "answer")
_TOOL_NAME_KEYS = ("tool", "name", "toolName", "tool_name")
_TOOL_ARGS_KEYS = ("args", "arguments", "parameters", "input")


def _extract_json_text(raw: str) -> str:
    text = raw.strip()
    fenced = _FENCE_RE.search(text)
    if fenced:
        text = fenced.group(1).strip()
    if text.startswith("{"):
        return text
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        return text[start : end + 1]
    return text


def _first(data: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def _normalize_tool_call(item: Any) -> dict[str, Any]:
    if not isinstance(item, dict):
        raise ValueError(f"tool call must be an object, got {type(item).__name__}")
    # OpenAI style {"function": {"name": ..., "arguments": "..."}}
    if isinstance(item.get("function"), dict):
        item = item["function"]
    name = _first(item, _TOOL_NAME_KEYS)
    args = _first(item, _TOOL_ARGS_KEYS)
    if isinstance(args, str):
        args = json.loads(args) if args.strip() else {}
    return {"tool": name, "args": args if args is not None else {}}


def coerce_structured_response(data: Any, raw: str | None = None) -> StructuredResponse:
    """Validate an already decoded object as a StructuredResponse."""
    if not isinstance(data, dict):
        raise ModelResponseError(
            f"Expected a JSON object, got {type(data).__name__}", raw_text=raw or json.dumps(data)
        )

    plan = data.get("plan") or []
    if isinstance(plan, str):
        plan = [plan]

    try:
        tool_calls = [_normalize_tool_call(item) for item in data.get("tool_calls") or []]
        message = _first(data, _MESSAGE_KEYS)
        return StructuredResponse(
            thoughts=data.get("thoughts"),
            plan=[str(step) for step in plan],
            tool_calls=[RequestedToolCall.model_validate(tc) for tc in tool_calls],
            message=message if message is None else str(message),
            raw=raw,
        )
    except (ValidationError, ValueError, TypeError) as e:
        raise ModelResponseError(f"Malformed structured response: {e}", raw_text=raw or "") from e


def parse_structured_response(raw: str) -> StructuredResponse:
    """
    Parse model text into a StructuredResponse.

    Raises:
        ModelResponseError: The text is not a JSON object with the expected shape
    """
    if not raw or not raw.strip():
        raise ModelResponseError("Empty model response", raw_text=raw or "")

    candidate = _extract_json_text(raw)
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise ModelResponseError(f"Model response is not valid JSON: {e}", raw_text=raw) from e

    return coerce_structured_response(data, raw=raw)


# ============================================================================
# Partial (streamed) responses
# ============================================================================

# How many value boundaries to back off to before giving up on a prefix
_MAX_BACKOFF = 8


class _ScanState:
    """Bracket and string state of a JSON prefix."""

    def __init__(self, text: str):
        self.closers: list[str] = []
        self.boundaries: list[tuple[int, str]] = []
        self.in_string = False
        self.escaped = False
        self.end: int | None = None

        for i, ch in enumerate(text):
            if self.in_string:
                if self.escaped:
                    self.escaped = False
                elif ch == "\\":
                    self.escaped = True
                elif ch == '"':
                    self.in_string = False
            elif ch == '"':
                self.in_string = True
            elif ch in "{[":
                self.closers.append("}" if ch == "{" else "]")
                self.boundaries.append((i, ch))
            elif ch in "}]":
                if self.closers:
                    self.closers.pop()
                if not self.closers:
                    # Top-level value is complete
                    self.end = i + 1
                    return
            elif ch == ",":
                self.boundaries.append((i, ch))


def _close(prefix: str) -> str:
    state = _ScanState(prefix)
    if state.in_string:
        if state.escaped:
            prefix = prefix[:-1]
        prefix += '"'
    else:
        prefix = prefix.rstrip().rstrip(",")
    return prefix + "".join(reversed(state.closers))


def parse_partial_json(text: str) -> dict[str, Any] | None:
    """
    Best-effort decode of a truncated JSON object.

    Open strings and brackets are closed; when the tail is an unfinished key
    or literal the prefix is cut back to the previous value boundary.
    Returns None when nothing usable has arrived yet.
    """
    start = text.find("{")
    if start == -1:
        return None
    text = text[start:]

    state = _ScanState(text)
    if state.end is not None:
        text = text[: state.end]

    cuts = [len(text)]
    for index, ch in reversed(state.boundaries[-_MAX_BACKOFF:]):
        cuts.append(index if ch == "," else index + 1)

    for cut in cuts:
        try:
            data = json.loads(_close(text[:cut]))
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data
    return None


def _has_tool_name(item: Any) -> bool:
    if not isinstance(item, dict):
        return False
    if isinstance(item.get("function"), dict):
        item = item["function"]
    return bool(_first(item, _TOOL_NAME_KEYS))


def parse_partial_response(text: str) -> StructuredResponse | None:
    """Parse a streamed prefix into a StructuredResponse, or None if not possible yet."""
    data = parse_partial_json(text)
    if data is None:
        return None
    calls = data.get("tool_calls")
    if isinstance(calls, list):
        # The last call may not have its name yet
        data["tool_calls"] = [c for c in calls if _has_tool_name(c)]
    try:
        response = coerce_structured_response(data)
    except ModelResponseError:
        return None
    if not (response.thoughts or response.plan or response.tool_calls or response.message):
        return None
    return response


class ResponseAccumulator:
    """
    Accumulate streamed model text.

    accumulate() returns a new partial StructuredResponse whenever the parsed
    view of the text changed, finalize() parses the complete text.
    """

    def __init__(self):
        self._chunks: list[str] = []
        self._last: StructuredResponse | None = None

    @property
    def text(self) -> str:
        return "".join(self._chunks)

    def accumulate(self, delta: str | None) -> StructuredResponse | None:
        if not delta:
            return None
        self._chunks.append(delta)
        partial = parse_partial_response(self.text)
        if partial is None or partial == self._last:
            return None
        self._last = partial
        return partial

    def finalize(self) -> StructuredResponse:
        return parse_structured_response(self.text)


__all__ = [
    "RESPONSE_SCHEMA",
    "ResponseAccumulator",
    "coerce_structured_response",
    "parse_partial_json",
    "parse_partial_response",
    "parse_structured_response",
]
