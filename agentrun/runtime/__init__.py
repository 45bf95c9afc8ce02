"""
Runtime module - the agent run engine.

This module contains:
- AgentSession: creates runs against a registry and a model gateway
- IterationEngine: the model <-> tool loop for one run
- RunHandle: observable, cancellable, awaitable view of a run
- StreamingProperty: retained-value progress channel
- CancellationToken: cooperative cancellation signal
"""

from agentrun.runtime.channel import StreamingProperty, Unsubscribe
from agentrun.runtime.control import CancellationToken
from agentrun.runtime.engine import EMPTY_RESPONSE_NOTICE, IterationEngine
from agentrun.runtime.handle import RunHandle, RunRecorder
from agentrun.runtime.prompt import build_system_prompt
from agentrun.runtime.session import AgentSession
from agentrun.runtime.transcript import (
    TranscriptEntry,
    dumps_transcript,
    export_transcript,
    load_transcript,
)

__all__ = [
    "AgentSession",
    "IterationEngine",
    "EMPTY_RESPONSE_NOTICE",
    "RunHandle",
    "RunRecorder",
    "StreamingProperty",
    "Unsubscribe",
    "CancellationToken",
    "build_system_prompt",
    "TranscriptEntry",
    "export_transcript",
    "dumps_transcript",
    "load_transcript",
]
