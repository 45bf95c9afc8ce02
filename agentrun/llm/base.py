"""
Model gateway abstraction - Pure LLM Interface

Responsibilities:
- Encapsulate a language model service behind one call
- Return the model output as a StructuredResponse

Does NOT handle:
- Tool Loop logic
- Publishing progress (it only reports partial responses to a callback)
- Run state management
"""

from abc import ABC, abstractmethod
from typing import Callable

from agentrun.domain import Conversation, StructuredResponse

# Receives best-effort partial responses while the model is still answering
PartialCallback = Callable[[StructuredResponse], None]


class ModelGateway(ABC):
    """
    Unified model gateway base class.

    Implementations must be safe to call from several runs at once.

    complete() raises ModelUnavailableError when the service cannot answer
    and ModelResponseError (carrying the raw text) when the answer cannot be
    parsed into a StructuredResponse.
    """

    name: str = "model"

    async def open(self, system_prompt: str) -> None:
        """Prepare the underlying capability. Called once by AgentSession.create."""

    async def close(self) -> None:
        """Release the underlying capability. Called by AgentSession.destroy."""

    @abstractmethod
    async def complete(
        self, conversation: Conversation, on_partial: PartialCallback | None = None
    ) -> StructuredResponse:
        """
        Produce the next structured response for the conversation.

        Args:
            conversation: Messages so far (system prompt, user input,
                previous assistant turns and tool results)
            on_partial: Optional callback for streaming gateways. Called with
                partial responses as the answer arrives; gateways that do not
                stream never call it

        Returns:
            StructuredResponse: thoughts, plan, tool calls and/or final message
        """


__all__ = ["ModelGateway", "PartialCallback"]
