"""
Scripted gateway - replays a fixed sequence of model responses.

Useful for deterministic replays of recorded runs and for tests. Each script
item is one of:
- StructuredResponse: returned as is
- dict: validated like a decoded JSON answer
- str: parsed like raw model text (may raise ModelResponseError)
- Exception instance: raised
- callable(conversation) returning any of the above

With chunk_size set, answers are also replayed as a character stream so
partial responses reach the on_partial callback like a streaming model.
"""

import asyncio
import json
from typing import Any, Callable, Iterable

from agentrun.domain import Conversation, Message, ModelUnavailableError, StructuredResponse
from agentrun.llm.base import ModelGateway, PartialCallback
from agentrun.llm.parsing import (
    ResponseAccumulator,
    coerce_structured_response,
    parse_structured_response,
)

ScriptItem = StructuredResponse | dict | str | BaseException | Callable[[Conversation], Any]


class ScriptedGateway(ModelGateway):
    """ModelGateway that answers from a script instead of a model."""

    name = "scripted"

    def __init__(
        self,
        script: Iterable[ScriptItem],
        repeat_last: bool = False,
        delay: float = 0.0,
        chunk_size: int | None = None,
    ):
        """
        Args:
            script: Responses in call order
            repeat_last: Keep answering with the last item once the script runs out,
                otherwise raise ModelUnavailableError
            delay: Seconds to sleep before each answer
            chunk_size: When set, answers are replayed as a stream of chunks of
                this many characters and partial responses are reported
        """
        self._script: list[ScriptItem] = list(script)
        self.repeat_last = repeat_last
        self.delay = delay
        self.chunk_size = chunk_size
        self.calls: list[tuple[Message, ...]] = []
        self.system_prompt: str | None = None
        self.opened = False
        self.closed = False

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def open(self, system_prompt: str) -> None:
        self.system_prompt = system_prompt
        self.opened = True

    async def close(self) -> None:
        self.closed = True

    def _next_item(self) -> ScriptItem:
        index = len(self.calls) - 1
        if index < len(self._script):
            return self._script[index]
        if self.repeat_last and self._script:
            return self._script[-1]
        raise ModelUnavailableError(f"Script exhausted after {len(self._script)} responses")

    @staticmethod
    def _as_text(item: StructuredResponse | dict | str) -> str:
        if isinstance(item, str):
            return item
        if isinstance(item, StructuredResponse):
            return item.raw or item.model_dump_json(exclude={"raw"}, exclude_none=True)
        return json.dumps(item)

    async def _stream(
        self, item: StructuredResponse | dict | str, on_partial: PartialCallback
    ) -> None:
        text = self._as_text(item)
        accumulator = ResponseAccumulator()
        for start in range(0, len(text), self.chunk_size):
            partial = accumulator.accumulate(text[start : start + self.chunk_size])
            if partial is not None:
                on_partial(partial)
            await asyncio.sleep(0)

    async def complete(
        self, conversation: Conversation, on_partial: PartialCallback | None = None
    ) -> StructuredResponse:
        self.calls.append(conversation.messages)
        if self.delay:
            await asyncio.sleep(self.delay)

        item = self._next_item()
        if callable(item) and not isinstance(item, (StructuredResponse, BaseException)):
            item = item(conversation)
            if asyncio.iscoroutine(item):
                item = await item

        if isinstance(item, BaseException):
            raise item
        streamable = isinstance(item, (StructuredResponse, dict, str))
        if on_partial is not None and self.chunk_size and streamable:
            await self._stream(item, on_partial)

        if isinstance(item, StructuredResponse):
            return item.model_copy(deep=True)
        if isinstance(item, dict):
            return coerce_structured_response(item)
        if isinstance(item, str):
            return parse_structured_response(item)
        raise TypeError(f"Unsupported script item: {type(item).__name__}")


__all__ = ["ScriptedGateway", "ScriptItem"]
