"""
OpenAI gateway - chat completions in JSON mode.
"""

import json
import os
from typing import Any

from openai import (
    APIConnectionError,
    APIError,
    APITimeoutError,
    AsyncOpenAI,
    InternalServerError,
    RateLimitError,
)

from agentrun.config.exceptions import MissingCredentialsError
from agentrun.domain import Conversation, ModelResponseError, ModelUnavailableError, StructuredResponse
from agentrun.llm.base import ModelGateway, PartialCallback
from agentrun.llm.parsing import RESPONSE_SCHEMA, ResponseAccumulator, parse_structured_response
from agentrun.utils.logging import get_logger
from agentrun.utils.retry import retry_async

logger = get_logger(__name__)

# Retryable exceptions for OpenAI
OPENAI_RETRYABLE = (
    APIConnectionError,
    RateLimitError,
    InternalServerError,
    APITimeoutError,
)

FORMAT_INSTRUCTIONS = (
    "Respond with a single JSON object that follows this JSON schema:\n"
    + json.dumps(RESPONSE_SCHEMA)
)


class OpenAIGateway(ModelGateway):
    """
    ModelGateway backed by the OpenAI chat completions API.

    Works with any OpenAI compatible endpoint that supports
    response_format={"type": "json_object"}. When the caller passes an
    on_partial callback (and stream is enabled) the completion is streamed
    and partial responses are reported while the JSON arrives.
    """

    name = "openai"

    def __init__(
        self,
        model: str | None = None,
        api_key: str | None = None,
        base_url: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        client: AsyncOpenAI | None = None,
        max_attempts: int = 3,
        stream: bool = True,
    ):
        from agentrun.config import settings

        self.model = model or settings.default_model
        self.temperature = settings.temperature if temperature is None else temperature
        self.max_tokens = max_tokens
        self.max_attempts = max_attempts
        self.stream = stream
        self._owns_client = client is None

        if client is None:
            # Resolve API Key: argument > config > env
            resolved_api_key = api_key
            if resolved_api_key is None and settings.openai_api_key:
                resolved_api_key = settings.openai_api_key.get_secret_value()
            if resolved_api_key is None:
                resolved_api_key = os.getenv("OPENAI_API_KEY")
            if not resolved_api_key:
                raise MissingCredentialsError(
                    "OpenAI API key not configured. Set AGENTRUN_OPENAI_API_KEY or OPENAI_API_KEY."
                )

            resolved_base_url = (
                base_url or settings.openai_base_url or os.getenv("OPENAI_BASE_URL")
            )
            client = AsyncOpenAI(api_key=resolved_api_key, base_url=resolved_base_url)

        self.client = client

    async def close(self) -> None:
        if self._owns_client:
            await self.client.close()

    def _build_messages(self, conversation: Conversation) -> list[dict]:
        messages = conversation.to_openai()
        # JSON mode requires the word "JSON" in the prompt; the schema goes
        # right after the system prompt so it survives long conversations.
        instruction = {"role": "system", "content": FORMAT_INSTRUCTIONS}
        if messages and messages[0]["role"] == "system":
            return [messages[0], instruction, *messages[1:]]
        return [instruction, *messages]

    async def _create(self, params: dict):
        call = retry_async(max_attempts=self.max_attempts, exceptions=OPENAI_RETRYABLE)(
            self.client.chat.completions.create
        )
        return await call(**params)

    async def _consume_stream(
        self, stream, on_partial: PartialCallback
    ) -> tuple[str, str | None, Any]:
        """Read a streamed completion, reporting partial responses as they parse."""
        accumulator = ResponseAccumulator()
        finish_reason = None
        usage = None

        async for chunk in stream:
            if getattr(chunk, "usage", None):
                usage = chunk.usage
            if not chunk.choices:
                continue
            choice = chunk.choices[0]
            if choice.finish_reason:
                finish_reason = choice.finish_reason
            partial = accumulator.accumulate(choice.delta.content)
            if partial is not None:
                on_partial(partial)

        return accumulator.text, finish_reason, usage

    async def complete(
        self, conversation: Conversation, on_partial: PartialCallback | None = None
    ) -> StructuredResponse:
        streaming = self.stream and on_partial is not None
        params = {
            "model": self.model,
            "messages": self._build_messages(conversation),
            "temperature": self.temperature,
            "response_format": {"type": "json_object"},
        }
        if self.max_tokens:
            params["max_tokens"] = self.max_tokens
        if streaming:
            params["stream"] = True
            params["stream_options"] = {"include_usage": True}

        logger.info(
            "llm_request",
            model=self.model,
            messages_count=len(params["messages"]),
            temperature=self.temperature,
            stream=streaming,
        )

        try:
            response = await self._create(params)
            if streaming:
                content, finish_reason, usage = await self._consume_stream(response, on_partial)
            else:
                choice = response.choices[0] if response.choices else None
                content = choice.message.content if choice else None
                finish_reason = choice.finish_reason if choice else None
                usage = getattr(response, "usage", None)
        except APIError as e:
            logger.error(
                "llm_request_failed",
                model=self.model,
                error=str(e),
                error_type=type(e).__name__,
                messages_count=len(params["messages"]),
                exc_info=True,
            )
            raise ModelUnavailableError(f"{type(e).__name__}: {e}") from e

        logger.info(
            "llm_response",
            model=self.model,
            finish_reason=finish_reason,
            prompt_tokens=getattr(usage, "prompt_tokens", None),
            completion_tokens=getattr(usage, "completion_tokens", None),
        )

        if not content:
            raise ModelResponseError("Model returned no content", raw_text=content or "")
        return parse_structured_response(content)


__all__ = ["OpenAIGateway", "OPENAI_RETRYABLE", "FORMAT_INSTRUCTIONS"]
