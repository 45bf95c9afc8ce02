"""
Tool Registry - named tool descriptors, validation and dispatch.

The registry is shared by every run of a session, possibly concurrently.
It keeps no per-call state; registration is expected to happen before runs
start.
"""

from __future__ import annotations

import asyncio
import inspect
import json
from typing import Any, Iterator

from agentrun.domain.errors import (
    ArgumentValidationError,
    DuplicateToolError,
    ToolExecutionError,
    UnknownToolError,
)
from agentrun.tools.base import ToolDescriptor
from agentrun.utils.logging import get_logger

logger = get_logger(__name__)


class ToolRegistry:
    """
    Central registry for the tools available to a session.

    Supports:
    - Registering descriptors (names are unique)
    - Rendering the manifest used in the system prompt
    - Validating arguments and invoking handlers
    """

    def __init__(self, tools: list[ToolDescriptor] | None = None) -> None:
        self._tools: dict[str, ToolDescriptor] = {}
        for descriptor in tools or []:
            self.register(descriptor)

    def register(self, descriptor: ToolDescriptor) -> ToolDescriptor:
        """Register a tool. Raises DuplicateToolError if the name is taken."""
        if descriptor.name in self._tools:
            raise DuplicateToolError(descriptor.name)
        self._tools[descriptor.name] = descriptor
        logger.debug("tool_registered", tool_name=descriptor.name)
        return descriptor

    def unregister(self, name: str) -> bool:
        """Remove a tool. Returns False if it was not registered."""
        if name in self._tools:
            del self._tools[name]
            logger.debug("tool_unregistered", tool_name=name)
            return True
        return False

    def get(self, name: str) -> ToolDescriptor:
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownToolError(name, self.names()) from None

    def names(self) -> list[str]:
        return list(self._tools)

    def describe(self) -> list[dict[str, Any]]:
        """Manifest of name, description, parameters schema and examples."""
        return [descriptor.describe() for descriptor in self._tools.values()]

    def to_openai_schemas(self) -> list[dict[str, Any]]:
        return [descriptor.to_openai_schema() for descriptor in self._tools.values()]

    async def invoke(self, name: str, raw_arguments: dict[str, Any] | str | None = None) -> Any:
        """
        Validate the arguments and run the tool's handler.

        Args:
            name: Registered tool name
            raw_arguments: Argument dict, a JSON object string, or None

        Returns:
            Whatever the handler returns

        Raises:
            UnknownToolError: the tool is not registered
            ArgumentValidationError: the arguments do not match the schema
            ToolExecutionError: the handler raised
        """
        descriptor = self.get(name)
        arguments = _coerce_arguments(name, raw_arguments)
        kwargs = descriptor.validate_args(arguments)

        try:
            if descriptor.is_async:
                result = await descriptor.handler(**kwargs)
            else:
                result = await asyncio.to_thread(descriptor.handler, **kwargs)
                if inspect.isawaitable(result):
                    result = await result
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise ToolExecutionError(name, e) from e

        return result

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[ToolDescriptor]:
        return iter(list(self._tools.values()))

    def __repr__(self) -> str:
        return f"ToolRegistry(tools={self.names()})"


def _coerce_arguments(name: str, raw_arguments: dict[str, Any] | str | None) -> dict[str, Any]:
    if raw_arguments is None:
        return {}
    if isinstance(raw_arguments, str):
        if not raw_arguments.strip():
            return {}
        try:
            raw_arguments = json.loads(raw_arguments)
        except json.JSONDecodeError as e:
            raise ArgumentValidationError(name, f"Invalid JSON arguments: {e}") from e
    if not isinstance(raw_arguments, dict):
        raise ArgumentValidationError(
            name, f"Arguments must be an object, got {type(raw_arguments).__name__}"
        )
    return raw_arguments


__all__ = ["ToolRegistry"]
