"""
Concurrent tool-call executor.

Runs the tool calls of one iteration through the registry, fanned out with
asyncio.gather and bounded by a semaphore. Every outcome is recorded on its
ToolCall; no tool error escapes this boundary.
"""

import asyncio
from typing import Callable

from agentrun.domain import ToolCall, ToolError
from agentrun.tools.registry import ToolRegistry
from agentrun.utils.logging import get_logger

logger = get_logger(__name__)

UpdateCallback = Callable[[ToolCall], None]


class ToolExecutor:
    """Dispatches ToolCalls and records success or error on each of them."""

    def __init__(
        self,
        registry: ToolRegistry,
        max_parallel: int = 8,
        timeout: float | None = None,
    ):
        """
        Args:
            registry: Tool registry used for validation and dispatch
            max_parallel: Maximum calls running at once
            timeout: Per call timeout in seconds, None for no limit
        """
        self.registry = registry
        self.timeout = timeout
        self._semaphore = asyncio.Semaphore(max_parallel)

    async def execute(
        self,
        call: ToolCall,
        on_update: UpdateCallback | None = None,
    ) -> ToolCall:
        """
        Execute a single tool call, updating it in place.

        Args:
            call: The pending tool call
            on_update: Invoked after each status change

        Returns:
            ToolCall: The same object, settled as success or error
        """
        async with self._semaphore:
            call.mark_running()
            _notify(on_update, call)
            logger.debug("executing_tool", tool_name=call.tool, tool_call_id=call.id)

            try:
                invocation = self.registry.invoke(call.tool, call.args)
                if self.timeout is not None:
                    result = await asyncio.wait_for(invocation, timeout=self.timeout)
                else:
                    result = await invocation
            except asyncio.CancelledError:
                call.mark_error("Tool execution was cancelled")
                _notify(on_update, call)
                raise
            except ToolError as e:
                logger.warning(
                    "tool_execution_failed",
                    tool_name=call.tool,
                    tool_call_id=call.id,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                call.mark_error(str(e))
            except TimeoutError:
                logger.warning(
                    "tool_execution_timeout",
                    tool_name=call.tool,
                    tool_call_id=call.id,
                    timeout=self.timeout,
                )
                call.mark_error(f"Tool {call.tool} timed out after {self.timeout}s")
            except Exception as e:
                logger.error(
                    "tool_execution_exception",
                    tool_name=call.tool,
                    tool_call_id=call.id,
                    error=str(e),
                    exc_info=True,
                )
                call.mark_error(f"Tool execution failed: {e}")
            else:
                call.mark_success(result)
                logger.debug(
                    "tool_execution_completed",
                    tool_name=call.tool,
                    tool_call_id=call.id,
                    duration=call.duration,
                )

        _notify(on_update, call)
        return call

    async def execute_batch(
        self,
        calls: list[ToolCall],
        on_update: UpdateCallback | None = None,
    ) -> list[ToolCall]:
        """
        Execute tool calls concurrently and wait for all of them to settle.

        Returns:
            list[ToolCall]: The calls in their original order
        """
        if not calls:
            return []
        return list(await asyncio.gather(*(self.execute(c, on_update) for c in calls)))


def _notify(callback: UpdateCallback | None, call: ToolCall) -> None:
    if callback is None:
        return
    try:
        callback(call)
    except Exception:
        logger.exception("tool_update_callback_failed", tool_call_id=call.id)


__all__ = ["ToolExecutor"]
