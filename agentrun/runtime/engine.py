"""
IterationEngine - the model <-> tool loop for a single run.

Responsibilities:
- Call the model gateway once per iteration
- Dispatch requested tool calls concurrently and wait for all of them
- Append assistant turns and tool results to the conversation
- Fold each iteration into the run history
- Decide termination (final answer, iteration limit, cancellation, failure)

Does NOT handle:
- System prompt construction (AgentSession)
- Retrying model calls (gateway adapters)
"""

import asyncio

from agentrun.config import ExecutionConfig
from agentrun.domain import (
    Conversation,
    IterationLogEntry,
    ModelResponseError,
    ModelUnavailableError,
    RunOutcome,
    RunPhase,
    RunStatus,
    StructuredResponse,
    TerminationReason,
    ToolCall,
    ToolCallStatus,
)
from agentrun.llm.base import ModelGateway
from agentrun.runtime.control import CancellationToken
from agentrun.runtime.handle import RunRecorder
from agentrun.tools.executor import ToolExecutor
from agentrun.tools.registry import ToolRegistry
from agentrun.utils.logging import get_logger

logger = get_logger(__name__)

EMPTY_RESPONSE_NOTICE = "The model returned an empty response."


class IterationEngine:
    """
    Drives exactly one run from its first model call to a terminal status.

    Iterations are strictly sequential. Within an iteration the requested tool
    calls run concurrently and all of them settle before the next model call.
    Cancellation is checked at iteration boundaries and before tool dispatch.
    """

    def __init__(
        self,
        gateway: ModelGateway,
        registry: ToolRegistry,
        conversation: Conversation,
        recorder: RunRecorder,
        token: CancellationToken,
        config: ExecutionConfig | None = None,
    ):
        self.gateway = gateway
        self.registry = registry
        self.conversation = conversation
        self.recorder = recorder
        self.token = token
        self.config = config or ExecutionConfig()
        self.tool_executor = ToolExecutor(
            registry,
            max_parallel=self.config.max_parallel_tools,
            timeout=self.config.tool_timeout,
        )
        self._detached: set[asyncio.Task] = set()

    @property
    def run_id(self) -> str:
        return self.recorder.run_id

    async def run(self) -> RunOutcome:
        """
        Execute the loop. Never raises for run-level failures; the outcome
        carries the terminal status instead.
        """
        max_iterations = self.config.max_iterations
        logger.info("run_started", run_id=self.run_id, max_iterations=max_iterations)

        try:
            outcome = await self._loop(max_iterations)
        except asyncio.CancelledError:
            # Task cancelled from outside, e.g. the session was destroyed
            self._finish_cancelled(self.token.reason or "Run task was cancelled")
            raise
        except Exception as e:
            logger.exception("run_internal_error", run_id=self.run_id)
            outcome = self.recorder.finish(
                RunStatus.FAILED,
                TerminationReason.INTERNAL_ERROR,
                error=f"Internal error: {type(e).__name__}: {e}",
            )

        logger.info(
            "run_finished",
            run_id=self.run_id,
            status=outcome.status.value,
            termination_reason=outcome.termination_reason.value,
            iterations=len(outcome.history),
            model_calls=outcome.metrics.model_calls,
            tool_calls=outcome.metrics.tool_calls_count,
        )
        return outcome

    async def _loop(self, max_iterations: int) -> RunOutcome:
        iteration = 0

        while True:
            # 1. Cancellation checkpoint
            if self.token.is_cancelled:
                return self._finish_cancelled(self.token.reason)

            index = iteration + 1
            self.recorder.set_phase(RunPhase.THINKING)
            logger.debug("iteration_started", run_id=self.run_id, iteration=index)

            # 2. Model call
            response = await self._complete(index)
            if isinstance(response, RunOutcome):
                return response

            if self.token.is_cancelled:
                # The response arrived after cancellation; it is discarded
                return self._finish_cancelled(self.token.reason)

            self.conversation.add_assistant(response.to_assistant_text())

            # 3. Final answer
            if not response.tool_calls:
                message = response.message or EMPTY_RESPONSE_NOTICE
                if not response.message:
                    logger.warning("empty_model_response", run_id=self.run_id, iteration=index)
                self.recorder.append_history(
                    IterationLogEntry(
                        iteration=index,
                        thoughts=response.thoughts,
                        plan=list(response.plan),
                        message=message,
                    )
                )
                return self.recorder.finish(
                    RunStatus.COMPLETED, TerminationReason.FINAL_ANSWER, message=message
                )

            # 4. Tool dispatch
            entry = IterationLogEntry(
                iteration=index,
                thoughts=response.thoughts,
                plan=list(response.plan),
                tool_calls=[ToolCall(tool=tc.tool, args=dict(tc.args)) for tc in response.tool_calls],
                interim_message=response.message,
            )
            self.recorder.publish_current(entry)

            if self.token.is_cancelled:
                return self._finish_cancelled(self.token.reason)

            self.recorder.set_phase(RunPhase.CALLING_TOOLS)
            settled = await self._dispatch(entry)
            if not settled:
                return self._finish_cancelled(self.token.reason)

            # 5. Tool results become conversation messages
            for call in entry.tool_calls:
                self.conversation.add_tool_result(call)
            self.recorder.metrics.tool_calls_count += len(entry.tool_calls)
            self.recorder.metrics.tool_errors_count += sum(
                1 for call in entry.tool_calls if call.status is ToolCallStatus.ERROR
            )

            # 6. Fold into history
            self.recorder.append_history(entry)
            iteration = index
            logger.debug(
                "iteration_completed",
                run_id=self.run_id,
                iteration=index,
                tool_calls=len(entry.tool_calls),
            )

            # 7. Iteration limit
            if iteration >= max_iterations:
                logger.info(
                    "max_iterations_reached", run_id=self.run_id, max_iterations=max_iterations
                )
                return self.recorder.finish(
                    RunStatus.COMPLETED,
                    TerminationReason.MAX_ITERATIONS,
                    message=self.config.render_limit_notice(max_iterations),
                )

    async def _complete(self, index: int) -> StructuredResponse | RunOutcome:
        """Call the gateway. Returns a terminal outcome if the model is unavailable."""

        def on_partial(partial: StructuredResponse) -> None:
            if not self.token.is_cancelled:
                self.recorder.publish_current(self._thinking_entry(index, partial))

        self.recorder.metrics.model_calls += 1
        try:
            return await self.gateway.complete(self.conversation, on_partial=on_partial)
        except ModelResponseError as e:
            logger.warning(
                "model_response_unparseable",
                run_id=self.run_id,
                error=str(e),
                raw_length=len(e.raw_text or ""),
            )
            return StructuredResponse(message=e.raw_text, raw=e.raw_text)
        except ModelUnavailableError as e:
            logger.error("model_unavailable", run_id=self.run_id, error=str(e))
            return self.recorder.finish(
                RunStatus.FAILED,
                TerminationReason.MODEL_UNAVAILABLE,
                error=f"Model unavailable: {e}",
            )

    @staticmethod
    def _thinking_entry(index: int, partial: StructuredResponse) -> IterationLogEntry:
        """
        Progress view of a response that is still streaming.

        Any message text is kept as interim_message: until the response is
        complete it is unknown whether it is the final answer.
        """
        return IterationLogEntry(
            iteration=index,
            thoughts=partial.thoughts,
            plan=list(partial.plan),
            tool_calls=[ToolCall(tool=tc.tool, args=dict(tc.args)) for tc in partial.tool_calls],
            interim_message=partial.message,
        )

    async def _dispatch(self, entry: IterationLogEntry) -> bool:
        """
        Run every tool call of the iteration and wait for all of them.

        Returns False when cancellation was requested before the batch
        settled. The batch keeps running in the background and its results
        are discarded.
        """

        def on_update(_call: ToolCall) -> None:
            self.recorder.publish_current(entry)

        batch = asyncio.ensure_future(self.tool_executor.execute_batch(entry.tool_calls, on_update))
        cancelled = asyncio.ensure_future(self.token.wait())
        try:
            await asyncio.wait({batch, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            cancelled.cancel()
            self._detach(batch)
            raise

        if batch.done():
            cancelled.cancel()
            batch.result()
            return True

        logger.info(
            "tool_dispatch_abandoned",
            run_id=self.run_id,
            iteration=entry.iteration,
            pending=sum(1 for call in entry.tool_calls if not call.status.is_settled),
        )
        self._detach(batch)
        return False

    def _detach(self, task: asyncio.Task) -> None:
        self._detached.add(task)
        task.add_done_callback(self._on_detached_done)

    def _on_detached_done(self, task: asyncio.Task) -> None:
        self._detached.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning(
                "detached_tool_batch_failed", run_id=self.run_id, error=str(task.exception())
            )

    def _finish_cancelled(self, reason: str | None) -> RunOutcome:
        logger.info("run_cancelled", run_id=self.run_id, reason=reason)
        return self.recorder.finish(
            RunStatus.CANCELLED,
            TerminationReason.CANCELLED,
            error=reason or "Run cancelled",
        )


__all__ = ["EMPTY_RESPONSE_NOTICE", "IterationEngine"]
