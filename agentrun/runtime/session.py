"""
AgentSession - top-level entry point for running tasks.

A session binds a tool registry, a model gateway and a rendered system
prompt. Every run() starts one IterationEngine in its own asyncio task and
returns a RunHandle immediately.
"""

import asyncio
from uuid import uuid4

from agentrun.config import ExecutionConfig, SessionConfig
from agentrun.domain import Conversation, RunStatus, SessionClosedError, TerminationReason
from agentrun.llm.base import ModelGateway
from agentrun.runtime.control import CancellationToken
from agentrun.runtime.engine import IterationEngine
from agentrun.runtime.handle import RunHandle, RunRecorder
from agentrun.runtime.prompt import build_system_prompt
from agentrun.tools.registry import ToolRegistry
from agentrun.utils.logging import get_logger

logger = get_logger(__name__)


class AgentSession:
    """
    Long-lived assistant instance.

    Use `await AgentSession.create(...)` rather than the constructor, so the
    gateway is opened with the system prompt before the first run.

    Examples:
        >>> async with await AgentSession.create(config, registry, gateway) as session:
        ...     handle = session.run("What's 2+2?")
        ...     print(await handle.result())
    """

    def __init__(
        self,
        config: SessionConfig,
        registry: ToolRegistry,
        gateway: ModelGateway,
        system_prompt: str,
    ):
        self.config = config
        self.registry = registry
        self.gateway = gateway
        self.system_prompt = system_prompt
        self._active: dict[str, tuple[RunHandle, asyncio.Task]] = {}
        self._closed = False

    @classmethod
    async def create(
        cls,
        config: SessionConfig | None = None,
        registry: ToolRegistry | None = None,
        gateway: ModelGateway | None = None,
    ) -> "AgentSession":
        """
        Render the system prompt and open the gateway.

        Args:
            config: Session configuration, defaults to SessionConfig()
            registry: Tools available to every run, defaults to an empty registry
            gateway: Model gateway, required
        """
        if gateway is None:
            raise ValueError("gateway is required for AgentSession.create()")
        config = config or SessionConfig()
        registry = registry if registry is not None else ToolRegistry()

        system_prompt = build_system_prompt(
            registry.describe(),
            tools_format=config.tools_format,
            persona=config.persona,
            include_datetime=config.include_datetime,
        )
        await gateway.open(system_prompt)

        logger.info(
            "session_created",
            session=config.name,
            gateway=gateway.name,
            tools=registry.names(),
        )
        return cls(config, registry, gateway, system_prompt)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def active_runs(self) -> list[RunHandle]:
        return [handle for handle, _ in self._active.values()]

    def run(
        self,
        input: str,
        max_iterations: int | None = None,
        token: CancellationToken | None = None,
    ) -> RunHandle:
        """
        Start a run without waiting for it.

        Must be called from a running event loop.

        Args:
            input: The user's task
            max_iterations: Overrides the session's configured limit
            token: External cancellation token, a fresh one is created otherwise

        Returns:
            RunHandle: observe progress, cancel or await the outcome
        """
        if self._closed:
            raise SessionClosedError(f"Session {self.config.name} has been destroyed")

        execution = self._execution_config(max_iterations)
        token = token or CancellationToken()
        run_id = str(uuid4())

        recorder = RunRecorder(run_id)
        handle = RunHandle(recorder, token)
        engine = IterationEngine(
            gateway=self.gateway,
            registry=self.registry,
            conversation=Conversation.seed(self.system_prompt, input),
            recorder=recorder,
            token=token,
            config=execution,
        )

        task = asyncio.get_running_loop().create_task(engine.run(), name=f"agentrun-{run_id}")
        self._active[run_id] = (handle, task)
        task.add_done_callback(lambda t: self._on_run_done(run_id, recorder, t))

        logger.debug("run_scheduled", session=self.config.name, run_id=run_id)
        return handle

    def _execution_config(self, max_iterations: int | None) -> ExecutionConfig:
        if max_iterations is None:
            return self.config.execution
        data = self.config.execution.model_dump()
        data["max_iterations"] = max_iterations
        return ExecutionConfig.model_validate(data)

    def _on_run_done(self, run_id: str, recorder: RunRecorder, task: asyncio.Task) -> None:
        self._active.pop(run_id, None)
        if not recorder.finished:
            # Task was cancelled before the engine got to run
            recorder.finish(
                RunStatus.CANCELLED, TerminationReason.CANCELLED, error="Run task was cancelled"
            )

    async def destroy(self, reason: str = "Session destroyed") -> None:
        """
        Cancel every active run, wait for them and release the gateway.

        Safe to call more than once.
        """
        if self._closed:
            return
        self._closed = True

        active = list(self._active.values())
        for handle, task in active:
            handle.cancel(reason)
            task.cancel()
        if active:
            await asyncio.gather(*(task for _, task in active), return_exceptions=True)
        self._active.clear()

        await self.gateway.close()
        logger.info("session_destroyed", session=self.config.name, cancelled_runs=len(active))

    async def __aenter__(self) -> "AgentSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.destroy()

    def __repr__(self) -> str:
        return (
            f"AgentSession(name={self.config.name!r}, tools={len(self.registry)}, "
            f"active_runs={len(self._active)}, closed={self._closed})"
        )


__all__ = ["AgentSession"]
