"""
RunHandle - the externally observable object for one in-flight run.

The engine writes through a RunRecorder, which owns the RunState and the
streaming channels. Callers only ever see the RunHandle, which exposes the
channels for reading, a cancel() method and the awaitable outcome.
"""

import asyncio
import time
from typing import TYPE_CHECKING, AsyncIterator

from agentrun.domain import (
    IterationLogEntry,
    RunCancelledError,
    RunFailedError,
    RunMetrics,
    RunOutcome,
    RunPhase,
    RunState,
    RunStatus,
    TerminationReason,
)
from agentrun.runtime.channel import StreamingProperty
from agentrun.runtime.control import CancellationToken

if TYPE_CHECKING:
    from agentrun.runtime.transcript import TranscriptEntry


class RunRecorder:
    """
    Write side of a run: state, channels and the terminal outcome.

    Owned by the RunHandle; only the IterationEngine writes to it.
    """

    def __init__(self, run_id: str):
        self.run_id = run_id
        self.state = RunState(run_id=run_id)
        self.metrics = RunMetrics(start_time=time.time())

        self.status: StreamingProperty[RunStatus] = StreamingProperty(RunStatus.RUNNING, "status")
        self.phase: StreamingProperty[RunPhase] = StreamingProperty(RunPhase.THINKING, "phase")
        self.history: StreamingProperty[tuple[IterationLogEntry, ...]] = StreamingProperty(
            (), "history"
        )
        self.current_iteration: StreamingProperty[IterationLogEntry | None] = StreamingProperty(
            None, "current_iteration"
        )

        self._done = asyncio.Event()
        self._outcome: RunOutcome | None = None

    @property
    def finished(self) -> bool:
        return self._outcome is not None

    def set_phase(self, phase: RunPhase) -> None:
        self.phase._update(phase)

    def publish_current(self, entry: IterationLogEntry) -> None:
        """Replace the in-progress iteration wholesale."""
        if self.finished:
            return
        snapshot = entry.snapshot()
        self.state.current_iteration = snapshot
        self.current_iteration._update(snapshot)

    def append_history(self, entry: IterationLogEntry) -> None:
        """Fold a completed iteration into the append-only history."""
        if self.finished:
            return
        snapshot = entry.snapshot()
        self.state.history.append(snapshot)
        self.state.current_iteration = None
        self.metrics.iterations = len(self.state.history)
        self.history._update(tuple(self.state.history))
        self.current_iteration._update(None)

    def finish(
        self,
        status: RunStatus,
        reason: TerminationReason,
        message: str | None = None,
        error: str | None = None,
    ) -> RunOutcome:
        """Move to a terminal status, resolve the outcome and close all channels."""
        if self._outcome is not None:
            return self._outcome

        self.metrics.end_time = time.time()
        self.metrics.duration = self.metrics.end_time - self.metrics.start_time

        self.state.status = status
        self.state.termination_reason = reason
        self.state.error = error
        self.state.current_iteration = None

        self._outcome = RunOutcome(
            run_id=self.run_id,
            status=status,
            termination_reason=reason,
            message=message,
            error=error,
            history=[entry.snapshot() for entry in self.state.history],
            metrics=self.metrics.model_copy(),
        )

        self.current_iteration._update(None)
        self.phase._update(RunPhase.DONE)
        self.status._update(status)
        for channel in (self.current_iteration, self.history, self.phase, self.status):
            channel._finalize()

        self._done.set()
        return self._outcome

    async def wait(self) -> RunOutcome:
        await self._done.wait()
        assert self._outcome is not None
        return self._outcome

    @property
    def outcome(self) -> RunOutcome | None:
        return self._outcome


class RunHandle:
    """
    Observable and awaitable view of one run.

    Observation points:
    - status: running -> completed | cancelled | failed
    - phase: thinking / calling_tools progress indicator
    - history: tuple of completed iterations, grows by one per iteration
    - current_iteration: the in-progress iteration, None between iterations

    Each is a StreamingProperty: read `.value` at any time, `subscribe()` a
    callback or `async for` over `.stream()`.

    Examples:
        >>> handle = session.run("What's 2+2?")
        >>> handle.current_iteration.subscribe(render_progress)
        >>> outcome = await handle.outcome()
        >>> print(outcome.status, outcome.message)
    """

    def __init__(self, recorder: RunRecorder, token: CancellationToken):
        self._recorder = recorder
        self._token = token

    @property
    def run_id(self) -> str:
        return self._recorder.run_id

    @property
    def status(self) -> StreamingProperty[RunStatus]:
        return self._recorder.status

    @property
    def phase(self) -> StreamingProperty[RunPhase]:
        return self._recorder.phase

    @property
    def history(self) -> StreamingProperty[tuple[IterationLogEntry, ...]]:
        return self._recorder.history

    @property
    def current_iteration(self) -> StreamingProperty[IterationLogEntry | None]:
        return self._recorder.current_iteration

    @property
    def token(self) -> CancellationToken:
        return self._token

    @property
    def state(self) -> RunState:
        """Snapshot of the run state."""
        return self._recorder.state.model_copy(deep=True)

    def done(self) -> bool:
        return self._recorder.finished

    def cancel(self, reason: str = "Run cancelled by caller") -> None:
        """
        Request cancellation.

        Cooperative: no model or tool call is started once the engine sees
        the signal, but calls already in flight are not interrupted.
        """
        self._token.cancel(reason)

    async def outcome(self) -> RunOutcome:
        """Wait for the run to reach a terminal status."""
        return await self._recorder.wait()

    async def result(self) -> str:
        """
        Wait for the run and return its final message.

        Raises:
            RunCancelledError: the run was cancelled
            RunFailedError: the run failed; partial history stays on the handle
        """
        outcome = await self.outcome()
        if outcome.status is RunStatus.CANCELLED:
            raise RunCancelledError(outcome.error or "Run cancelled")
        if outcome.status is RunStatus.FAILED:
            raise RunFailedError(outcome.error or "Run failed")
        return outcome.message or ""

    async def completed_iterations(self) -> AsyncIterator[IterationLogEntry]:
        """Yield each iteration as it is appended to the history, from the first one."""
        seen = 0
        async for entries in self.history.stream():
            for entry in entries[seen:]:
                yield entry
            seen = len(entries)

    def to_transcript(self) -> list["TranscriptEntry"]:
        from agentrun.runtime.transcript import export_transcript

        return export_transcript(self._recorder.state.history)

    def __repr__(self) -> str:
        return (
            f"RunHandle(run_id={self.run_id!r}, status={self.status.value.value}, "
            f"iterations={len(self.history.value)})"
        )


__all__ = ["RunHandle", "RunRecorder"]
