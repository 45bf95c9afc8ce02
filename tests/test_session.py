"""
Tests for AgentSession lifecycle and the RunHandle contract.
"""

import asyncio

import pytest
from pydantic import ValidationError

from agentrun.config import ExecutionConfig, SessionConfig
from agentrun.domain import (
    RunCancelledError,
    RunFailedError,
    RunStatus,
    SessionClosedError,
    TerminationReason,
    ToolCallStatus,
)
from agentrun.llm import ScriptedGateway
from agentrun.runtime import AgentSession, CancellationToken
from agentrun.tools import default_registry

CALCULATE = {
    "thoughts": "Use the calculator",
    "tool_calls": [{"tool": "calculator", "args": {"expr": "2+2"}}],
    "message": "Calculating...",
}
ANSWER = {"message": "2+2 is 4. Hi!"}


async def make_session(script, **config):
    gateway = ScriptedGateway(script)
    session = await AgentSession.create(SessionConfig(**config), default_registry(), gateway)
    return session, gateway


class TestAgentSession:
    @pytest.mark.asyncio
    async def test_create_opens_gateway_with_system_prompt(self):
        session, gateway = await make_session([], persona="Be brief.")

        assert gateway.opened
        assert gateway.system_prompt == session.system_prompt
        assert "calculator" in session.system_prompt
        assert "current_time" in session.system_prompt
        assert "Be brief." in session.system_prompt
        await session.destroy()

    @pytest.mark.asyncio
    async def test_create_requires_gateway(self):
        with pytest.raises(ValueError):
            await AgentSession.create(SessionConfig(), default_registry(), None)

    @pytest.mark.asyncio
    async def test_run_returns_immediately(self):
        session, gateway = await make_session([CALCULATE, ANSWER])

        handle = session.run("What's 2+2, then say hi")

        assert handle.status.value is RunStatus.RUNNING
        assert not handle.done()
        assert gateway.call_count == 0
        assert session.active_runs == [handle]

        assert await handle.result() == "2+2 is 4. Hi!"
        assert handle.done()
        await asyncio.sleep(0.01)
        assert session.active_runs == []
        await session.destroy()

    @pytest.mark.asyncio
    async def test_each_run_gets_a_fresh_conversation(self):
        session, gateway = await make_session([ANSWER, ANSWER])

        await session.run("first").outcome()
        await session.run("second").outcome()

        assert [m.content for m in gateway.calls[0][1:]] == ["first"]
        assert [m.content for m in gateway.calls[1][1:]] == ["second"]
        assert gateway.calls[0][0].content == session.system_prompt
        await session.destroy()

    @pytest.mark.asyncio
    async def test_concurrent_runs_are_independent(self):
        gateway = ScriptedGateway(
            [lambda conversation: {"message": f"echo: {conversation.messages[1].content}"}],
            repeat_last=True,
            delay=0.01,
        )
        async with await AgentSession.create(gateway=gateway) as session:
            handles = [session.run(f"task {i}") for i in range(3)]
            results = await asyncio.gather(*(h.result() for h in handles))

        assert results == ["echo: task 0", "echo: task 1", "echo: task 2"]
        assert len({h.run_id for h in handles}) == 3

    @pytest.mark.asyncio
    async def test_max_iterations_override(self):
        session, gateway = await make_session([CALCULATE] * 5)

        outcome = await session.run("loop", max_iterations=2).outcome()

        assert outcome.termination_reason is TerminationReason.MAX_ITERATIONS
        assert len(outcome.history) == 2
        assert gateway.call_count == 2
        assert session.config.execution.max_iterations == 5

        with pytest.raises(ValidationError):
            session.run("loop", max_iterations=0)
        await session.destroy()

    @pytest.mark.asyncio
    async def test_session_execution_config_is_used(self):
        session, _ = await make_session(
            [CALCULATE] * 5, execution=ExecutionConfig(max_iterations=1, limit_notice="Stopped.")
        )

        outcome = await session.run("loop").outcome()

        assert outcome.message == "Stopped."
        await session.destroy()

    @pytest.mark.asyncio
    async def test_external_token(self):
        session, gateway = await make_session([ANSWER])
        token = CancellationToken()
        token.cancel("pre-cancelled")

        handle = session.run("hi", token=token)
        outcome = await handle.outcome()

        assert handle.token is token
        assert outcome.status is RunStatus.CANCELLED
        assert gateway.call_count == 0
        await session.destroy()

    @pytest.mark.asyncio
    async def test_destroy_cancels_active_runs_and_closes_gateway(self):
        gateway = ScriptedGateway([ANSWER], delay=10)
        session = await AgentSession.create(gateway=gateway)
        handle = session.run("slow")
        await asyncio.sleep(0.01)

        await session.destroy()

        outcome = await asyncio.wait_for(handle.outcome(), timeout=1.0)
        assert outcome.status is RunStatus.CANCELLED
        assert gateway.closed
        assert session.closed
        with pytest.raises(SessionClosedError):
            session.run("again")

    @pytest.mark.asyncio
    async def test_destroy_before_run_starts(self):
        session, gateway = await make_session([ANSWER])
        handle = session.run("never started")

        await session.destroy()

        outcome = await asyncio.wait_for(handle.outcome(), timeout=1.0)
        assert outcome.status is RunStatus.CANCELLED
        assert gateway.call_count == 0

    @pytest.mark.asyncio
    async def test_destroy_is_idempotent(self):
        session, gateway = await make_session([])
        await session.destroy()
        await session.destroy()
        assert gateway.closed


class TestRunHandle:
    @pytest.mark.asyncio
    async def test_outcome_and_state(self):
        session, _ = await make_session([CALCULATE, ANSWER])
        handle = session.run("What's 2+2, then say hi")

        outcome = await handle.outcome()

        assert outcome.succeeded
        assert outcome.run_id == handle.run_id
        assert handle.status.value is RunStatus.COMPLETED
        assert handle.status.finalized and handle.history.finalized
        assert len(handle.history.value) == 2
        assert handle.current_iteration.value is None

        state = handle.state
        assert state.status is RunStatus.COMPLETED
        assert state.termination_reason is TerminationReason.FINAL_ANSWER
        state.history.clear()
        assert len(handle.state.history) == 2
        await session.destroy()

    @pytest.mark.asyncio
    async def test_result_raises_for_failed_run(self):
        session, _ = await make_session([CALCULATE])
        handle = session.run("script runs out")

        with pytest.raises(RunFailedError, match="Model unavailable"):
            await handle.result()

        # Partial progress is kept on a failed run
        assert len(handle.history.value) == 1
        await session.destroy()

    @pytest.mark.asyncio
    async def test_result_raises_for_cancelled_run(self):
        session, _ = await make_session([ANSWER])
        handle = session.run("hi")
        handle.cancel("changed my mind")

        with pytest.raises(RunCancelledError, match="changed my mind"):
            await handle.result()
        assert handle.token.is_cancelled
        await session.destroy()

    @pytest.mark.asyncio
    async def test_completed_iterations_stream(self):
        session, _ = await make_session([CALCULATE, ANSWER])
        handle = session.run("What's 2+2, then say hi")

        live = [entry.iteration async for entry in handle.completed_iterations()]
        late = [entry.iteration async for entry in handle.completed_iterations()]

        assert live == [1, 2]
        assert late == [1, 2]
        await session.destroy()

    @pytest.mark.asyncio
    async def test_status_stream(self):
        session, _ = await make_session([ANSWER])
        handle = session.run("hi")

        statuses = [status async for status in handle.status.stream()]

        assert statuses == [RunStatus.RUNNING, RunStatus.COMPLETED]
        await session.destroy()

    @pytest.mark.asyncio
    async def test_to_transcript(self):
        session, _ = await make_session([CALCULATE, ANSWER])
        handle = session.run("What's 2+2, then say hi")
        await handle.outcome()

        transcript = handle.to_transcript()

        assert [entry["iteration"] for entry in transcript] == [1, 2]
        call = transcript[0]["tool_calls"][0]
        assert call["tool"] == "calculator"
        assert call["status"] == ToolCallStatus.SUCCESS.value
        assert call["result"] == 4
        assert transcript[1]["message"] == "2+2 is 4. Hi!"
        await session.destroy()

    @pytest.mark.asyncio
    async def test_finish_is_idempotent(self):
        session, _ = await make_session([ANSWER])
        handle = session.run("hi")
        outcome = await handle.outcome()

        again = handle._recorder.finish(RunStatus.FAILED, TerminationReason.INTERNAL_ERROR)

        assert again is outcome
        assert handle.status.value is RunStatus.COMPLETED
        await session.destroy()
