"""
Command-line interface for agentrun.

Runs one task against the OpenAI gateway with the built-in demo tools and
prints each iteration as it completes.
"""

import argparse
import asyncio
import signal
import sys
from pathlib import Path

from agentrun.config import ExecutionConfig, MissingCredentialsError, SessionConfig, settings
from agentrun.domain import (
    IterationLogEntry,
    RunOutcome,
    RunStatus,
    ToolCallStatus,
    stringify_result,
)
from agentrun.llm import OpenAIGateway
from agentrun.runtime import AgentSession, RunHandle, dumps_transcript
from agentrun.tools import default_registry
from agentrun.utils.logging import configure_logging

STATUS_ICONS = {
    ToolCallStatus.PENDING: "…",
    ToolCallStatus.RUNNING: "⏳",
    ToolCallStatus.SUCCESS: "✅",
    ToolCallStatus.ERROR: "❌",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agentrun",
        description="agentrun - run a task through the model <-> tool loop",
    )
    parser.add_argument("task", help="The task to give the agent")
    parser.add_argument(
        "--max-iterations",
        type=int,
        default=settings.default_max_iterations,
        help=f"Maximum loop iterations (default: {settings.default_max_iterations})",
    )
    parser.add_argument(
        "--model",
        default=settings.default_model,
        help=f"Model name (default: {settings.default_model})",
    )
    parser.add_argument("--persona", default=None, help="Extra instructions for the agent")
    parser.add_argument(
        "--tools-format",
        choices=["snippet", "detailed_snippet", "text", "json"],
        default="snippet",
        help="How tools are described to the model (default: snippet)",
    )
    parser.add_argument(
        "--transcript",
        type=Path,
        default=None,
        metavar="PATH",
        help="Write the run history as JSON to PATH",
    )
    parser.add_argument("--log-level", default=None, help="Log level (default: from settings)")
    return parser


def format_iteration(entry: IterationLogEntry) -> str:
    lines = [f"── Iteration {entry.iteration} ──"]
    if entry.thoughts:
        lines.append(f"💭 {entry.thoughts}")
    for number, step in enumerate(entry.plan, start=1):
        lines.append(f"  {number}. {step}")
    if entry.interim_message:
        lines.append(f"💬 {entry.interim_message}")
    for call in entry.tool_calls:
        icon = STATUS_ICONS[call.status]
        if call.status is ToolCallStatus.ERROR:
            detail = call.error
        else:
            detail = stringify_result(call.result)
        lines.append(f"{icon} {call.tool}({call.args}) -> {detail}")
    return "\n".join(lines)


def format_outcome(outcome: RunOutcome) -> str:
    if outcome.status is RunStatus.COMPLETED:
        return outcome.message or ""
    if outcome.status is RunStatus.CANCELLED:
        return f"Run cancelled: {outcome.error}"
    return f"Run failed: {outcome.error}"


async def _print_iterations(handle: RunHandle) -> None:
    async for entry in handle.completed_iterations():
        print(format_iteration(entry), flush=True)


async def run_task(args: argparse.Namespace) -> int:
    config = SessionConfig(
        persona=args.persona,
        tools_format=args.tools_format,
        execution=ExecutionConfig.from_settings().model_copy(
            update={"max_iterations": args.max_iterations}
        ),
    )
    gateway = OpenAIGateway(model=args.model)

    async with await AgentSession.create(config, default_registry(), gateway) as session:
        handle = session.run(args.task)

        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, handle.cancel, "Interrupted by user")
        except (NotImplementedError, RuntimeError):
            # Not supported on this platform; Ctrl+C falls back to KeyboardInterrupt
            pass

        printer = asyncio.create_task(_print_iterations(handle))
        outcome = await handle.outcome()
        await printer

        print()
        print(format_outcome(outcome))

        if args.transcript is not None:
            args.transcript.write_text(dumps_transcript(outcome.history), encoding="utf-8")
            print(f"Transcript written to {args.transcript}")

    if outcome.status is RunStatus.FAILED:
        return 1
    if outcome.status is RunStatus.CANCELLED:
        return 130
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.max_iterations < 1:
        parser.error("--max-iterations must be at least 1")

    configure_logging(level=args.log_level, force=args.log_level is not None)

    try:
        return asyncio.run(run_task(args))
    except MissingCredentialsError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        print("\nInterrupted.")
        return 130


if __name__ == "__main__":
    sys.exit(main())
