import json
from pathlib import Path

import pytest

from agentrun import cli
from agentrun.config import settings
from agentrun.domain import IterationLogEntry, RunOutcome, RunStatus, TerminationReason, ToolCall
from agentrun.llm import ScriptedGateway


def test_parser_defaults():
    args = cli.build_parser().parse_args(["What's 2+2?"])

    assert args.task == "What's 2+2?"
    assert args.max_iterations == settings.default_max_iterations
    assert args.model == settings.default_model
    assert args.tools_format == "snippet"
    assert args.persona is None
    assert args.transcript is None


def test_parser_options():
    args = cli.build_parser().parse_args(
        [
            "task",
            "--max-iterations",
            "3",
            "--model",
            "gpt-test",
            "--persona",
            "Be brief",
            "--tools-format",
            "text",
            "--transcript",
            "out.json",
        ]
    )

    assert args.max_iterations == 3
    assert args.model == "gpt-test"
    assert args.persona == "Be brief"
    assert args.tools_format == "text"
    assert args.transcript == Path("out.json")


def test_parser_rejects_unknown_tools_format():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["task", "--tools-format", "yaml"])


def test_main_rejects_non_positive_max_iterations():
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["task", "--max-iterations", "0"])
    assert exc_info.value.code == 2


def test_format_iteration():
    call = ToolCall(tool="calculator", args={"expr": "2+2"})
    call.mark_running()
    call.mark_success(4)
    entry = IterationLogEntry(
        iteration=1, thoughts="Add them", plan=["compute"], tool_calls=[call], interim_message="On it"
    )

    text = cli.format_iteration(entry)

    assert text.splitlines()[0] == "── Iteration 1 ──"
    assert "💭 Add them" in text
    assert "  1. compute" in text
    assert "💬 On it" in text
    assert "✅ calculator({'expr': '2+2'}) -> 4" in text


@pytest.mark.parametrize(
    "status, expected",
    [
        (RunStatus.COMPLETED, "done"),
        (RunStatus.CANCELLED, "Run cancelled: stop"),
        (RunStatus.FAILED, "Run failed: stop"),
    ],
)
def test_format_outcome(status, expected):
    outcome = RunOutcome(
        run_id="r",
        status=status,
        termination_reason=TerminationReason.FINAL_ANSWER,
        message="done" if status is RunStatus.COMPLETED else None,
        error=None if status is RunStatus.COMPLETED else "stop",
    )
    assert cli.format_outcome(outcome) == expected


def test_main_runs_task_and_writes_transcript(monkeypatch, tmp_path, capsys):
    script = [
        {"tool_calls": [{"tool": "calculator", "args": {"expr": "2+2"}}], "message": "Calculating"},
        {"message": "2+2 is 4. Hi!"},
    ]
    monkeypatch.setattr(cli, "OpenAIGateway", lambda model: ScriptedGateway(script))
    transcript = tmp_path / "run.json"

    code = cli.main(["What's 2+2, then say hi", "--transcript", str(transcript)])

    assert code == 0
    out = capsys.readouterr().out
    assert "── Iteration 1 ──" in out
    assert "── Iteration 2 ──" in out
    assert "2+2 is 4. Hi!" in out
    exported = json.loads(transcript.read_text(encoding="utf-8"))
    assert [entry["iteration"] for entry in exported] == [1, 2]
    assert exported[0]["tool_calls"][0]["result"] == 4


def test_main_reports_failure(monkeypatch, capsys):
    monkeypatch.setattr(cli, "OpenAIGateway", lambda model: ScriptedGateway([]))

    code = cli.main(["task"])

    assert code == 1
    assert "Run failed" in capsys.readouterr().out
