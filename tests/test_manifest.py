"""
Tests for tool manifest rendering and system prompt construction.
"""

import json
from datetime import datetime
from typing import Literal

import pytest

from agentrun.runtime import build_system_prompt
from agentrun.tools import NO_TOOLS, ToolRegistry, default_registry, render_manifest, tool


@tool(examples=[{"unit": "c", "value": 21.5}])
def convert(unit: Literal["c", "f"], value: float, precision: int = 1) -> float:
    """Convert a temperature."""
    return value


@pytest.fixture
def manifest():
    return default_registry().describe()


def test_empty_manifest():
    assert render_manifest([], "snippet") == NO_TOOLS
    assert render_manifest(ToolRegistry().describe(), "text") == NO_TOOLS


def test_snippet_format(manifest):
    rendered = render_manifest(manifest, "snippet")
    lines = rendered.splitlines()
    assert len(lines) == 2
    assert lines[0].startswith("calculator(expr: string) // Evaluate an arithmetic expression")
    assert lines[0].endswith('e.g., {"expr": "2+2"}')
    assert lines[1].startswith("current_time(timezone: string) // Get the current date and time.")


def test_snippet_type_labels():
    rendered = render_manifest(ToolRegistry([convert]).describe(), "snippet")
    assert rendered.startswith('convert(unit: "c"|"f", value: number, precision: number)')


def test_detailed_snippet_format(manifest):
    rendered = render_manifest(manifest, "detailed_snippet")
    assert "expr: string - Arithmetic expression" in rendered
    assert "schema[expr=string: Arithmetic expression" in rendered
    assert 'examples: {"expr": "2+2"}; {"expr": "(3.5 * 4) / 7"}' in rendered


def test_detailed_snippet_enum_style():
    rendered = render_manifest(ToolRegistry([convert]).describe(), "detailed_snippet")
    assert "unit=enum(c|f)" in rendered


def test_text_format(manifest):
    rendered = render_manifest(manifest, "text")
    assert rendered.startswith("## Available Tools")
    assert "### calculator" in rendered
    assert "- Name: current_time" in rendered
    assert "- Input Schema:" in rendered
    assert '  - {"timezone": "Europe/Paris"}' in rendered


def test_text_format_enum_style():
    rendered = render_manifest(ToolRegistry([convert]).describe(), "text")
    assert '  - unit: enum ["c", "f"]' in rendered


def test_json_format(manifest):
    assert json.loads(render_manifest(manifest, "json")) == manifest


def test_unknown_format(manifest):
    with pytest.raises(ValueError, match="Unknown tools format"):
        render_manifest(manifest, "yaml")


class TestSystemPrompt:
    def test_contains_manifest(self, manifest):
        prompt = build_system_prompt(manifest)
        assert "# AVAILABLE TOOLS" in prompt
        assert "calculator(expr: string)" in prompt
        assert '"tool_calls"' in prompt

    def test_without_tools(self):
        assert NO_TOOLS in build_system_prompt([])

    def test_tools_format_is_forwarded(self, manifest):
        prompt = build_system_prompt(manifest, tools_format="text")
        assert "### calculator" in prompt

    def test_datetime_section(self, manifest):
        prompt = build_system_prompt(manifest, now=datetime(2024, 5, 1, 12, 30))
        assert "Current date and time: Wednesday, 2024-05-01 12:30" in prompt

        prompt = build_system_prompt(manifest, include_datetime=False)
        assert "Current date and time" not in prompt

    def test_persona_section(self, manifest):
        assert "ADDITIONAL INSTRUCTIONS" not in build_system_prompt(manifest)
        assert "ADDITIONAL INSTRUCTIONS" not in build_system_prompt(manifest, persona="   ")

        prompt = build_system_prompt(manifest, persona="  Answer like a pirate.  ")
        assert prompt.endswith("# ADDITIONAL INSTRUCTIONS\nAnswer like a pirate.")
