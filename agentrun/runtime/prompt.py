"""System prompt builder for agent sessions."""

from datetime import datetime
from typing import Any

from agentrun.config.schema import ToolsFormat
from agentrun.tools.manifest import render_manifest

SYSTEM_PROMPT_BASE = """# MISSION
Give a direct, complete and accurate answer to the user's request. Use the available tools to gather what you need, then write the answer yourself from what you gathered.

# AVAILABLE TOOLS
{tools_description}

# LOOP
Repeat until you can answer:
1. Analyze the request and every tool result so far.
2. Plan the remaining steps. Keep the plan short.
3. If you need a tool, list it in "tool_calls". Otherwise leave "tool_calls" empty.
4. While calling tools, "message" may tell the user what you are doing. When "tool_calls" is empty, "message" MUST hold the complete final answer.

# RULES
- Always reply with a single JSON object with the fields "thoughts", "plan", "tool_calls" and "message".
- Tool results come back as messages starting with TOOL_RESULT. A result starting with ERROR means the call failed; retry, use another tool or explain the failure.
- Be concise."""

DATETIME_SECTION = "- Current date and time: {now}"

PERSONA_SECTION = """

# ADDITIONAL INSTRUCTIONS
{persona}"""


def build_system_prompt(
    manifest: list[dict[str, Any]],
    tools_format: ToolsFormat = "snippet",
    persona: str | None = None,
    now: datetime | None = None,
    include_datetime: bool = True,
) -> str:
    """Build the system prompt from the tool manifest and optional persona.

    Args:
        manifest: Output of ToolRegistry.describe().
        tools_format: How tools are rendered, see render_manifest.
        persona: Extra instructions appended as their own section.
        now: Timestamp to show, defaults to the local current time.
        include_datetime: Whether to mention the current date and time.

    Returns:
        Complete system prompt string.
    """
    prompt = SYSTEM_PROMPT_BASE.format(
        tools_description=render_manifest(manifest, tools_format)
    )

    if include_datetime:
        stamp = (now or datetime.now().astimezone()).strftime("%A, %Y-%m-%d %H:%M %Z").strip()
        prompt += "\n" + DATETIME_SECTION.format(now=stamp)

    if persona and persona.strip():
        prompt += PERSONA_SECTION.format(persona=persona.strip())

    return prompt


__all__ = ["build_system_prompt"]
