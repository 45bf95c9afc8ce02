"""
Render the tool manifest for the system prompt.

Formats:
- snippet: one signature line per tool, with the first example
- detailed_snippet: signature, schema with field descriptions, all examples
- text: markdown sections, one per tool
- json: the raw manifest as indented JSON
"""

import json
from typing import Any

NO_TOOLS = "No tools available."


def _type_label(prop: dict[str, Any], enum_style: str = "union") -> str:
    if "enum" in prop:
        values = prop["enum"]
        if enum_style == "bracket":
            return "enum [" + ", ".join(json.dumps(v) for v in values) + "]"
        if enum_style == "call":
            return "enum(" + "|".join(str(v) for v in values) + ")"
        return "|".join(json.dumps(v) for v in values)

    if "anyOf" in prop:
        labels = [
            _type_label(option, enum_style)
            for option in prop["anyOf"]
            if option.get("type") != "null"
        ]
        return labels[0] if len(labels) == 1 else "|".join(labels) or "any"

    kind = prop.get("type")
    if kind == "array":
        item = _type_label(prop.get("items", {}), enum_style)
        return f"{item}[]" if item != "any" else "array"
    if kind == "integer":
        return "number"
    return kind or "any"


def _properties(entry: dict[str, Any]) -> dict[str, Any]:
    return entry.get("parameters", {}).get("properties", {})


def format_snippets(manifest: list[dict[str, Any]]) -> str:
    lines = []
    for entry in manifest:
        params = ", ".join(
            f"{name}: {_type_label(prop)}" for name, prop in _properties(entry).items()
        )
        examples = entry.get("examples") or []
        example = f" e.g., {json.dumps(examples[0])}" if examples else ""
        lines.append(f"{entry['name']}({params}) // {entry['description']}{example}")
    return "\n".join(lines)


def format_detailed_snippets(manifest: list[dict[str, Any]]) -> str:
    lines = []
    for entry in manifest:
        props = _properties(entry)
        params = []
        schema_parts = []
        for name, prop in props.items():
            desc = prop.get("description")
            params.append(f"{name}: {_type_label(prop)}" + (f" - {desc}" if desc else ""))
            schema_parts.append(
                f"{name}={_type_label(prop, enum_style='call')}" + (f": {desc}" if desc else "")
            )

        line = f"{entry['name']}({', '.join(params)}) // {entry['description']}"
        if schema_parts:
            line += f" schema[{', '.join(schema_parts)}]"
        examples = entry.get("examples") or []
        if examples:
            line += " examples: " + "; ".join(json.dumps(e) for e in examples)
        lines.append(line)
    return "\n".join(lines)


def format_plain_text(manifest: list[dict[str, Any]]) -> str:
    lines = ["## Available Tools"]
    for entry in manifest:
        lines.append(f"### {entry['name']}")
        lines.append(f"- Name: {entry['name']}")
        lines.append(f"- Description: {entry['description']}")

        props = _properties(entry)
        if props:
            lines.append("- Input Schema:")
            for name, prop in props.items():
                desc = prop.get("description")
                suffix = f" ({desc})" if desc else ""
                lines.append(f"  - {name}: {_type_label(prop, enum_style='bracket')}{suffix}")

        examples = entry.get("examples") or []
        if examples:
            lines.append("- Examples:")
            for example in examples:
                lines.append(f"  - {json.dumps(example)}")
        lines.append("")
    return "\n".join(lines).strip()


def format_json(manifest: list[dict[str, Any]]) -> str:
    return json.dumps(manifest, indent=2, ensure_ascii=False)


_FORMATTERS = {
    "snippet": format_snippets,
    "detailed_snippet": format_detailed_snippets,
    "text": format_plain_text,
    "json": format_json,
}


def render_manifest(manifest: list[dict[str, Any]], fmt: str = "snippet") -> str:
    """Render a manifest (as returned by ToolRegistry.describe) in the given format."""
    if not manifest:
        return NO_TOOLS
    try:
        formatter = _FORMATTERS[fmt]
    except KeyError:
        raise ValueError(
            f"Unknown tools format: {fmt}. Expected one of {sorted(_FORMATTERS)}"
        ) from None
    return formatter(manifest)


__all__ = [
    "NO_TOOLS",
    "format_detailed_snippets",
    "format_json",
    "format_plain_text",
    "format_snippets",
    "render_manifest",
]
