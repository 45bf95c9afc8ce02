"""
Tools: descriptors, registry, manifest rendering and concurrent dispatch.
"""

from .base import EmptyArgs, ToolDescriptor, ToolHandler
from .builtin import BUILTIN_TOOLS, calculator, current_time, default_registry
from .decorator import tool
from .executor import ToolExecutor
from .manifest import NO_TOOLS, render_manifest
from .registry import ToolRegistry

__all__ = [
    "EmptyArgs",
    "ToolDescriptor",
    "ToolHandler",
    "tool",
    "ToolRegistry",
    "ToolExecutor",
    "render_manifest",
    "NO_TOOLS",
    "BUILTIN_TOOLS",
    "calculator",
    "current_time",
    "default_registry",
]
