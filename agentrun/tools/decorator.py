"""
Tool decorator
"""

from typing import Any, Callable, overload

from .base import ToolDescriptor, ToolHandler


@overload
def tool(func: ToolHandler) -> ToolDescriptor: ...


@overload
def tool(
    *,
    name: str | None = None,
    description: str | None = None,
    examples: list[dict[str, Any]] | None = None,
) -> Callable[[ToolHandler], ToolDescriptor]: ...


def tool(
    func: ToolHandler | None = None,
    *,
    name: str | None = None,
    description: str | None = None,
    examples: list[dict[str, Any]] | None = None,
):
    """
    Decorator to convert a function into a ToolDescriptor.

    Usable bare (`@tool`) or with options
    (`@tool(name="calc", examples=[{"expr": "1+1"}])`).
    The function docstring is used as description when none is given.
    """

    def wrap(f: ToolHandler) -> ToolDescriptor:
        return ToolDescriptor.from_function(
            f, name=name, description=description, examples=examples
        )

    if func is not None:
        return wrap(func)
    return wrap


__all__ = ["tool"]
