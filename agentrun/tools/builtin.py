"""
Built-in demo tools.
"""

import ast
import math
import operator
from datetime import datetime
from typing import Annotated
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field

from agentrun.tools.decorator import tool
from agentrun.tools.registry import ToolRegistry

_BINARY_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}
_UNARY_OPS = {ast.UAdd: operator.pos, ast.USub: operator.neg}

# Upper bound on the size of any intermediate product or power, so inputs
# like `9**9**9` or `((10**1000)**1000)**1000` fail fast instead of hanging
# the worker thread
MAX_RESULT_DIGITS = 1000


def _digits(value: int | float) -> float:
    magnitude = abs(value)
    return math.log10(magnitude) if magnitude > 1 else 0.0


def _check_size(op: ast.operator, left: int | float, right: int | float) -> None:
    if isinstance(op, ast.Pow):
        estimate = right * _digits(left) if right > 0 else 0.0
    elif isinstance(op, ast.Mult):
        estimate = _digits(left) + _digits(right)
    else:
        return
    if estimate > MAX_RESULT_DIGITS:
        raise ValueError(f"Result too large: about {int(estimate)} digits")


def _evaluate(node: ast.AST) -> int | float:
    if isinstance(node, ast.Expression):
        return _evaluate(node.body)
    if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)) and not isinstance(
        node.value, bool
    ):
        return node.value
    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPS:
        left, right = _evaluate(node.left), _evaluate(node.right)
        _check_size(node.op, left, right)
        return _BINARY_OPS[type(node.op)](left, right)
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPS:
        return _UNARY_OPS[type(node.op)](_evaluate(node.operand))
    raise ValueError(f"Unsupported expression element: {type(node).__name__}")


@tool(examples=[{"expr": "2+2"}, {"expr": "(3.5 * 4) / 7"}])
def calculator(
    expr: Annotated[str, Field(description="Arithmetic expression, e.g. (2+3)*4")],
) -> int | float:
    """Evaluate an arithmetic expression with + - * / // % and ** operators."""
    try:
        tree = ast.parse(expr.strip(), mode="eval")
    except SyntaxError as e:
        raise ValueError(f"Invalid expression: {expr!r}") from e
    result = _evaluate(tree)
    if isinstance(result, float) and result.is_integer():
        return int(result)
    return result


@tool(examples=[{}, {"timezone": "Europe/Paris"}])
def current_time(
    timezone: Annotated[
        str | None, Field(description="IANA timezone name; local time when omitted")
    ] = None,
) -> str:
    """Get the current date and time."""
    if timezone:
        try:
            now = datetime.now(ZoneInfo(timezone))
        except ZoneInfoNotFoundError as e:
            raise ValueError(f"Unknown timezone: {timezone}") from e
    else:
        now = datetime.now().astimezone()
    return now.isoformat(timespec="seconds")


BUILTIN_TOOLS = (calculator, current_time)


def default_registry() -> ToolRegistry:
    """A registry holding the built-in tools."""
    return ToolRegistry(list(BUILTIN_TOOLS))


__all__ = ["BUILTIN_TOOLS", "calculator", "current_time", "default_registry"]
