"""
Tool descriptors.

A ToolDescriptor binds a unique name, a description, a pydantic argument
schema, a handler and optional usage examples. Handlers are called with the
validated arguments as keyword arguments and may be sync or async.
"""

import inspect
from dataclasses import dataclass, field
from typing import Any, Callable, get_type_hints

from pydantic import BaseModel, ConfigDict, ValidationError, create_model

from agentrun.domain.errors import ArgumentValidationError

ToolHandler = Callable[..., Any]


class EmptyArgs(BaseModel):
    """Argument schema for tools that take no arguments."""

    model_config = ConfigDict(extra="forbid")


@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    description: str
    handler: ToolHandler
    args_schema: type[BaseModel] = EmptyArgs
    examples: tuple[dict[str, Any], ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("Tool name must be a non-empty string")
        if not callable(self.handler):
            raise TypeError(f"Handler for tool {self.name} is not callable")
        if not (isinstance(self.args_schema, type) and issubclass(self.args_schema, BaseModel)):
            raise TypeError(f"args_schema for tool {self.name} must be a pydantic model class")
        # Lists are accepted for convenience but stored immutably
        object.__setattr__(self, "examples", tuple(self.examples))

    @classmethod
    def from_function(
        cls,
        func: ToolHandler,
        name: str | None = None,
        description: str | None = None,
        examples: list[dict[str, Any]] | None = None,
    ) -> "ToolDescriptor":
        """Build a descriptor whose argument schema mirrors the function signature."""
        tool_name = name or func.__name__
        doc = inspect.getdoc(func) or ""
        return cls(
            name=tool_name,
            description=description or doc.strip().split("\n\n")[0],
            handler=func,
            args_schema=_create_args_schema(func, tool_name),
            examples=tuple(examples or ()),
        )

    @property
    def is_async(self) -> bool:
        return inspect.iscoroutinefunction(self.handler)

    def parameters_schema(self) -> dict[str, Any]:
        """JSON schema of the arguments, without the pydantic title."""
        schema = self.args_schema.model_json_schema()
        schema.pop("title", None)
        schema.setdefault("properties", {})
        return schema

    def validate_args(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Validate raw arguments, returning the keyword arguments for the handler."""
        try:
            validated = self.args_schema.model_validate(arguments)
        except ValidationError as e:
            details = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
                for err in e.errors()
            )
            raise ArgumentValidationError(self.name, details) from e
        # Shallow conversion keeps nested models as model instances
        return dict(validated)

    def describe(self) -> dict[str, Any]:
        """Manifest entry. Never includes the handler."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters_schema(),
            "examples": [dict(e) for e in self.examples],
        }

    def to_openai_schema(self) -> dict[str, Any]:
        """Convert to OpenAI function calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters_schema(),
            },
        }


def _create_args_schema(func: ToolHandler, tool_name: str) -> type[BaseModel]:
    """Dynamically create a Pydantic model from function signature."""
    sig = inspect.signature(func)
    type_hints = get_type_hints(func, include_extras=True)

    fields: dict[str, Any] = {}
    for param_name, param in sig.parameters.items():
        if param_name in ("self", "cls"):
            continue
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue

        annotation = type_hints.get(param_name, Any)
        if param.default is inspect.Parameter.empty:
            fields[param_name] = (annotation, ...)
        else:
            fields[param_name] = (annotation, param.default)

    model_name = "".join(part.capitalize() for part in tool_name.split("_")) + "Args"
    return create_model(model_name, __config__=ConfigDict(extra="forbid"), **fields)


__all__ = ["EmptyArgs", "ToolDescriptor", "ToolHandler"]
