"""
Model gateways: the single call contract between the engine and an LLM.
"""

from .base import ModelGateway, PartialCallback
from .openai import OpenAIGateway
from .parsing import (
    RESPONSE_SCHEMA,
    ResponseAccumulator,
    coerce_structured_response,
    parse_partial_json,
    parse_partial_response,
    parse_structured_response,
)
from .scripted import ScriptedGateway

__all__ = [
    "ModelGateway",
    "OpenAIGateway",
    "ScriptedGateway",
    "PartialCallback",
    "RESPONSE_SCHEMA",
    "ResponseAccumulator",
    "coerce_structured_response",
    "parse_partial_json",
    "parse_partial_response",
    "parse_structured_response",
]
