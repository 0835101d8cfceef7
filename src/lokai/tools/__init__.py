"""
Tools the agent loop can call.

A model asks for a tool with ``<tool_call>{"name": ..., "args": {...}}</tool_call>``.  The
registry maps that ``name`` to a Python function, and the decoded ``args`` object becomes its
keyword arguments.  Tools may be plain or ``async`` functions; whatever they return is rendered
as text by :class:`lokai.agent.tool_executor.RegistryToolExecutor` and fed back to the model.
The signatures and docstrings registered here are also what the agent-mode system prompt shows
the model (see :func:`get_tool_schemas`).
"""

import inspect
import logging
from datetime import (
    datetime,
    timezone,
)
from typing import (
    Callable,
    Dict,
    Mapping,
    TypedDict,
    get_type_hints,
)

logger = logging.getLogger(__name__)

TOOL_REGISTRY: Dict[str, Callable] = {}
"""Tool name (as written by the model) -> tool function."""


def register_tool(name: str) -> Callable:
    """
    Expose a function to the model under *name*.

        @register_tool("echo")
        def echo_tool(text: str) -> str:
            return text

    The model then calls it with ``{"name": "echo", "args": {"text": "hi"}}``.  Parameter
    annotations and the docstring end up in the tool list of the system
    prompt, so keep them short and descriptive.

    Raises
    ------
    ValueError
        If another tool already uses *name*.
    """
    if name in TOOL_REGISTRY:
        raise ValueError(f"Tool '{name}' is already registered.")
    logger.debug("Registering tool '%s'", name)

    def wrapper(fn: Callable) -> Callable:
        TOOL_REGISTRY[name] = fn
        return fn

    return wrapper


class ParameterInfo(TypedDict):
    """One keyword argument of a tool, as listed in the system prompt."""

    type: str
    required: bool


class ToolSchema(TypedDict):
    """What the system prompt tells the model about one tool."""

    description: str
    parameters: Mapping[str, ParameterInfo]


def get_tool_schemas() -> Mapping[str, ToolSchema]:
    """Describe every registered tool for the agent-mode system prompt."""
    tool_schemas: Dict[str, ToolSchema] = {}
    for name, func in TOOL_REGISTRY.items():
        sig = inspect.signature(func)
        type_hints = get_type_hints(func)
        params = {}
        for param_name, param in sig.parameters.items():
            param_type = type_hints.get(param_name, "any")
            param_type_name = getattr(param_type, "__name__", str(param_type))
            params[param_name] = ParameterInfo(
                type=param_type_name, required=param.default == inspect.Parameter.empty
            )
        tool_schemas[name] = {"description": inspect.getdoc(func) or "", "parameters": params}
    return tool_schemas


# ---------------------------------------------------------------------------
# Built-in tools
# ---------------------------------------------------------------------------
@register_tool("echo")
def echo_tool(text: str) -> str:
    """Echo the input text back to the caller."""
    return text


@register_tool("current_time")
def current_time_tool(utc: bool = False) -> str:
    """Return the current date and time in ISO 8601 format (local time unless utc is true)."""
    now = datetime.now(timezone.utc) if utc else datetime.now().astimezone()
    return now.isoformat(timespec="seconds")
