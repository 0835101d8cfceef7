"""Dispatches tool calls registered in ``lokai.tools`` and wraps errors."""

import asyncio
import inspect
import json
import logging
from typing import (
    Any,
    Dict,
)

from lokai.tools import TOOL_REGISTRY

logger = logging.getLogger(__name__)

DEFAULT_MAX_OUTPUT = 8192


class ToolExecutionError(RuntimeError):
    """Raised when a requested tool cannot run or fails."""


def execute_tool(name: str, args: Dict[str, Any] | None = None) -> Any:
    """
    Look up *name* in the registry and invoke it with *args*.

    Parameters
    ----------
    name:
        The registered tool name.
    args:
        Keyword arguments to pass verbatim to the tool function.  If *None*,
        an empty dict is assumed.

    Returns
    -------
    Any
        Whatever the tool function returns (a coroutine for ``async`` tools).

    Raises
    ------
    ToolExecutionError
        If the tool is missing or its invocation raises an exception.
    """

    if args is None:
        args = {}

    tool_fn = TOOL_REGISTRY.get(name)
    if tool_fn is None:
        raise ToolExecutionError(f"Tool '{name}' is not registered.")

    try:
        logger.debug("Executing tool '%s' with args=%s", name, args)
        return tool_fn(**args)
    except TypeError as exc:
        # Argument mismatch — give the caller a clean exception.
        logger.exception("Argument error while executing tool '%s'", name)
        raise ToolExecutionError(f"Invalid arguments for tool '{name}': {exc}") from exc
    except Exception as exc:  # noqa: BLE001
        logger.exception("Unhandled error in tool '%s'", name)
        raise ToolExecutionError(f"Tool '{name}' raised an error: {exc}") from exc


async def run_tool(name: str, args: Dict[str, Any] | None = None) -> Any:
    """Run a registered tool without blocking the event loop.

    Coroutine tools are awaited directly; plain functions run in a worker thread.
    """
    if inspect.iscoroutinefunction(TOOL_REGISTRY.get(name)):
        pending = execute_tool(name, args)
        try:
            return await pending
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unhandled error in tool '%s'", name)
            raise ToolExecutionError(f"Tool '{name}' raised an error: {exc}") from exc
    return await asyncio.to_thread(execute_tool, name, args)


class RegistryToolExecutor:
    """
    Tool executor backed by :data:`lokai.tools.TOOL_REGISTRY`.

    Every outcome is returned as text.  Failures come back as ``"Error: ..."`` so the model can
    read them and react; they never abort the agent loop.
    """

    def __init__(self, max_output: int = DEFAULT_MAX_OUTPUT) -> None:
        self.max_output = max_output

    async def execute(self, name: str, args_json: str) -> str:
        """Decode *args_json*, run the tool and render its result."""
        try:
            args = json.loads(args_json)
        except json.JSONDecodeError:
            return "Error: invalid args JSON"
        if not isinstance(args, dict):
            return "Error: invalid args JSON"

        try:
            result = await run_tool(name, args)
        except ToolExecutionError as exc:
            logger.warning("Tool failure: %s", exc)
            return f"Error: {exc}"

        text = result if isinstance(result, str) else json.dumps(result, default=str)
        if len(text) > self.max_output:
            logger.debug("Truncating output of tool '%s' (%d chars)", name, len(text))
            text = text[: self.max_output] + "\n[... output truncated]"
        return text
