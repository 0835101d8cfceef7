"""
A simple parser for tool calls embedded in model output.
It expects a block formatted like:
    <tool_call>
    {"name": "<tool>", "args": { ... }}
    </tool_call>
and returns a :class:`ToolCall` with the arguments re-serialized as compact JSON.

Parsing is fail-open: anything that does not match yields ``None`` and the caller treats the
reply as a final answer.
"""

import json
import logging
from typing import Optional

from lokai.core.schema import ToolCall

logger = logging.getLogger(__name__)

TOOL_CALL_START = "<tool_call>"
TOOL_CALL_END = "</tool_call>"
TOOL_RESULT_START = "<tool_result>"
TOOL_RESULT_END = "</tool_result>"


def _extract_payload(text: str) -> Optional[str]:
    start = text.find(TOOL_CALL_START)
    if start < 0:
        return None
    start += len(TOOL_CALL_START)
    end = text.find(TOOL_CALL_END, start)
    if end < 0:
        return None
    return text[start:end].strip()


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------
def parse_tool_call(text: str) -> Optional[ToolCall]:
    """
    Return the first tool call found in *text*, or ``None``.

    Only the first ``<tool_call>`` block is honoured; later blocks in the same reply are
    ignored.  A missing delimiter, a payload that is not a JSON object, or a missing/empty
    string ``name`` all mean "no call".
    """
    payload = _extract_payload(text)
    if payload is None:
        return None

    try:
        obj = json.loads(payload)
    except (ValueError, RecursionError) as exc:
        # JSONDecodeError, oversized integer literals and pathological nesting
        logger.debug("Ignoring tool call with invalid JSON: %s", exc)
        return None

    if not isinstance(obj, dict):
        logger.debug("Ignoring tool call payload that is not an object: %r", payload)
        return None

    name = obj.get("name")
    if not isinstance(name, str) or not name:
        logger.debug("Ignoring tool call without a string 'name': %r", payload)
        return None

    if "args" in obj:
        args_json = json.dumps(obj["args"], separators=(",", ":"), ensure_ascii=False)
    else:
        args_json = "{}"

    return ToolCall(name=name, args_json=args_json)


def format_tool_result(result: str) -> str:
    """Wrap a tool result in the envelope fed back to the model."""
    return f"{TOOL_RESULT_START}\n{result}\n{TOOL_RESULT_END}"
