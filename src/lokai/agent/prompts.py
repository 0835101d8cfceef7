"""System prompts for plain chat and tool-enabled (agent) chat."""

from typing import Mapping

from lokai.tools import ToolSchema
from lokai.tools.tool_call_parser import (
    TOOL_CALL_END,
    TOOL_CALL_START,
    TOOL_RESULT_END,
    TOOL_RESULT_START,
)

PLAIN_SYSTEM_PROMPT = "You are Lokai, a helpful AI assistant running locally."

_TOOL_PROMPT_HEADER = f"""\
You are Lokai, an AI assistant running locally that can THINK and ACT.

## Tools
Use a tool by writing a tool call block. One tool per block. Wait for the result before
proceeding.

{TOOL_CALL_START}
{{"name": "TOOL_NAME", "args": {{JSON_ARGS}}}}
{TOOL_CALL_END}

The result comes back in a {TOOL_RESULT_START} ... {TOOL_RESULT_END} message.
"""

_TOOL_PROMPT_RULES = """\
## Rules
- Use tools when the user asks for something a tool can do
- Chain tool calls if needed (one at a time, wait for each result)
- After getting tool results, answer concisely without a tool call block
"""


def build_tool_system_prompt(tool_schemas: Mapping[str, ToolSchema]) -> str:
    """Build the agent-mode system prompt listing *tool_schemas*."""
    prompt = _TOOL_PROMPT_HEADER

    if tool_schemas:
        tools_info = []
        for tool_name, schema in tool_schemas.items():
            param_desc = ", ".join(
                f"{p}: {info['type']}" + ("" if info["required"] else "?")
                for p, info in schema["parameters"].items()
            )
            tools_info.append(f"- {tool_name}({param_desc}): {schema['description']}")
        prompt += "\n### Available Tools\n" + "\n".join(tools_info) + "\n"

    return prompt + "\n" + _TOOL_PROMPT_RULES
