"""Pluggable collaborators of the agent orchestrator.

Any object with matching methods works; the built-in implementations are
:class:`lokai.agent.chat_transport.ChatTransport` and
:class:`lokai.agent.tool_executor.RegistryToolExecutor`.
"""

from __future__ import annotations

from typing import (
    List,
    Protocol,
    Sequence,
    runtime_checkable,
)

from lokai.core.schema import Message


@runtime_checkable
class ChatBackend(Protocol):
    """Request/response access to an inference endpoint."""

    async def send_chat(self, model: str, messages: Sequence[Message]) -> str:
        """Send the full message list, return the reply text.

        Raises ``ChatTransportError`` on any failure.
        """
        ...

    async def list_models(self) -> List[str]:
        """Return the available model names, sorted; ``[]`` on failure."""
        ...


@runtime_checkable
class ToolExecutor(Protocol):
    """Runs a named tool and renders its outcome as text."""

    async def execute(self, name: str, args_json: str) -> str:
        """Run *name* with JSON-encoded arguments; failures are returned as text."""
        ...
