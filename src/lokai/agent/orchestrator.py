"""Main orchestration loop for Lokai."""

from __future__ import annotations

import logging
import threading
import time
from typing import (
    Callable,
    List,
    Sequence,
)

from lokai.agent.chat_transport import ChatTransport
from lokai.agent.prompts import (
    PLAIN_SYSTEM_PROMPT,
    build_tool_system_prompt,
)
from lokai.agent.protocols import (
    ChatBackend,
    ToolExecutor,
)
from lokai.agent.tool_executor import RegistryToolExecutor
from lokai.config import settings
from lokai.core.schema import (
    AgentResponse,
    AgentStep,
    Message,
)
from lokai.core.tokens import (
    ContextInfo,
    ContextSize,
)
from lokai.tools import get_tool_schemas
from lokai.tools.tool_call_parser import (
    format_tool_result,
    parse_tool_call,
)

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "qwen2.5:1.5b"
DEFAULT_MAX_LOOPS = 8
LOOP_LIMIT_TEXT = "(Agent loop limit reached)"


class AgentOrchestrator:
    """
    Drives one conversation exchange with the model, executing tool calls until a final answer.

    The only state shared between invocations is the active model name.  Everything else (the
    message list and the step trace) is local to a single :meth:`chat` call, so concurrent
    calls need no further synchronisation.
    """

    def __init__(
        self,
        transport: ChatBackend,
        executor: ToolExecutor,
        *,
        model: str = DEFAULT_MODEL,
        max_loops: int = DEFAULT_MAX_LOOPS,
        context_window: int = ContextSize.SMALL,
        clock: Callable[[], int] = time.monotonic_ns,
        tool_prompt: str | None = None,
        plain_prompt: str = PLAIN_SYSTEM_PROMPT,
    ) -> None:
        if max_loops < 1:
            raise ValueError("max_loops must be at least 1")
        self.transport = transport
        self.executor = executor
        self.max_loops = max_loops
        self.context_window = int(context_window)
        self._clock = clock  # nanoseconds, monotonic
        self._tool_prompt = tool_prompt
        self._plain_prompt = plain_prompt
        self._model = model
        self._model_lock = threading.Lock()

    @classmethod
    def from_settings(cls) -> "AgentOrchestrator":
        """Build an orchestrator wired to the configured endpoint and the tool registry."""
        transport = ChatTransport(
            base_url=settings.OLLAMA_BASE_URL,
            timeout=settings.REQUEST_TIMEOUT,
            temperature=settings.TEMPERATURE,
        )
        return cls(
            transport,
            RegistryToolExecutor(max_output=settings.TOOL_MAX_OUTPUT),
            model=settings.DEFAULT_MODEL,
            max_loops=settings.MAX_AGENT_LOOPS,
            context_window=settings.CONTEXT_WINDOW,
        )

    # ------------------------------------------------------------------ #
    # Model selection
    # ------------------------------------------------------------------ #
    @property
    def model(self) -> str:
        """The model used by subsequent :meth:`chat` calls."""
        with self._model_lock:
            return self._model

    def set_model(self, name: str) -> None:
        """Replace the active model with *name*, stored as given."""
        if not name or not name.strip():
            raise ValueError("Model name must not be empty.")
        with self._model_lock:
            previous, self._model = self._model, name
        logger.info("Active model changed: %s -> %s", previous, name)

    async def available_models(self) -> List[str]:
        """Return the models offered by the endpoint, or ``[]`` if they cannot be listed."""
        try:
            return await self.transport.list_models()
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Model listing failed: %s", exc)
            return []

    # ------------------------------------------------------------------ #
    # Agent loop
    # ------------------------------------------------------------------ #
    def system_prompt(self, agent_mode: bool) -> str:
        """Return the system prompt for the given mode."""
        if not agent_mode:
            return self._plain_prompt
        if self._tool_prompt is None:
            return build_tool_system_prompt(get_tool_schemas())
        return self._tool_prompt

    def _elapsed_ms(self, started: int) -> int:
        return max(0, (self._clock() - started) // 1_000_000)

    async def chat(
        self, message: str, history: Sequence[Message] = (), agent_mode: bool = True
    ) -> AgentResponse:
        """
        Run the agent loop for one user *message*.

        Parameters
        ----------
        message:
            The new user turn.
        history:
            Earlier turns, oldest first.  They are copied, never modified.
        agent_mode:
            If *True*, tool calls in replies are executed and fed back; otherwise the first
            reply is returned as-is.

        Raises
        ------
        ChatTransportError
            If any call to the endpoint fails.  Steps recorded so far are discarded.
        """
        model = self.model
        messages: List[Message] = [Message(role="system", content=self.system_prompt(agent_mode))]
        messages.extend(history)
        messages.append(Message(role="user", content=message))

        steps: List[AgentStep] = []

        for iteration in range(1, self.max_loops + 1):
            logger.debug(
                "Loop %d/%d: sending %d messages to '%s'",
                iteration,
                self.max_loops,
                len(messages),
                model,
            )
            reply = await self.transport.send_chat(model, messages)

            call = parse_tool_call(reply) if agent_mode else None
            if call is None:
                context = ContextInfo.estimate(messages, reply, self.context_window)
                logger.debug("Context usage (estimated): %s", context.to_json())
                return AgentResponse(text=reply, steps=steps, context=context)

            messages.append(Message(role="assistant", content=reply))

            started = self._clock()
            result = await self.executor.execute(call.name, call.args_json)
            duration_ms = self._elapsed_ms(started)
            logger.info("Tool '%s' finished in %d ms", call.name, duration_ms)

            steps.append(
                AgentStep(
                    tool=call.name, args=call.args_json, result=result, duration_ms=duration_ms
                )
            )
            messages.append(Message(role="user", content=format_tool_result(result)))

        logger.warning("Agent loop limit (%d) reached", self.max_loops)
        context = ContextInfo.estimate(messages, "", self.context_window)
        return AgentResponse(text=LOOP_LIMIT_TEXT, steps=steps, context=context)
