"""Tests for the agent loop, with stubbed transport and tool executor."""

import asyncio
import threading
from typing import (
    Iterator,
    List,
    Sequence,
    Tuple,
)

import httpx

from lokai.agent.chat_transport import (
    ChatTransport,
    ChatTransportError,
)
from lokai.agent.orchestrator import (
    LOOP_LIMIT_TEXT,
    AgentOrchestrator,
)
from lokai.agent.prompts import PLAIN_SYSTEM_PROMPT
from lokai.agent.protocols import (
    ChatBackend,
    ToolExecutor,
)
from lokai.core.schema import Message

TOOL_REPLY = '<tool_call>\n{"name": "search", "args": {"q": "x"}}\n</tool_call>'


class ScriptedBackend:
    """Returns canned replies in order and records every request."""

    def __init__(self, replies: Sequence[str], models: Sequence[str] = ()) -> None:
        self.replies = list(replies)
        self.models = list(models)
        self.calls: List[Tuple[str, List[Message]]] = []

    async def send_chat(self, model: str, messages: Sequence[Message]) -> str:
        self.calls.append((model, list(messages)))
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def list_models(self) -> List[str]:
        return sorted(self.models)


class RecordingExecutor:
    """Echoes the call back as its result."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, str]] = []

    async def execute(self, name: str, args_json: str) -> str:
        self.calls.append((name, args_json))
        return f"result of {name} {args_json}"


def _clock(step_ns: int = 5_000_000) -> Iterator[int]:
    tick = 0
    while True:
        yield tick
        tick += step_ns


def _agent(backend: ScriptedBackend, executor: RecordingExecutor, **kwargs) -> AgentOrchestrator:
    ticks = _clock()
    return AgentOrchestrator(backend, executor, model="tiny:1b", clock=lambda: next(ticks), **kwargs)


def test_stubs_satisfy_protocols() -> None:
    """The test stubs and the built-in transport match the collaborator protocols."""

    assert isinstance(ScriptedBackend(["x"]), ChatBackend)
    assert isinstance(ChatTransport(), ChatBackend)
    assert isinstance(RecordingExecutor(), ToolExecutor)


def test_plain_mode_returns_first_reply_verbatim() -> None:
    """Without agent mode, tool markers are not interpreted."""

    backend = ScriptedBackend([TOOL_REPLY])
    executor = RecordingExecutor()
    history = [Message(role="user", content="earlier"), Message(role="assistant", content="reply")]

    response = asyncio.run(_agent(backend, executor).chat("hello", history, agent_mode=False))

    assert response.text == TOOL_REPLY
    assert response.steps == []
    assert executor.calls == []
    model, sent = backend.calls[0]
    assert model == "tiny:1b"
    assert [m.role for m in sent] == ["system", "user", "assistant", "user"]
    assert sent[0].content == PLAIN_SYSTEM_PROMPT
    assert sent[-1].content == "hello"


def test_tool_call_then_final_answer() -> None:
    """A tool call is executed, fed back, and the next reply is final."""

    backend = ScriptedBackend([TOOL_REPLY, "The answer is x."])
    executor = RecordingExecutor()

    response = asyncio.run(_agent(backend, executor).chat("find x"))

    assert response.text == "The answer is x."
    assert executor.calls == [("search", '{"q":"x"}')]
    assert len(response.steps) == 1
    step = response.steps[0]
    assert (step.tool, step.args, step.duration_ms) == ("search", '{"q":"x"}', 5)
    assert step.result == 'result of search {"q":"x"}'

    _, second = backend.calls[1]
    assert [m.role for m in second] == ["system", "user", "assistant", "user"]
    assert second[2].content == TOOL_REPLY
    assert second[3].content == '<tool_result>\nresult of search {"q":"x"}\n</tool_result>'
    assert "<tool_call>" in second[0].content

    assert response.context is not None
    assert response.context.is_estimated is True
    assert response.context.total_tokens > 0


def test_invalid_tool_call_is_final_answer() -> None:
    """Malformed tool calls fail open into a plain answer."""

    reply = "<tool_call>{not json}</tool_call>"
    backend = ScriptedBackend([reply])

    response = asyncio.run(_agent(backend, RecordingExecutor()).chat("hi"))

    assert response.text == reply
    assert response.steps == []


def test_undecodable_tool_call_is_final_answer() -> None:
    """Payloads the JSON decoder chokes on end the loop instead of raising."""

    reply = '<tool_call>{"name":"search","args":{"n":' + "9" * 5000 + "}}</tool_call>"
    executor = RecordingExecutor()

    response = asyncio.run(_agent(ScriptedBackend([reply]), executor).chat("hi"))

    assert response.text == reply
    assert executor.calls == []


def test_loop_limit_returns_sentinel() -> None:
    """An endless stream of tool calls stops after max_loops executions."""

    backend = ScriptedBackend([TOOL_REPLY])
    executor = RecordingExecutor()

    response = asyncio.run(_agent(backend, executor, max_loops=3).chat("loop"))

    assert response.text == LOOP_LIMIT_TEXT
    assert len(response.steps) == 3
    assert len(executor.calls) == 3
    assert len(backend.calls) == 3


def test_transport_failure_aborts_invocation() -> None:
    """A transport error propagates; no partial response is produced."""

    backend = ScriptedBackend([TOOL_REPLY, ChatTransportError("boom", status_code=500), "unused"])
    executor = RecordingExecutor()

    try:
        asyncio.run(_agent(backend, executor).chat("hi"))
    except ChatTransportError as exc:
        assert exc.status_code == 500
    else:  # pragma: no cover
        raise AssertionError("ChatTransportError was not raised")
    assert len(executor.calls) == 1


def test_cancellation_stops_the_loop() -> None:
    """Cancelling mid tool-execution abandons the call and runs no further iterations."""

    backend = ScriptedBackend([TOOL_REPLY, "final"])

    class BlockingExecutor:
        def __init__(self) -> None:
            self.started = asyncio.Event()

        async def execute(self, name: str, args_json: str) -> str:
            self.started.set()
            await asyncio.Event().wait()
            return "never"

    async def scenario() -> bool:
        executor = BlockingExecutor()
        agent = AgentOrchestrator(backend, executor, model="tiny:1b")
        task = asyncio.create_task(agent.chat("hi"))
        await executor.started.wait()
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            return True
        return False

    assert asyncio.run(scenario()) is True
    assert len(backend.calls) == 1


def test_set_model_applies_to_next_chat() -> None:
    """The selected model is used by subsequent calls."""

    backend = ScriptedBackend(["ok"])
    agent = _agent(backend, RecordingExecutor())

    agent.set_model("big:70b")
    asyncio.run(agent.chat("hi"))

    assert agent.model == "big:70b"
    assert backend.calls[0][0] == "big:70b"


def test_set_model_stores_name_unchanged() -> None:
    """Non-blank names are stored exactly as given."""

    agent = _agent(ScriptedBackend(["ok"]), RecordingExecutor())

    agent.set_model(" spaced:7b ")

    assert agent.model == " spaced:7b "


def test_set_model_rejects_empty_names() -> None:
    """Blank model names are refused and the old model is kept."""

    agent = _agent(ScriptedBackend(["ok"]), RecordingExecutor())

    try:
        agent.set_model("   ")
    except ValueError:
        pass
    else:  # pragma: no cover
        raise AssertionError("ValueError was not raised")
    assert agent.model == "tiny:1b"


def test_concurrent_model_switches_never_tear() -> None:
    """Readers only ever observe one of the written values."""

    agent = _agent(ScriptedBackend(["ok"]), RecordingExecutor())
    names = {"tiny:1b", "model-a", "model-b"}
    seen = set()

    def writer(name: str) -> None:
        for _ in range(500):
            agent.set_model(name)

    def reader() -> None:
        for _ in range(1000):
            seen.add(agent.model)

    threads = [threading.Thread(target=writer, args=(n,)) for n in ("model-a", "model-b")]
    threads.append(threading.Thread(target=reader))
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert seen <= names


def test_available_models_sorted() -> None:
    """Model names from the endpoint come back sorted."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"models": [{"name": "b"}, {"name": "a"}]})

    transport = ChatTransport(base_url="http://ollama.test", transport=httpx.MockTransport(handler))
    agent = AgentOrchestrator(transport, RecordingExecutor())

    assert asyncio.run(agent.available_models()) == ["a", "b"]


def test_available_models_fails_soft() -> None:
    """Errors from a misbehaving backend never escape."""

    class BrokenBackend(ScriptedBackend):
        async def list_models(self) -> List[str]:
            raise RuntimeError("down")

    agent = _agent(BrokenBackend(["ok"]), RecordingExecutor())

    assert asyncio.run(agent.available_models()) == []


def test_max_loops_must_be_positive() -> None:
    """A loop cap below one is a configuration error."""

    try:
        AgentOrchestrator(ScriptedBackend(["ok"]), RecordingExecutor(), max_loops=0)
    except ValueError:
        pass
    else:  # pragma: no cover
        raise AssertionError("ValueError was not raised")
