"""
Chat transport for a local Ollama-compatible inference endpoint.

This module is the only place that *directly* talks to the model server.  It offers two calls:

1. ``POST /api/chat``  - one non-streaming chat completion.
2. ``GET /api/tags``   - the list of installed models.

Request and response bodies are validated with Pydantic; anything that does not match the
expected shape is a :class:`ChatTransportError` (chat) or an empty list (model listing).
"""

import logging
from typing import (
    List,
    Sequence,
)

import httpx
from pydantic import ValidationError

from lokai.core.schema import (
    ChatOptions,
    ChatRequest,
    ChatResponse,
    Message,
    TagsResponse,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:11434"
DEFAULT_TIMEOUT = 120.0
DEFAULT_TEMPERATURE = 0.7

CHAT_PATH = "/api/chat"
TAGS_PATH = "/api/tags"


class ChatTransportError(RuntimeError):
    """Raised when a chat call cannot be completed."""

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ChatTransport:
    """Stateless HTTP client for the inference endpoint."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        temperature: float = DEFAULT_TEMPERATURE,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.temperature = temperature
        self._transport = transport  # injected in tests (httpx.MockTransport)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self._transport
        )

    async def send_chat(self, model: str, messages: Sequence[Message]) -> str:
        """Send *messages* to *model* and return the reply text."""
        request = ChatRequest(
            model=model,
            messages=list(messages),
            stream=False,
            options=ChatOptions(temperature=self.temperature),
        )

        try:
            async with self._client() as client:
                resp = await client.post(CHAT_PATH, json=request.model_dump())
        except httpx.HTTPError as exc:
            logger.error("Chat request to %s failed: %s", self.base_url, exc)
            raise ChatTransportError(f"Error calling inference endpoint: {exc}") from exc

        if resp.status_code != 200:
            logger.error("Chat request returned HTTP %d: %s", resp.status_code, resp.text)
            raise ChatTransportError(
                f"Inference endpoint error: {resp.text}",
                status_code=resp.status_code,
                body=resp.text,
            )

        try:
            parsed = ChatResponse.model_validate_json(resp.content)
        except ValidationError as exc:
            logger.error("Invalid chat response: %s", exc)
            raise ChatTransportError(
                "Invalid response from inference endpoint",
                status_code=resp.status_code,
                body=resp.text,
            ) from exc

        logger.debug("Chat reply (%d chars) from model '%s'", len(parsed.message.content), model)
        return parsed.message.content

    async def list_models(self) -> List[str]:
        """Return installed model names sorted lexicographically, or ``[]`` on any failure."""
        try:
            async with self._client() as client:
                resp = await client.get(TAGS_PATH)
                resp.raise_for_status()
            parsed = TagsResponse.model_validate_json(resp.content)
        except (httpx.HTTPError, ValidationError) as exc:
            logger.warning("Could not list models: %s", exc)
            return []

        return sorted(parsed.names())
