"""
Fast heuristic token estimation and context-window usage snapshots.

The estimate assumes roughly 3.5 characters per token, which is a conservative figure for mixed
natural-language content.  It is used when the inference endpoint does not report usage, and it
is never meant to match a real tokenizer.
"""

import json
import math
from enum import IntEnum
from typing import (
    Any,
    Iterable,
    Mapping,
)

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
)

CHARS_PER_TOKEN = 3.5
MESSAGE_OVERHEAD_TOKENS = 4  # role marker + separators per message
FORMAT_OVERHEAD_TOKENS = 2  # once per message list


class ContextSize(IntEnum):
    """Common context-window sizes offered by local models."""

    TINY = 4096
    SMALL = 8192
    MEDIUM = 16384
    LARGE = 32768
    XL = 65536
    XXL = 131072

    @property
    def display_name(self) -> str:
        """Short label such as ``"8K"``."""
        return f"{self.value // 1024}K"


def estimate_tokens(text: str) -> int:
    """Return the estimated token count of *text* (0 for an empty string, else at least 1).

    Characters are counted as Unicode code points, so emoji and combining sequences count
    once per code point rather than once per visible glyph.
    """
    if not text:
        return 0
    return max(1, math.ceil(len(text) / CHARS_PER_TOKEN))


def _field(message: Any, key: str) -> str:
    if isinstance(message, Mapping):
        return str(message.get(key) or "")
    return str(getattr(message, key, "") or "")


def estimate_message_tokens(messages: Iterable[Any]) -> int:
    """
    Estimate the token count of a chat message list.

    Each message costs a fixed overhead plus its role and content; the list as a whole adds
    a small format overhead.  Accepts ``Message`` models or ``{"role", "content"}`` mappings.
    """
    total = 0
    for message in messages:
        total += MESSAGE_OVERHEAD_TOKENS
        total += estimate_tokens(_field(message, "content"))
        total += estimate_tokens(_field(message, "role"))
    return total + FORMAT_OVERHEAD_TOKENS


def usage_percent(tokens: int, window_size: int) -> float:
    """Fraction of *window_size* used by *tokens*, clamped to [0, 1]."""
    if window_size <= 0 or tokens <= 0:
        return 0.0
    return min(1.0, tokens / window_size)


class ContextInfo(BaseModel):
    """Snapshot of context-window usage for observability."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    prompt_tokens: int = Field(0, ge=0)
    completion_tokens: int = Field(0, ge=0)
    context_window_size: int = Field(..., alias="context_window")
    is_estimated: bool = True  # False when the counts came from the provider

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_tokens(self) -> int:
        """Prompt plus completion tokens."""
        return self.prompt_tokens + self.completion_tokens

    @computed_field  # type: ignore[prop-decorator]
    @property
    def usage_percent(self) -> float:
        """Fraction of the window in use, always within [0, 1]."""
        return usage_percent(self.total_tokens, self.context_window_size)

    @classmethod
    def estimate(
        cls,
        messages: Iterable[Any],
        completion: str = "",
        context_window_size: int = ContextSize.SMALL,
    ) -> "ContextInfo":
        """Build a heuristic snapshot for a prompt message list and a completion text."""
        return cls(
            prompt_tokens=estimate_message_tokens(messages),
            completion_tokens=estimate_tokens(completion),
            context_window_size=int(context_window_size),
            is_estimated=True,
        )

    def to_json(self) -> str:
        """Serialize with the external field names, keys sorted."""
        return json.dumps(self.model_dump(by_alias=True), sort_keys=True, separators=(",", ":"))
