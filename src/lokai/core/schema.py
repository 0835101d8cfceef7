"""
Schema definitions for orchestrator <-> transport <-> tool messages.

These data models serve as the contract between the inference endpoint, the agent loop, and
the tool executor.  We keep them separate from runtime logic so they can be imported anywhere
without side-effects.
"""

from typing import (
    Any,
    List,
    Literal,
    Optional,
)

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictStr,
    ValidationError,
)

from lokai.core.tokens import ContextInfo

Role = Literal["system", "user", "assistant"]


class Message(BaseModel):
    """One conversation turn.  Immutable once appended to a message list."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


class ToolCall(BaseModel):
    """A call that the model wants the agent to execute."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Tool name")
    args_json: str = Field("{}", description="Compact JSON object with the tool arguments")


class AgentStep(BaseModel):
    """Trace record of one executed tool call."""

    tool: str
    args: str = Field(..., description="JSON-encoded arguments")
    result: str
    duration_ms: int = Field(..., ge=0)


class AgentResponse(BaseModel):
    """Final output of one chat invocation."""

    text: str
    steps: List[AgentStep] = Field(default_factory=list)
    context: Optional[ContextInfo] = None


# ---------------------------------------------------------------------------
# Wire schema for the inference endpoint
# ---------------------------------------------------------------------------
class ChatOptions(BaseModel):
    """Sampling options sent with every chat request."""

    temperature: float = 0.7


class ChatRequest(BaseModel):
    """Body of ``POST /api/chat``."""

    model: str
    messages: List[Message]
    stream: bool = False
    options: ChatOptions = Field(default_factory=ChatOptions)


class ChatResponseMessage(BaseModel):
    """The ``message`` object of a chat response; other keys are ignored."""

    content: StrictStr


class ChatResponse(BaseModel):
    """Body of a successful ``POST /api/chat`` response."""

    message: ChatResponseMessage


class ModelTag(BaseModel):
    """One entry of the ``GET /api/tags`` listing."""

    name: StrictStr


class TagsResponse(BaseModel):
    """Body of a successful ``GET /api/tags`` response.

    Entries are kept raw so one malformed entry does not invalidate the listing.
    """

    models: List[Any]

    def names(self) -> List[str]:
        """Names of the entries that carry a string ``name``; others are skipped."""
        names = []
        for entry in self.models:
            try:
                names.append(ModelTag.model_validate(entry).name)
            except ValidationError:
                continue
        return names
