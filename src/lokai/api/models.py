"""
Pydantic models for Lokai API requests and responses.
This module defines the request and response schemas used by the Lokai API.
"""

from typing import (
    List,
    Optional,
)

from pydantic import (
    BaseModel,
    Field,
)

from lokai.core.schema import Message


# ---------------------------------------------------------------------------
# Pydantic request / response schema
# ---------------------------------------------------------------------------
class AgentRequest(BaseModel):
    """Incoming user message plus the conversation so far."""

    message: str = Field(..., description="User message for Lokai")
    history: List[Message] = Field(default_factory=list, description="Earlier turns, oldest first")
    agent_mode: bool = Field(True, description="Execute tool calls found in replies")


class ModelsResponse(BaseModel):
    """Installed models and the active selection."""

    models: List[str]
    active: str


class ModelSelection(BaseModel):
    """Request to change the active model."""

    name: str = Field(..., min_length=1, description="Model name as listed by /models")


class ActiveModelResponse(BaseModel):
    """The active model after a change."""

    active: str


class ContextRequest(BaseModel):
    """Messages (and an optional completion) to estimate context usage for."""

    messages: List[Message] = Field(default_factory=list)
    completion: str = ""
    context_window: Optional[int] = Field(None, description="Defaults to the configured window")
