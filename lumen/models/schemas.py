"""Pydantic V2 value types for conversations and completion requests.

All models are frozen: a transformation (middleware, provider parsing)
builds a new instance with ``model_copy(update=...)`` instead of mutating.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------

class MessageRole(str, Enum):
    """Role of a message author."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    FUNCTION = "function"
    TOOL = "tool"


class Message(BaseModel):
    """A single conversation turn."""

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    role: MessageRole = Field(..., description="Role of the message author")
    content: str = Field(default="", description="Message text")
    name: Optional[str] = Field(
        default=None, description="Author name, required for function/tool messages"
    )
    tool_call_id: Optional[str] = Field(
        default=None, description="Id of the tool call a tool message answers"
    )
    created_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def _require_name_for_calls(self) -> "Message":
        if self.role in (MessageRole.FUNCTION, MessageRole.TOOL) and not self.name:
            raise ValueError(f"{self.role.value} messages require a name")
        return self

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=MessageRole.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=MessageRole.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "Message":
        return cls(role=MessageRole.ASSISTANT, content=content)

    @classmethod
    def function(cls, name: str, content: str) -> "Message":
        return cls(role=MessageRole.FUNCTION, content=content, name=name)

    @classmethod
    def tool(
        cls, name: str, content: str, tool_call_id: Optional[str] = None
    ) -> "Message":
        return cls(
            role=MessageRole.TOOL, content=content, name=name, tool_call_id=tool_call_id
        )


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------

class FunctionDefinition(BaseModel):
    """A function the model may call; ``parameters`` is a JSON schema."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    description: str = ""
    parameters: dict[str, Any] = Field(default_factory=dict)


class Tool(BaseModel):
    """A capability exposed to the model for function calling."""

    model_config = ConfigDict(frozen=True)

    type: Literal["function"] = "function"
    function: FunctionDefinition


class FunctionCall(BaseModel):
    """A function invocation requested by the model."""

    model_config = ConfigDict(frozen=True)

    name: str
    arguments: str = Field(default="", description="Arguments as a JSON string")


class ToolCall(BaseModel):
    """A tool call made by the model."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: Literal["function"] = "function"
    function: FunctionCall


# ---------------------------------------------------------------------------
# Request options
# ---------------------------------------------------------------------------

class ResponseFormat(str, Enum):
    """Requested output format."""

    JSON = "json"
    TEXT = "text"


class CompletionOptions(BaseModel):
    """Per-request generation settings."""

    model_config = ConfigDict(frozen=True)

    model: str = Field(..., description="Model to use")
    max_tokens: Optional[int] = Field(None, ge=1)
    temperature: Optional[float] = Field(None, ge=0, le=2)
    top_p: Optional[float] = Field(None, ge=0, le=1)
    stop_sequences: Optional[list[str]] = None
    tools: Optional[list[Tool]] = None
    response_format: Optional[ResponseFormat] = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class Usage(BaseModel):
    """Token usage information."""

    model_config = ConfigDict(frozen=True)

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class CompletionResponse(BaseModel):
    """Result of a one-shot completion."""

    model_config = ConfigDict(frozen=True)

    text: str
    message: Message
    tool_calls: Optional[list[ToolCall]] = None
    usage: Optional[Usage] = None

    @classmethod
    def from_chunk(cls, chunk: "CompletionChunk") -> "CompletionResponse":
        """Synthesize a response from a terminal stream chunk.

        The terminal chunk's message carries the accumulated content, so it
        supplies the text.
        """
        return cls(text=chunk.message.content, message=chunk.message, tool_calls=chunk.tool_calls)


class CompletionChunk(BaseModel):
    """One increment of a streaming completion.

    ``text`` carries this increment only.  Exactly one chunk per stream has
    ``is_complete`` set and nothing follows it.
    """

    model_config = ConfigDict(frozen=True)

    text: str = ""
    message: Message
    tool_calls: Optional[list[ToolCall]] = None
    is_complete: bool = False

    @classmethod
    def from_response(cls, response: CompletionResponse) -> "CompletionChunk":
        """Wrap a finished response as a single complete chunk."""
        return cls(
            text=response.text,
            message=response.message,
            tool_calls=response.tool_calls,
            is_complete=True,
        )
