"""Models package."""

from lumen.models.schemas import (
    CompletionChunk,
    CompletionOptions,
    CompletionResponse,
    FunctionCall,
    FunctionDefinition,
    Message,
    MessageRole,
    ResponseFormat,
    Tool,
    ToolCall,
    Usage,
)

__all__ = [
    "CompletionChunk",
    "CompletionOptions",
    "CompletionResponse",
    "FunctionCall",
    "FunctionDefinition",
    "Message",
    "MessageRole",
    "ResponseFormat",
    "Tool",
    "ToolCall",
    "Usage",
]
