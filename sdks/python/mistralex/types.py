"""
Type definitions for the mistralex Python SDK.

Provides the call outcome types returned by the request pipeline and Pydantic
models for the endpoint responses.
"""

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import ErrorKind, MistralError


# ============================================================================
# Call Outcomes
# ============================================================================


class Success(BaseModel):
    """A 2xx response, decoded (or raw bytes when requested)."""

    model_config = ConfigDict(frozen=True)

    status: int
    body: Any = None
    headers: Dict[str, str] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> Any:
        return self.body


class StreamCompletion(BaseModel):
    """A streaming call that finished without error.

    ``done`` is True when the terminal ``data: [DONE]`` line was seen, False
    when the server simply closed the stream.
    """

    model_config = ConfigDict(frozen=True)

    status: int = 200
    headers: Dict[str, str] = Field(default_factory=dict)
    chunks: int = 0
    done: bool = True

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> "StreamCompletion":
        return self


class Failure(BaseModel):
    """A classified failure."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    error: MistralError

    @property
    def ok(self) -> bool:
        return False

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind

    def unwrap(self) -> Any:
        raise self.error


Outcome = Union[Success, Failure]
StreamOutcome = Union[StreamCompletion, Failure]


# ============================================================================
# Chat / FIM Types
# ============================================================================


class FunctionCall(BaseModel):
    """Function name and JSON encoded arguments of a tool call."""

    name: Optional[str] = None
    arguments: Optional[Union[str, Dict[str, Any]]] = None


class ToolCall(BaseModel):
    """A tool call requested by the model."""

    id: Optional[str] = None
    type: Optional[str] = "function"
    index: Optional[int] = None
    function: FunctionCall


class ChatMessage(BaseModel):
    """A message in a chat conversation."""

    role: Literal["system", "user", "assistant", "tool"]
    content: Optional[Union[str, List[Dict[str, Any]]]] = None
    name: Optional[str] = None
    tool_calls: Optional[List[ToolCall]] = None
    tool_call_id: Optional[str] = None


class ChatCompletionChoice(BaseModel):
    """A choice in a chat completion response."""

    index: int
    message: ChatMessage
    finish_reason: Optional[str] = None


class ChatCompletionChunkDelta(BaseModel):
    """Delta content in a streaming chunk."""

    role: Optional[str] = None
    content: Optional[str] = None
    tool_calls: Optional[List[ToolCall]] = None


class ChatCompletionChunkChoice(BaseModel):
    """A choice in a streaming chat completion chunk."""

    index: int
    delta: ChatCompletionChunkDelta = Field(default_factory=ChatCompletionChunkDelta)
    finish_reason: Optional[str] = None


class Usage(BaseModel):
    """Token usage statistics."""

    prompt_tokens: int = 0
    completion_tokens: Optional[int] = None
    total_tokens: int = 0


class ChatCompletion(BaseModel):
    """Chat (or FIM) completion response."""

    id: str
    object: str = "chat.completion"
    created: Optional[int] = None
    model: str
    choices: List[ChatCompletionChoice]
    usage: Optional[Usage] = None


class ChatCompletionChunk(BaseModel):
    """Streaming chat completion chunk."""

    id: Optional[str] = None
    object: str = "chat.completion.chunk"
    created: Optional[int] = None
    model: Optional[str] = None
    choices: List[ChatCompletionChunkChoice]
    usage: Optional[Usage] = None


# ============================================================================
# Embedding / Model / Moderation Types
# ============================================================================


class Embedding(BaseModel):
    """An embedding vector."""

    object: str = "embedding"
    embedding: List[float]
    index: int


class EmbeddingResponse(BaseModel):
    """Embedding response."""

    id: Optional[str] = None
    object: str = "list"
    data: List[Embedding]
    model: str
    usage: Optional[Usage] = None


class ModelCapabilities(BaseModel):
    """What a model supports."""

    completion_chat: bool = False
    completion_fim: bool = False
    function_calling: bool = False
    fine_tuning: bool = False
    vision: bool = False


class Model(BaseModel):
    """Model information."""

    id: str
    object: str = "model"
    created: Optional[int] = None
    owned_by: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    max_context_length: Optional[int] = None
    capabilities: Optional[ModelCapabilities] = None


class ModelList(BaseModel):
    """List of models."""

    object: str = "list"
    data: List[Model]


class ModerationResult(BaseModel):
    """Moderation verdict for one input."""

    categories: Dict[str, bool] = Field(default_factory=dict)
    category_scores: Dict[str, float] = Field(default_factory=dict)


class ModerationResponse(BaseModel):
    """Moderation response."""

    id: str
    model: str
    results: List[ModerationResult]
