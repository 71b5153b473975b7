"""
mistralex - Python client for the Mistral AI API.

Wraps the REST API with a retrying request pipeline, typed errors and
Server-Sent Events streaming.
"""

__version__ = "0.1.0"

from .cancellation import CancellationToken
from .client import Mistral, build_url
from .config import ClientConfig
from .exceptions import (
    ErrorKind,
    MistralAPIError,
    MistralAuthenticationError,
    MistralCancelledError,
    MistralConfigurationError,
    MistralError,
    MistralNetworkError,
    MistralNotFoundError,
    MistralPermissionError,
    MistralRateLimitError,
    MistralServerError,
    MistralStreamError,
    MistralValidationError,
)
from .retry import RetryPolicy
from .stream import (
    accumulate_content,
    extract_content,
    extract_finish_reason,
    extract_tool_calls,
    iter_chunks,
    process_stream,
)
from .transport import HTTPXTransport, RawResponse, StreamingResponse, Transport, TransportError
from .types import (
    ChatCompletion,
    ChatCompletionChunk,
    ChatMessage,
    EmbeddingResponse,
    Failure,
    Model,
    ModelList,
    ModerationResponse,
    Outcome,
    StreamCompletion,
    Success,
)

__all__ = [
    # Version
    "__version__",
    # Main client
    "Mistral",
    "ClientConfig",
    "RetryPolicy",
    "CancellationToken",
    "build_url",
    # Transport
    "Transport",
    "HTTPXTransport",
    "RawResponse",
    "StreamingResponse",
    "TransportError",
    # Outcomes
    "Outcome",
    "Success",
    "Failure",
    "StreamCompletion",
    # Exceptions
    "ErrorKind",
    "MistralError",
    "MistralAPIError",
    "MistralAuthenticationError",
    "MistralPermissionError",
    "MistralNotFoundError",
    "MistralRateLimitError",
    "MistralServerError",
    "MistralValidationError",
    "MistralNetworkError",
    "MistralConfigurationError",
    "MistralStreamError",
    "MistralCancelledError",
    # Streaming
    "process_stream",
    "iter_chunks",
    "extract_content",
    "extract_tool_calls",
    "extract_finish_reason",
    "accumulate_content",
    # Types
    "ChatCompletion",
    "ChatCompletionChunk",
    "ChatMessage",
    "EmbeddingResponse",
    "Model",
    "ModelList",
    "ModerationResponse",
]
