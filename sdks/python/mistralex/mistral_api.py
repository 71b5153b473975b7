"""
Mistral API endpoint wrappers.

Thin, raising wrappers over the client's request pipeline for chat, FIM,
embeddings, models and moderations.
"""

from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional, Union

from .exceptions import MistralValidationError
from .types import (
    ChatCompletion,
    ChatCompletionChunk,
    EmbeddingResponse,
    Model,
    ModelList,
    ModerationResponse,
)

if TYPE_CHECKING:
    from .client import Mistral

DEFAULT_CHAT_MODEL = "mistral-large-latest"
DEFAULT_FIM_MODEL = "codestral-latest"
DEFAULT_EMBEDDING_MODEL = "mistral-embed"
DEFAULT_MODERATION_MODEL = "mistral-moderation-latest"


def _drop_none(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


class ChatCompletions:
    """Chat completions API."""

    def __init__(self, client: "Mistral") -> None:
        self.client = client

    def create(
        self,
        messages: List[Dict[str, Any]],
        model: str = DEFAULT_CHAT_MODEL,
        temperature: Optional[float] = None,
        top_p: Optional[float] = None,
        max_tokens: Optional[int] = None,
        stream: bool = False,
        stop: Optional[Union[str, List[str]]] = None,
        random_seed: Optional[int] = None,
        tools: Optional[List[Dict[str, Any]]] = None,
        tool_choice: Optional[Union[str, Dict[str, Any]]] = None,
        response_format: Optional[Dict[str, Any]] = None,
        safe_prompt: Optional[bool] = None,
        **kwargs: Any,
    ) -> Union[ChatCompletion, Iterator[ChatCompletionChunk]]:
        """
        Create a chat completion.

        Args:
            messages: List of messages in the conversation
            model: Model ID to use
            temperature: Sampling temperature
            top_p: Nucleus sampling parameter
            max_tokens: Maximum tokens to generate
            stream: Whether to stream responses
            stop: Stop sequences
            random_seed: Seed for deterministic sampling
            tools: Tool definitions available to the model
            tool_choice: How the model may pick tools
            response_format: e.g. ``{"type": "json_object"}``
            safe_prompt: Prepend the safety prompt
            **kwargs: Additional request fields

        Returns:
            ChatCompletion or Iterator[ChatCompletionChunk]

        Raises:
            MistralValidationError: If ``messages`` is empty
            MistralError: On request failure
        """
        if not messages:
            raise MistralValidationError(
                "Request must contain 'messages' field", field="messages", constraint="non-empty list"
            )

        request_data = _drop_none(
            {
                "model": model,
                "messages": messages,
                "temperature": temperature,
                "top_p": top_p,
                "max_tokens": max_tokens,
                "stream": stream,
                "stop": stop,
                "random_seed": random_seed,
                "tools": tools,
                "tool_choice": tool_choice,
                "response_format": response_format,
                "safe_prompt": safe_prompt,
            }
        )
        request_data |= kwargs

        if stream:
            return self._create_stream(request_data)
        return ChatCompletion(**self.client.request("POST", "/chat/completions", request_data))

    def _create_stream(self, request_data: Dict[str, Any]) -> Iterator[ChatCompletionChunk]:
        for chunk in self.client.stream("POST", "/chat/completions", request_data):
            yield ChatCompletionChunk(**chunk)


class Chat:
    """Chat API."""

    def __init__(self, client: "Mistral") -> None:
        self.completions = ChatCompletions(client)


class FIMCompletions:
    """Fill-in-the-middle completions API."""

    def __init__(self, client: "Mistral") -> None:
        self.client = client

    def create(
        self,
        prompt: str,
        suffix: Optional[str] = None,
        model: str = DEFAULT_FIM_MODEL,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        stream: bool = False,
        stop: Optional[Union[str, List[str]]] = None,
        **kwargs: Any,
    ) -> Union[ChatCompletion, Iterator[ChatCompletionChunk]]:
        """Create a code completion between ``prompt`` and ``suffix``."""
        request_data = _drop_none(
            {
                "model": model,
                "prompt": prompt,
                "suffix": suffix,
                "temperature": temperature,
                "max_tokens": max_tokens,
                "stream": stream,
                "stop": stop,
            }
        )
        request_data |= kwargs

        if stream:
            return self._create_stream(request_data)
        return ChatCompletion(**self.client.request("POST", "/fim/completions", request_data))

    def _create_stream(self, request_data: Dict[str, Any]) -> Iterator[ChatCompletionChunk]:
        for chunk in self.client.stream("POST", "/fim/completions", request_data):
            yield ChatCompletionChunk(**chunk)


class FIM:
    """FIM API."""

    def __init__(self, client: "Mistral") -> None:
        self.completions = FIMCompletions(client)


class Embeddings:
    """Embeddings API."""

    def __init__(self, client: "Mistral") -> None:
        self.client = client

    def create(
        self,
        input: Union[str, List[str]],
        model: str = DEFAULT_EMBEDDING_MODEL,
        **kwargs: Any,
    ) -> EmbeddingResponse:
        """
        Create embeddings.

        Args:
            input: Text or list of texts to embed
            model: Model ID to use
            **kwargs: Additional request fields

        Returns:
            EmbeddingResponse
        """
        request_data = {"model": model, "input": input} | kwargs
        return EmbeddingResponse(**self.client.request("POST", "/embeddings", request_data))


class Models:
    """Models API."""

    def __init__(self, client: "Mistral") -> None:
        self.client = client

    def list(self) -> ModelList:
        """List available models."""
        return ModelList(**self.client.request("GET", "/models"))

    def retrieve(self, model_id: str) -> Model:
        """Retrieve a specific model."""
        return Model(**self.client.request("GET", f"/models/{model_id}"))

    def delete(self, model_id: str) -> Dict[str, Any]:
        """Delete a fine-tuned model."""
        return self.client.request("DELETE", f"/models/{model_id}")


class Moderations:
    """Moderations API."""

    def __init__(self, client: "Mistral") -> None:
        self.client = client

    def create(
        self,
        input: Union[str, List[str]],
        model: str = DEFAULT_MODERATION_MODEL,
    ) -> ModerationResponse:
        """Classify text against the moderation categories."""
        request_data = {"model": model, "input": input}
        return ModerationResponse(**self.client.request("POST", "/moderations", request_data))


class MistralAPI:
    """
    Endpoint groups bound to one client.
    """

    def __init__(self, client: "Mistral") -> None:
        self.chat = Chat(client)
        self.fim = FIM(client)
        self.embeddings = Embeddings(client)
        self.models = Models(client)
        self.moderations = Moderations(client)
