"""
Main client for the mistralex Python SDK.

``Mistral`` is the client handle: an immutable bundle of configuration, default
headers, retry policy and transport. Its request pipeline builds the URL and
headers, encodes the body, sends through the transport, retries transient
failures with exponential backoff and classifies the result.

``execute`` and ``execute_streaming`` never raise for a failed request; they
return a ``Success``/``StreamCompletion`` or a ``Failure`` carrying a typed
error. ``request`` and ``stream`` are the raising counterparts.
"""

import json
import logging
import math
import random
import time
from contextlib import closing
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple, TypeVar, Union
from urllib.parse import urlencode

from pydantic import BaseModel

from .cancellation import CancellationToken
from .config import ClientConfig
from .exceptions import (
    MistralCancelledError,
    MistralError,
    MistralNetworkError,
    MistralValidationError,
    from_response,
)
from .mistral_api import MistralAPI
from .retry import RetryPolicy
from .stream import ChunkCallback, iter_chunks, process_stream
from .transport import HTTPXTransport, RawResponse, StreamingResponse, Transport, TransportError
from .types import Failure, Outcome, StreamOutcome, Success

logger = logging.getLogger(__name__)

API_VERSION_PREFIX = "/v1"

# Backoff with a cancellation token sleeps in slices of this size
BACKOFF_SLICE_MS = 100

# Option keys that never end up in the query string
RESERVED_OPTIONS = frozenset(
    {
        "headers",
        "json",
        "base_url",
        "receive_timeout",
        "retry",
        "raw_response",
        "params",
        "query",
        "stream_callback",
        "form",
        "timeout",
        "cancel",
        "validate",
    }
)

Query = Union[Mapping[str, Any], List[Tuple[str, Any]]]
R = TypeVar("R", RawResponse, StreamingResponse)


def _query_value(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return [_query_value(v) for v in value]
    return value


def build_url(base_url: str, path: str, query: Optional[Query] = None) -> str:
    """
    Build the request URL.

    The ``/v1`` prefix is added unless ``path`` already starts with it.

        >>> build_url("https://api.example.com/", "/chat/completions")
        'https://api.example.com/v1/chat/completions'
        >>> build_url("https://api.example.com", "/models", {"page": 2})
        'https://api.example.com/v1/models?page=2'
    """
    base_url = base_url.rstrip("/")
    if path.startswith(API_VERSION_PREFIX):
        url = base_url + path
    else:
        url = base_url + API_VERSION_PREFIX + path

    if query:
        items = query.items() if isinstance(query, Mapping) else query
        pairs = [(k, _query_value(v)) for k, v in items if v is not None]
        if pairs:
            url = f"{url}?{urlencode(pairs, doseq=True)}"
    return url


def select_query(options: Mapping[str, Any]) -> Optional[Query]:
    """
    Pick the query parameters for a call.

    ``query`` wins over ``params``; without either, every option key outside
    ``RESERVED_OPTIONS`` is treated as a query parameter.
    """
    if options.get("query") is not None:
        return options["query"]
    if options.get("params") is not None:
        return options["params"]
    extra = {k: v for k, v in options.items() if k not in RESERVED_OPTIONS and v is not None}
    return extra or None


def build_headers(config: ClientConfig) -> Dict[str, str]:
    """Default headers sent with every request."""
    return {
        "authorization": f"Bearer {config.api_key}",
        "user-agent": config.user_agent,
        "content-type": "application/json",
    }


def merge_headers(defaults: Mapping[str, str], overrides: Optional[Mapping[str, Optional[str]]]) -> Dict[str, str]:
    """Overlay per-call headers on the defaults. A ``None`` value drops the header."""
    merged = {k.lower(): v for k, v in defaults.items()}
    for key, value in (overrides or {}).items():
        if value is None:
            merged.pop(key.lower(), None)
        else:
            merged[key.lower()] = value
    return merged


def encode_body(body: Any) -> Optional[bytes]:
    """
    Serialize a request body.

    Bytes and strings pass through, everything else is JSON encoded.

    Raises:
        MistralValidationError: If the body cannot be JSON encoded
    """
    if body is None:
        return None
    if isinstance(body, (bytes, bytearray)):
        return bytes(body)
    if isinstance(body, str):
        return body.encode("utf-8")
    if isinstance(body, BaseModel):
        body = body.model_dump(exclude_none=True)
    try:
        return json.dumps(body).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise MistralValidationError(
            f"Request body is not JSON serializable: {e}",
            field="body",
            constraint="JSON serializable",
        ) from e


def decode_body(status: int, body: bytes, raw_response: bool = False) -> Any:
    """
    Decode a successful response body.

    A 204 decodes to ``{}``; any other status needs a JSON body.

    Raises:
        MistralValidationError: If the body is not valid JSON
    """
    if raw_response:
        return body
    if status == 204:
        return {}
    try:
        return json.loads(body)
    except ValueError as e:
        raise MistralValidationError(
            f"Invalid JSON response: {e}", field="body", constraint="valid JSON"
        ) from e


class _PreparedRequest:
    """Everything one attempt needs; reused unchanged across retries."""

    __slots__ = ("method", "url", "headers", "body", "timeout", "cancel")

    def __init__(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        body: Optional[bytes],
        timeout: float,
        cancel: Optional[CancellationToken],
    ) -> None:
        self.method = method
        self.url = url
        self.headers = headers
        self.body = body
        self.timeout = timeout
        self.cancel = cancel

    def attempt_timeout(self) -> float:
        """Transport timeout for the next attempt, capped by the time left before the deadline."""
        remaining = self.cancel.remaining() if self.cancel is not None else None
        if remaining is None:
            return self.timeout
        return max(0.001, min(self.timeout, remaining))


def _is_success(status: int) -> bool:
    return 200 <= status < 300


def _network_error(error: TransportError) -> MistralNetworkError:
    return MistralNetworkError(error.message, reason=error.reason)


class Mistral:
    """
    Mistral API client.

    Example:
        >>> client = Mistral(api_key="...")
        >>> response = client.chat.completions.create(
        ...     model="mistral-small-latest",
        ...     messages=[{"role": "user", "content": "Hello!"}]
        ... )
        >>> print(response.choices[0].message.content)

    Attributes:
        chat: Chat completions API
        fim: Fill-in-the-middle completions API
        embeddings: Embeddings API
        models: Models API
        moderations: Moderations API
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[int] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[int] = None,
        user_agent: Optional[str] = None,
        *,
        config: Optional[ClientConfig] = None,
        transport: Optional[Transport] = None,
        sleep: Optional[Callable[[float], None]] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            api_key: API key (default: MISTRAL_API_KEY)
            base_url: API base URL (default: https://api.mistral.ai)
            timeout: Request timeout in milliseconds
            max_retries: Retries after the first attempt
            retry_delay: Base backoff delay in milliseconds
            user_agent: User agent string
            config: Ready-made config; the arguments above are then ignored
            transport: Transport to send requests through (default: httpx)
            sleep: Sleeper used between retries, takes seconds
            rng: Random source for backoff jitter

        Raises:
            MistralConfigurationError: If the configuration is invalid
        """
        self.config = config or ClientConfig.from_env(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
            retry_delay=retry_delay,
            user_agent=user_agent,
        )
        self._owns_transport = transport is None
        self.transport: Transport = transport if transport is not None else HTTPXTransport()
        self.retry_policy = RetryPolicy(
            max_retries=self.config.max_retries,
            base_delay_ms=self.config.retry_delay,
            rng=rng,
        )
        self.default_headers = build_headers(self.config)
        self._sleep = sleep or time.sleep

        api = MistralAPI(self)
        self.chat = api.chat
        self.fim = api.fim
        self.embeddings = api.embeddings
        self.models = api.models
        self.moderations = api.moderations

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _prepare(self, method: str, path: str, body: Any, options: Mapping[str, Any]) -> _PreparedRequest:
        cancel = options.get("cancel")
        timeout_ms = options.get("timeout") or self.config.timeout

        return _PreparedRequest(
            method=method.upper(),
            url=build_url(self.config.base_url, path, select_query(options)),
            headers=merge_headers(self.default_headers, options.get("headers")),
            body=encode_body(body),
            timeout=timeout_ms / 1000.0,
            cancel=cancel,
        )

    def _backoff(self, delay_ms: int, cancel: Optional[CancellationToken]) -> None:
        """Sleep before the next attempt; with a token, in slices checked between."""
        if cancel is None:
            self._sleep(delay_ms / 1000.0)
            return

        remaining = cancel.remaining()
        if remaining is not None:
            delay_ms = min(delay_ms, math.ceil(remaining * 1000))
        while delay_ms > 0:
            cancel.raise_if_cancelled()
            step = min(BACKOFF_SLICE_MS, delay_ms)
            self._sleep(step / 1000.0)
            delay_ms -= step
        cancel.raise_if_cancelled()

    def _with_retry(self, prepared: _PreparedRequest, attempt: Callable[[], R]) -> R:
        """Run ``attempt`` until it succeeds, fails for good or retries run out."""
        retries_left = self.retry_policy.max_retries
        while True:
            if prepared.cancel is not None:
                prepared.cancel.raise_if_cancelled()

            try:
                response = attempt()
            except TransportError as e:
                if retries_left <= 0:
                    raise
                cause = f"transport error ({e.reason})"
            else:
                if retries_left <= 0 or not self.retry_policy.should_retry_status(response.status):
                    return response
                cause = f"status {response.status}"
                if isinstance(response, StreamingResponse):
                    response.close()

            delay = self.retry_policy.delay_ms(retries_left)
            logger.debug(
                "Retrying %s %s in %dms after %s (%d retries left)",
                prepared.method,
                prepared.url,
                delay,
                cause,
                retries_left,
            )
            self._backoff(delay, prepared.cancel)
            retries_left -= 1

    def execute(self, method: str, path: str, body: Any = None, **options: Any) -> Outcome:
        """
        Send a request and return its outcome.

        Args:
            method: HTTP method
            path: API path, with or without the ``/v1`` prefix
            body: Request body (dict/list → JSON, bytes/str unchanged)
            **options: ``params``/``query``, ``headers``, ``raw_response``,
                ``timeout`` (ms), ``cancel``; other keys become query params

        Returns:
            Success with the decoded body, or Failure
        """
        try:
            prepared = self._prepare(method, path, body, options)
        except MistralError as e:
            return Failure(error=e)

        logger.debug("Making %s request to %s", prepared.method, prepared.url)

        def attempt() -> RawResponse:
            return self.transport.send(
                prepared.method, prepared.url, prepared.headers, prepared.body, prepared.attempt_timeout()
            )

        try:
            response = self._with_retry(prepared, attempt)
        except TransportError as e:
            error = _network_error(e)
            logger.error("Request error: %s", error)
            return Failure(error=error)
        except MistralCancelledError as e:
            return Failure(error=e)

        if not _is_success(response.status):
            error = from_response(response.status, response.body, response.headers)
            logger.warning("API request failed: %s", error)
            return Failure(error=error)

        try:
            decoded = decode_body(response.status, response.body, bool(options.get("raw_response")))
        except MistralValidationError as e:
            logger.warning("API response rejected: %s", e)
            return Failure(error=e)
        return Success(status=response.status, body=decoded, headers=response.headers)

    def _open_stream(self, method: str, path: str, body: Any, options: Mapping[str, Any]) -> Tuple[_PreparedRequest, StreamingResponse]:
        prepared = self._prepare(method, path, body, options)
        prepared.headers.setdefault("accept", "text/event-stream")
        logger.debug("Making streaming %s request to %s", prepared.method, prepared.url)

        def attempt() -> StreamingResponse:
            return self.transport.send_streaming(
                prepared.method, prepared.url, prepared.headers, prepared.body, prepared.attempt_timeout()
            )

        return prepared, self._with_retry(prepared, attempt)

    def execute_streaming(
        self,
        method: str,
        path: str,
        body: Any = None,
        callback: Optional[ChunkCallback] = None,
        **options: Any,
    ) -> StreamOutcome:
        """
        Send a streaming request and hand every chunk to ``callback``.

        Retries only cover opening the stream; once lines are being read a
        failure ends the call.

        Args:
            method: HTTP method
            path: API path
            body: Request body
            callback: Called with each decoded chunk, in arrival order
            **options: As for ``execute``, plus ``validate`` (default True)
                and ``stream_callback`` as an alternative to ``callback``

        Returns:
            StreamCompletion, or Failure
        """
        callback = callback or options.get("stream_callback")
        try:
            prepared, response = self._open_stream(method, path, body, options)
        except TransportError as e:
            error = _network_error(e)
            logger.error("Streaming request error: %s", error)
            return Failure(error=error)
        except MistralError as e:
            return Failure(error=e)

        with closing(response):
            try:
                if not _is_success(response.status):
                    error = from_response(response.status, response.read(), response.headers)
                    logger.warning("Streaming request failed: %s", error)
                    return Failure(error=error)

                return process_stream(
                    response.iter_frames(),
                    callback,
                    validate=options.get("validate", True),
                    cancel=prepared.cancel,
                    status=response.status,
                    headers=response.headers,
                )
            except TransportError as e:
                error = _network_error(e)
                logger.error("Stream interrupted: %s", error)
                return Failure(error=error)

    def stream(self, method: str, path: str, body: Any = None, **options: Any) -> Iterator[Dict[str, Any]]:
        """
        Send a streaming request and yield chunks as they arrive.

        Nothing is sent until the first chunk is pulled. Errors are raised at
        the point of pull.

        Raises:
            MistralError: On any failure
        """
        try:
            prepared, response = self._open_stream(method, path, body, options)
        except TransportError as e:
            raise _network_error(e) from e

        with closing(response):
            try:
                if not _is_success(response.status):
                    raise from_response(response.status, response.read(), response.headers)
                yield from iter_chunks(
                    response.iter_frames(),
                    validate=options.get("validate", True),
                    cancel=prepared.cancel,
                )
            except TransportError as e:
                raise _network_error(e) from e

    def request(self, method: str, path: str, body: Any = None, **options: Any) -> Any:
        """
        Send a request and return the decoded body.

        Raises:
            MistralError: On any failure
        """
        return self.execute(method, path, body, **options).unwrap()

    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the transport if this client created it."""
        if self._owns_transport:
            self.transport.close()

    def __enter__(self) -> "Mistral":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Mistral(base_url={self.config.base_url!r}, max_retries={self.config.max_retries})"
