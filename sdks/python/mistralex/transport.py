"""
Transport layer for the mistralex Python SDK.

The request pipeline only talks to a ``Transport``: something that sends one
HTTP request and returns status, headers and body, or a lazily read stream of
raw frames. ``HTTPXTransport`` is the network implementation; tests inject
their own.
"""

import logging
import socket
from typing import Any, Dict, Iterator, Mapping, Optional, Protocol

import httpx

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """A request that never produced an HTTP response.

    ``reason`` is a short tag: ``timeout``, ``econnrefused``, ``nxdomain``,
    ``closed`` or ``other``.
    """

    def __init__(self, reason: str, message: Optional[str] = None) -> None:
        super().__init__(message or reason)
        self.reason = reason
        self.message = message or reason


class RawResponse:
    """Status, headers and undecoded body of one HTTP response."""

    def __init__(self, status: int, body: bytes = b"", headers: Optional[Mapping[str, str]] = None) -> None:
        self.status = status
        self.body = body
        self.headers: Dict[str, str] = {k.lower(): v for k, v in (headers or {}).items()}

    def __repr__(self) -> str:
        return f"RawResponse(status={self.status}, body={len(self.body)} bytes)"


class StreamingResponse:
    """An open streaming response.

    ``iter_frames`` yields raw frames (bytes or text) in arrival order. It must be
    consumed at most once. ``close`` releases the underlying connection and is
    safe to call more than once.
    """

    status: int
    headers: Dict[str, str]

    def iter_frames(self) -> Iterator[Any]:
        raise NotImplementedError

    def read(self) -> bytes:
        raise NotImplementedError

    def close(self) -> None:
        pass

    def __enter__(self) -> "StreamingResponse":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


class Transport(Protocol):
    """What the request pipeline needs from a transport."""

    def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes],
        timeout: float,
    ) -> RawResponse:
        ...

    def send_streaming(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes],
        timeout: float,
    ) -> StreamingResponse:
        ...


def _connect_reason(exc: httpx.ConnectError) -> str:
    """Tell a DNS failure apart from a refused connection."""
    cause: Optional[BaseException] = exc
    while cause is not None:
        if isinstance(cause, socket.gaierror):
            return "nxdomain"
        cause = cause.__cause__ or cause.__context__
    text = str(exc).lower()
    if "name or service not known" in text or "nodename nor servname" in text or "getaddrinfo" in text:
        return "nxdomain"
    return "econnrefused"


def _translate(exc: httpx.HTTPError) -> TransportError:
    if isinstance(exc, httpx.TimeoutException):
        error = TransportError("timeout", f"Request timed out: {exc}")
    elif isinstance(exc, httpx.ConnectError):
        error = TransportError(_connect_reason(exc), f"Failed to connect: {exc}")
    elif isinstance(exc, (httpx.RemoteProtocolError, httpx.ReadError)):
        error = TransportError("closed", f"Connection closed: {exc}")
    else:
        error = TransportError("other", f"HTTP error: {exc}")
    logger.debug("Transport failure (%s): %s", error.reason, exc)
    return error


class HTTPXStreamingResponse(StreamingResponse):
    """``StreamingResponse`` backed by an open ``httpx.Response``."""

    def __init__(self, response: httpx.Response) -> None:
        self._response = response
        self.status = response.status_code
        self.headers = {k.lower(): v for k, v in response.headers.items()}

    def iter_frames(self) -> Iterator[bytes]:
        try:
            for frame in self._response.iter_bytes():
                yield frame
        except httpx.HTTPError as e:
            raise _translate(e) from e

    def read(self) -> bytes:
        try:
            return self._response.read()
        except httpx.HTTPError as e:
            raise _translate(e) from e

    def close(self) -> None:
        self._response.close()


class HTTPXTransport:
    """Transport backed by a single ``httpx.Client``."""

    def __init__(
        self,
        transport: Optional[httpx.BaseTransport] = None,
        follow_redirects: bool = True,
        **kwargs: Any,
    ) -> None:
        # retries and timeouts are owned by the request pipeline
        self.client = httpx.Client(
            transport=transport,
            follow_redirects=follow_redirects,
            **kwargs,
        )

    def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes],
        timeout: float,
    ) -> RawResponse:
        try:
            response = self.client.request(
                method,
                url,
                headers=dict(headers),
                content=body,
                timeout=timeout,
            )
        except httpx.HTTPError as e:
            raise _translate(e) from e

        return RawResponse(response.status_code, response.content, response.headers)

    def send_streaming(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes],
        timeout: float,
    ) -> StreamingResponse:
        request = self.client.build_request(
            method,
            url,
            headers=dict(headers),
            content=body,
            timeout=timeout,
        )
        try:
            response = self.client.send(request, stream=True)
        except httpx.HTTPError as e:
            raise _translate(e) from e

        return HTTPXStreamingResponse(response)

    def close(self) -> None:
        """Close the underlying client."""
        self.client.close()

    def __enter__(self) -> "HTTPXTransport":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
