"""
Shared fixtures: a fake transport with canned responses and a recording sleeper.
"""

import json
import random
from typing import Any, Dict, Iterable, List, NamedTuple, Optional

import pytest

from mistralex import Mistral
from mistralex.transport import RawResponse, StreamingResponse

API_KEY = "test-api-key-12345"
BASE_URL = "https://api.example.com"


class Call(NamedTuple):
    method: str
    url: str
    headers: Dict[str, str]
    body: Optional[bytes]
    timeout: float

    def json(self) -> Any:
        return json.loads(self.body)


class FakeStreamingResponse(StreamingResponse):
    """Streaming response that replays frames; an exception frame is raised."""

    def __init__(
        self,
        status: int = 200,
        frames: Iterable[Any] = (),
        body: bytes = b"",
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self.status = status
        self.headers = {k.lower(): v for k, v in (headers or {}).items()}
        self.frames = list(frames)
        self.body = body
        self.closed = False
        self.frames_read = 0

    def iter_frames(self):
        for frame in self.frames:
            if isinstance(frame, Exception):
                raise frame
            self.frames_read += 1
            yield frame

    def read(self) -> bytes:
        return self.body

    def close(self) -> None:
        self.closed = True


class FakeTransport:
    """
    Transport returning canned responses in order.

    The last canned item repeats once the others are used up. Exceptions are
    raised instead of returned.
    """

    def __init__(self, responses: Iterable[Any] = (), streams: Iterable[Any] = ()) -> None:
        self.responses = list(responses)
        self.streams = list(streams)
        self.calls: List[Call] = []
        self.stream_calls: List[Call] = []

    @staticmethod
    def _next(items: List[Any]) -> Any:
        item = items.pop(0) if len(items) > 1 else items[0]
        if isinstance(item, Exception):
            raise item
        return item

    def send(self, method, url, headers, body, timeout):
        self.calls.append(Call(method, url, dict(headers), body, timeout))
        return self._next(self.responses)

    def send_streaming(self, method, url, headers, body, timeout):
        self.stream_calls.append(Call(method, url, dict(headers), body, timeout))
        return self._next(self.streams)


def json_response(status: int, data: Any = None, headers: Optional[Dict[str, str]] = None) -> RawResponse:
    body = b"" if data is None else json.dumps(data).encode()
    return RawResponse(status, body, headers or {"content-type": "application/json"})


def sse(*lines: str) -> List[bytes]:
    """One frame per line, newline terminated."""
    return [f"{line}\n".encode() for line in lines]


def chunk_line(content: Optional[str] = None, index: int = 0, finish_reason: Optional[str] = None) -> str:
    delta = {} if content is None else {"content": content}
    choice = {"index": index, "delta": delta, "finish_reason": finish_reason}
    return "data: " + json.dumps({"id": "cmpl-1", "model": "mistral-small", "choices": [choice]})


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for var in (
        "MISTRAL_API_KEY",
        "MISTRAL_BASE_URL",
        "MISTRAL_TIMEOUT",
        "MISTRAL_MAX_RETRIES",
        "MISTRAL_RETRY_DELAY",
        "MISTRAL_USER_AGENT",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def make_client(sleeps):
    def factory(transport: FakeTransport, **kwargs: Any) -> Mistral:
        kwargs.setdefault("api_key", API_KEY)
        kwargs.setdefault("base_url", BASE_URL)
        return Mistral(transport=transport, sleep=sleeps.append, rng=random.Random(42), **kwargs)

    return factory
