"""
Server-Sent Events (SSE) support for the mistralex Python SDK.

Turns the raw frames of a streaming response into decoded chunks::

    data: {"choices": [{"index": 0, "delta": {"content": "Hi"}}]}
    data: [DONE]

Each ``data:`` payload is decoded as JSON, checked for the minimal chunk shape
and handed to the caller in arrival order. ``event:``, ``id:``, ``retry:``,
blank and unrecognised lines are skipped. ``data: [DONE]`` ends the stream.
"""

import json
import logging
import re
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, NamedTuple, Optional

from .cancellation import CancellationToken
from .exceptions import MistralError, MistralStreamError, MistralValidationError
from .types import Failure, StreamCompletion, StreamOutcome

logger = logging.getLogger(__name__)

Chunk = Dict[str, Any]
ChunkCallback = Callable[[Chunk], Any]

DATA_PREFIX = "data: "
DONE_LINE = "data: [DONE]"

_LINE_END = re.compile(rb"\r\n|\r|\n")


class SSEEvent(NamedTuple):
    """Result of parsing one line: ``chunk``, ``done`` or ``skip``."""

    kind: str
    chunk: Optional[Chunk] = None


DONE = SSEEvent("done")
SKIP = SSEEvent("skip")


def decode_line(line: bytes) -> str:
    """
    Decode one raw line as UTF-8.

    Raises:
        MistralValidationError: If the line is not valid UTF-8
    """
    try:
        return line.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MistralValidationError(
            f"Invalid UTF-8 in stream line: {e}", value=line, constraint="valid UTF-8"
        ) from e


class SSELineBuffer:
    """Splits arbitrarily sized frames into complete lines.

    Accepts bytes or text. Lines are split on the raw bytes, so a multibyte
    character cut across frames is reassembled before decoding. A ``\\r`` at
    the end of a frame is held back until the next frame shows whether it
    starts a ``\\r\\n`` pair.
    """

    def __init__(self) -> None:
        self._buffer = b""

    def split(self, data: Any) -> List[bytes]:
        """Add a frame and return the complete raw lines it finishes."""
        if isinstance(data, str):
            data = data.encode("utf-8", errors="surrogatepass")
        self._buffer += bytes(data)

        lines = []
        pos = 0
        for match in _LINE_END.finditer(self._buffer):
            if match.group() == b"\r" and match.end() == len(self._buffer):
                break
            lines.append(self._buffer[pos:match.start()])
            pos = match.end()
        self._buffer = self._buffer[pos:]
        return lines

    def remainder(self) -> List[bytes]:
        """Return the raw unterminated last line, if any."""
        rest = self._buffer.rstrip(b"\r\n")
        self._buffer = b""
        return [rest] if rest else []

    def feed(self, data: Any) -> List[str]:
        """
        Add a frame and return the decoded lines it finishes.

        Raises:
            MistralValidationError: If a finished line is not valid UTF-8
        """
        return [decode_line(line) for line in self.split(data)]

    def flush(self) -> List[str]:
        """Return whatever is left once the input is exhausted."""
        return [decode_line(line) for line in self.remainder()]


def validate_chunk(chunk: Any) -> None:
    """
    Check the minimal shape of a decoded chunk.

    Raises:
        MistralValidationError: Naming the offending field
    """
    if not isinstance(chunk, dict):
        raise MistralValidationError(
            "Stream chunk must be an object", value=chunk, constraint="must be an object"
        )
    if "choices" not in chunk:
        raise MistralValidationError(
            "Stream chunk missing 'choices' field", field="choices", constraint="required"
        )
    choices = chunk["choices"]
    if not isinstance(choices, list):
        raise MistralValidationError(
            "Stream chunk 'choices' must be a list",
            field="choices",
            value=choices,
            constraint="must be a list",
        )

    for choice in choices:
        if not isinstance(choice, dict):
            raise MistralValidationError(
                "All choices must be objects",
                field="choices",
                value=choice,
                constraint="items must be objects",
            )
        if "index" not in choice:
            raise MistralValidationError(
                "Choice missing 'index' field", field="index", constraint="required"
            )
        index = choice["index"]
        if not isinstance(index, int) or isinstance(index, bool):
            raise MistralValidationError(
                "Choice 'index' must be an integer",
                field="index",
                value=index,
                constraint="must be an integer",
            )
        if "delta" in choice and not isinstance(choice["delta"], dict):
            raise MistralValidationError(
                "Choice 'delta' must be an object",
                field="delta",
                value=choice["delta"],
                constraint="must be an object",
            )


def parse_line(line: str, validate: bool = True) -> SSEEvent:
    """
    Parse a single SSE line.

    Raises:
        MistralValidationError: If a ``data:`` payload is not valid JSON or
            fails the chunk shape check
    """
    if line == DONE_LINE:
        return DONE
    if line.startswith(DATA_PREFIX):
        payload = line[len(DATA_PREFIX):]
        try:
            chunk = json.loads(payload)
        except ValueError as e:
            raise MistralValidationError(
                f"Invalid JSON in stream chunk: {e}",
                value=payload,
                constraint="valid JSON",
            ) from e
        if validate:
            validate_chunk(chunk)
        return SSEEvent("chunk", chunk)
    # event:, id:, retry:, blank lines and anything else
    return SKIP


def _events(
    frames: Iterable[Any],
    validate: bool,
    cancel: Optional[CancellationToken],
) -> Iterator[SSEEvent]:
    buffer = SSELineBuffer()

    def handle(lines: List[bytes]) -> Iterator[SSEEvent]:
        for line in lines:
            if cancel is not None:
                cancel.raise_if_cancelled()
            event = parse_line(decode_line(line), validate)
            if event is not SKIP:
                yield event

    for frame in frames:
        yield from handle(buffer.split(frame))
    yield from handle(buffer.remainder())


def process_stream(
    frames: Iterable[Any],
    callback: Optional[ChunkCallback],
    validate: bool = True,
    cancel: Optional[CancellationToken] = None,
    status: int = 200,
    headers: Optional[Mapping[str, str]] = None,
) -> StreamOutcome:
    """
    Feed every chunk of a stream to ``callback``, in order.

    Stops at ``data: [DONE]``, at the first malformed ``data:`` line, when the
    callback raises or when ``cancel`` fires. Errors raised by ``frames``
    itself (transport failures) propagate to the caller.

    Args:
        frames: Raw frames (bytes or text) as they arrive
        callback: Called once per chunk; may be None
        validate: Check the minimal chunk shape
        cancel: Checked before each line is handled
        status: HTTP status reported in the completion
        headers: Response headers reported in the completion

    Returns:
        StreamCompletion, or Failure carrying the error that halted the stream
    """
    delivered = 0
    headers = dict(headers or {})
    try:
        for event in _events(frames, validate, cancel):
            if event.kind == "done":
                return StreamCompletion(status=status, headers=headers, chunks=delivered, done=True)
            if callback is not None:
                try:
                    callback(event.chunk)
                except Exception as e:
                    logger.error("Stream callback error: %s", e)
                    return Failure(error=MistralStreamError(cause=e))
            delivered += 1
    except MistralError as e:
        logger.error("Stream halted after %d chunks: %s", delivered, e)
        return Failure(error=e)

    return StreamCompletion(status=status, headers=headers, chunks=delivered, done=False)


def iter_chunks(
    frames: Iterable[Any],
    validate: bool = True,
    cancel: Optional[CancellationToken] = None,
) -> Iterator[Chunk]:
    """
    Lazily yield chunks from a stream.

    Iteration ends at ``data: [DONE]`` or when the frames run out. Validation
    and cancellation errors are raised at the point of pull.
    """
    for event in _events(frames, validate, cancel):
        if event.kind == "done":
            return
        yield event.chunk


def _choice(chunk: Any, choice_index: int) -> Optional[Dict[str, Any]]:
    if not isinstance(chunk, dict):
        return None
    choices = chunk.get("choices")
    if not isinstance(choices, list):
        return None
    try:
        choice = choices[choice_index]
    except IndexError:
        return None
    return choice if isinstance(choice, dict) else None


def _delta_field(chunk: Any, choice_index: int, field: str) -> Any:
    choice = _choice(chunk, choice_index)
    if choice is None:
        return None
    delta = choice.get("delta")
    if not isinstance(delta, dict):
        return None
    return delta.get(field)


def extract_content(chunk: Chunk, choice_index: int = 0) -> Optional[str]:
    """Content delta of a chunk, or None."""
    return _delta_field(chunk, choice_index, "content")


def extract_tool_calls(chunk: Chunk, choice_index: int = 0) -> Optional[List[Dict[str, Any]]]:
    """Tool call deltas of a chunk, or None."""
    return _delta_field(chunk, choice_index, "tool_calls")


def extract_finish_reason(chunk: Chunk, choice_index: int = 0) -> Optional[str]:
    """Finish reason of a chunk, or None."""
    choice = _choice(chunk, choice_index)
    return None if choice is None else choice.get("finish_reason")


def is_stream_complete(chunk: Chunk) -> bool:
    """True when the first choice carries a finish reason."""
    return extract_finish_reason(chunk, 0) is not None


def accumulate_content(chunks: Iterable[Chunk], choice_index: int = 0) -> str:
    """Concatenate the content deltas of ``chunks`` in order."""
    return "".join(
        content
        for content in (extract_content(chunk, choice_index) for chunk in chunks)
        if content is not None
    )
