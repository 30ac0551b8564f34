"""Frame decoder for the /chat/stream wire format.

The stream is newline-delimited text. Lines starting with ``data: `` carry
a frame; ``data: [DONE]`` terminates the stream and is never JSON-parsed.
Every other frame payload is a JSON object with either a ``content`` string
(delta) or an ``error`` string (remote failure). Comment and keep-alive
lines are ignored.

Bytes arrive in arbitrary chunks: a chunk may end mid-line or in the middle
of a multi-byte UTF-8 sequence, so both the byte decoder and the line buffer
persist across feed() calls.
"""

from __future__ import annotations

import codecs
import json
import logging
from dataclasses import dataclass

from taxdesk.chat.errors import ProtocolError

logger = logging.getLogger(__name__)

FRAME_MARKER = "data: "
TERMINATOR = "[DONE]"


@dataclass(frozen=True)
class ContentDelta:
    """A piece of assistant text."""

    text: str


@dataclass(frozen=True)
class RemoteError:
    """Service-reported failure; its text is shown to the user as-is."""

    text: str


@dataclass(frozen=True)
class Unknown:
    """A frame we could not make sense of. Dropped by FrameDecoder."""

    payload: str = ""


@dataclass(frozen=True)
class Terminator:
    """Explicit end-of-stream sentinel."""


Frame = ContentDelta | RemoteError | Unknown | Terminator


def decode_line(line: str) -> Frame | None:
    """Decode one complete line. Returns None for non-frame lines."""
    if not line.startswith(FRAME_MARKER):
        return None
    payload = line[len(FRAME_MARKER):]
    if payload == TERMINATOR:
        return Terminator()
    try:
        return _parse_payload(payload)
    except ProtocolError as e:
        logger.debug("Dropping malformed frame: %s", e)
        return Unknown(payload)


def _parse_payload(payload: str) -> Frame:
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise ProtocolError(f"invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ProtocolError(f"expected object, got {type(data).__name__}")

    # An error wins over content in the same payload: the stream is over.
    error = data.get("error")
    if isinstance(error, str) and error:
        return RemoteError(error)
    content = data.get("content")
    if isinstance(content, str) and content:
        return ContentDelta(content)
    return Unknown(payload)


class FrameDecoder:
    """Incremental bytes -> frames decoder.

    ``Unknown`` frames are filtered out here, so callers only ever see
    ContentDelta, RemoteError or Terminator.
    """

    def __init__(self) -> None:
        self._bytes = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> list[Frame]:
        """Consume a chunk and return the frames completed by it."""
        self._buffer += self._bytes.decode(chunk)
        *lines, self._buffer = self._buffer.split("\n")
        return self._decode_lines(lines)

    def flush(self) -> list[Frame]:
        """End of stream: decode whatever is left, including an unterminated line."""
        self._buffer += self._bytes.decode(b"", final=True)
        rest, self._buffer = self._buffer, ""
        return self._decode_lines([rest]) if rest else []

    def _decode_lines(self, lines: list[str]) -> list[Frame]:
        frames: list[Frame] = []
        for line in lines:
            frame = decode_line(line.rstrip("\r"))
            if frame is None or isinstance(frame, Unknown):
                continue
            frames.append(frame)
        return frames
