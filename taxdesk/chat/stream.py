"""Stream reader -- POST /chat/stream and fold frames into a running answer.

The reader owns the network call, the read loop and the deadline. It
reports progress through ``on_delta`` with the *cumulative* buffer after
every delta, and returns exactly one Outcome:

- Streamed(text)        clean end, or an in-stream error, or a failure
                        after some content was already shown
- NoContent             clean end with nothing to show
- Failed(cause)         transport/HTTP failure or deadline before any content
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable

import httpx

from taxdesk.chat.errors import ChatError, DeadlineExceeded, FailureCause, HttpError, TransportError
from taxdesk.chat.frames import ContentDelta, Frame, FrameDecoder, RemoteError, Terminator

logger = logging.getLogger(__name__)

DeltaCallback = Callable[[str], Any]


@dataclass(frozen=True)
class Streamed:
    text: str
    remote_error: bool = False  # text came from an in-stream error frame
    complete: bool = True  # False when the stream broke after partial content


@dataclass(frozen=True)
class NoContent:
    pass


@dataclass(frozen=True)
class Failed:
    cause: FailureCause
    detail: str = ""


Outcome = Streamed | NoContent | Failed


class _Accumulator:
    """Running answer for one stream. Lives outside the deadline scope."""

    def __init__(self, on_delta: DeltaCallback) -> None:
        self.text = ""
        self.finished: Outcome | None = None
        self._on_delta = on_delta

    def apply(self, frames: list[Frame]) -> bool:
        """Fold frames in; True once the stream should stop."""
        for frame in frames:
            if isinstance(frame, ContentDelta):
                self.text += frame.text
                self._on_delta(self.text)
            elif isinstance(frame, RemoteError):
                self.finished = Streamed(frame.text, remote_error=True)
                return True
            elif isinstance(frame, Terminator):
                return True
        return False

    def result(self) -> Outcome:
        if self.finished is not None:
            return self.finished
        return Streamed(self.text) if self.text else NoContent()

    def failure(self, error: ChatError) -> Outcome:
        if self.text:
            logger.warning("Stream broke after %d chars, keeping partial answer: %s", len(self.text), error)
            return Streamed(self.text, complete=False)
        return Failed(error.cause, str(error))


class StreamReader:
    """Reads one streamed answer from the chat relay."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        url: str,
        timeout: float = 30.0,
    ) -> None:
        self._http = http
        self._url = url
        self._timeout = timeout

    async def read(
        self,
        message: str,
        history: list[dict[str, str]],
        on_delta: DeltaCallback,
    ) -> Outcome:
        acc = _Accumulator(on_delta)
        try:
            async with asyncio.timeout(self._timeout):
                await self._consume(message, history, acc)
        except TimeoutError:
            return acc.failure(DeadlineExceeded(f"no end of stream within {self._timeout:g}s"))
        except httpx.TimeoutException as e:
            return acc.failure(DeadlineExceeded(str(e) or type(e).__name__))
        except HttpError as e:
            return acc.failure(e)
        except httpx.HTTPError as e:
            return acc.failure(TransportError(str(e) or type(e).__name__))

        outcome = acc.result()
        logger.debug("Stream finished: %s", type(outcome).__name__)
        return outcome

    async def _consume(self, message: str, history: list[dict[str, str]], acc: _Accumulator) -> None:
        payload = {"message": message, "history": history}
        decoder = FrameDecoder()

        async with self._http.stream("POST", self._url, json=payload) as response:
            if not response.is_success:
                body = await response.aread()
                raise HttpError(response.status_code, body.decode("utf-8", errors="replace"))

            async for chunk in response.aiter_bytes():
                if acc.apply(decoder.feed(chunk)):
                    return
            acc.apply(decoder.flush())
