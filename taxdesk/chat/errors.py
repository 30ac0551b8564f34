"""Failure taxonomy for the chat delivery pipeline.

Every error that can end a streaming or fallback attempt carries a
FailureCause, which is all the ErrorClassifier needs to pick a message.
Remote-reported errors are not exceptions: they arrive as RemoteError
frames and are shown verbatim.
"""

from __future__ import annotations

from enum import StrEnum


class FailureCause(StrEnum):
    NETWORK = "network"
    HTTP = "http"
    TIMEOUT = "timeout"
    MALFORMED = "malformed"


class ChatError(Exception):
    """Base class for pipeline failures."""

    cause: FailureCause = FailureCause.NETWORK

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.cause.value)


class ProtocolError(ChatError):
    """A frame payload could not be decoded. Always recovered by the decoder."""

    cause = FailureCause.MALFORMED


class TransportError(ChatError):
    """Connection refused, reset, DNS failure and the like."""

    cause = FailureCause.NETWORK


class HttpError(ChatError):
    """Server answered with a non-2xx status."""

    cause = FailureCause.HTTP

    def __init__(self, status_code: int, body: str = "") -> None:
        self.status_code = status_code
        super().__init__(f"HTTP {status_code}: {body[:200]}" if body else f"HTTP {status_code}")


class DeadlineExceeded(ChatError):
    """Client-side deadline expired before the attempt finished."""

    cause = FailureCause.TIMEOUT


class FallbackFormatError(ChatError):
    """Fallback answered 2xx but without {success: true, response: <text>}."""

    cause = FailureCause.MALFORMED
