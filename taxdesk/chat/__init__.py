"""Chat module -- assistant chat delivery pipeline.

Public API:
    ChatSession       - One visitor's conversation; submit() runs a turn
    TranscriptStore   - Ordered messages + current turn id
    Message, Role     - Transcript entries

Pipeline parts:
    FrameDecoder, StreamReader, FallbackRequester, ErrorClassifier,
    Reconciler, SiteSettings
"""

from taxdesk.chat.classifier import ContactInfo, ErrorClassifier
from taxdesk.chat.errors import (
    ChatError,
    DeadlineExceeded,
    FailureCause,
    FallbackFormatError,
    HttpError,
    ProtocolError,
    TransportError,
)
from taxdesk.chat.fallback import FallbackRequester
from taxdesk.chat.frames import ContentDelta, FrameDecoder, RemoteError, Terminator, Unknown
from taxdesk.chat.reconciler import Reconciler, TurnState
from taxdesk.chat.session import QUICK_QUESTIONS, ChatSession
from taxdesk.chat.site import SiteFeatures, SiteSettings, fetch_site_settings
from taxdesk.chat.stream import Failed, NoContent, StreamReader, Streamed
from taxdesk.chat.transcript import Message, Role, TranscriptStore

__all__ = [
    "ChatSession",
    "QUICK_QUESTIONS",
    "TranscriptStore",
    "Message",
    "Role",
    "FrameDecoder",
    "ContentDelta",
    "RemoteError",
    "Terminator",
    "Unknown",
    "StreamReader",
    "Streamed",
    "NoContent",
    "Failed",
    "FallbackRequester",
    "ErrorClassifier",
    "ContactInfo",
    "Reconciler",
    "TurnState",
    "SiteSettings",
    "SiteFeatures",
    "fetch_site_settings",
    "ChatError",
    "DeadlineExceeded",
    "FailureCause",
    "FallbackFormatError",
    "HttpError",
    "ProtocolError",
    "TransportError",
]
