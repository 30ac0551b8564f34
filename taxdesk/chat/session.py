"""Chat session -- drives one submit-to-commit turn at a time.

The session is owned by whatever front end shows the chat window and is
passed around by reference; there is no module-level state. A turn runs:

1. Transcript gets the user message plus an empty pending reply
2. StreamReader streams into the pending reply via the Reconciler
3. NoContent / Failed -> FallbackRequester (one request, own deadline)
4. Fallback failure -> ErrorClassifier apology with contact details
5. Reconciler commits exactly once
"""

from __future__ import annotations

import logging

import httpx

from taxdesk.chat.classifier import ContactInfo, ErrorClassifier
from taxdesk.chat.errors import ChatError, FailureCause
from taxdesk.chat.fallback import FallbackRequester
from taxdesk.chat.reconciler import Reconciler
from taxdesk.chat.site import SiteSettings, fetch_site_settings
from taxdesk.chat.stream import Failed, NoContent, Outcome, StreamReader, Streamed
from taxdesk.chat.transcript import Message, TranscriptListener, TranscriptStore
from taxdesk.config import Settings

logger = logging.getLogger(__name__)

QUICK_QUESTIONS = [
    "GST Registration",
    "ITR Filing Cost",
    "Web Development",
    "Company Registration",
    "All Services",
]


class ChatSession:
    """One visitor's conversation with the assistant."""

    def __init__(
        self,
        stream_reader: StreamReader,
        fallback: FallbackRequester,
        site: SiteSettings | None = None,
        history_window: int = 8,
        http: httpx.AsyncClient | None = None,
        greet: bool = True,
    ) -> None:
        self.site = site or SiteSettings()
        self.store = TranscriptStore(self.site.company_name, greet=greet)
        self.classifier = ErrorClassifier(ContactInfo(phone=self.site.phone, email=self.site.email))
        self._reconciler = Reconciler(self.store)
        self._stream_reader = stream_reader
        self._fallback = fallback
        self._history_window = history_window
        self._http = http  # owned when built via open()
        self._busy = False

    @classmethod
    async def open(cls, settings: Settings, http: httpx.AsyncClient | None = None) -> ChatSession:
        """Build a session against the relay at settings.api_url.

        Fetches site settings first; if that fails the session still works
        with built-in defaults.
        """
        owned = http is None
        if http is None:
            http = httpx.AsyncClient(
                timeout=httpx.Timeout(connect=10, read=None, write=10, pool=10),
                limits=httpx.Limits(max_connections=5, max_keepalive_connections=2),
            )
        base = settings.chat_url
        site = await fetch_site_settings(http, f"{base}/settings", timeout=settings.settings_timeout)
        logger.info(
            "Chat session opened for %s (chatbot %s)",
            site.company_name,
            "enabled" if site.chatbot_enabled else "disabled",
        )
        return cls(
            stream_reader=StreamReader(http, f"{base}/chat/stream", timeout=settings.stream_timeout),
            fallback=FallbackRequester(http, f"{base}/chat", timeout=settings.fallback_timeout),
            site=site,
            history_window=settings.history_window,
            http=http if owned else None,
        )

    async def close(self) -> None:
        if self._http:
            await self._http.aclose()
            self._http = None

    @property
    def enabled(self) -> bool:
        return self.site.chatbot_enabled

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def messages(self) -> list[Message]:
        return self.store.messages

    def subscribe(self, listener: TranscriptListener) -> None:
        """Register a transcript listener (called with a snapshot on every change)."""
        self.store.subscribe(listener)

    def new_chat(self) -> None:
        """Clear the conversation back to the greeting.

        A turn still in flight keeps running, but its writes are discarded.
        """
        self.store.reset(self.site.company_name)
        logger.info("New chat started")

    async def ask_quick_question(self, index: int) -> Message | None:
        return await self.submit(QUICK_QUESTIONS[index])

    async def submit(self, text: str) -> Message | None:
        """Run one turn. Returns the committed reply, or None if rejected.

        Blank input, a disabled chatbot, or a turn already in flight all
        reject the submission without touching the transcript.
        """
        message = text.strip()
        if not message or not self.enabled:
            return None
        if self._busy:
            logger.debug("Submission rejected: turn in flight")
            return None

        self._busy = True
        history = self.store.history(self._history_window)
        turn_id = self.store.begin_turn(message)
        self._reconciler.start(turn_id)
        try:
            await self._run_turn(turn_id, message, history)
        except Exception:
            logger.exception("Turn %d failed unexpectedly", turn_id)
        finally:
            self._busy = False
            # Never leave a pending reply behind, even on cancellation
            if self._reconciler.is_open(turn_id):
                self._reconciler.commit(turn_id, self.classifier.classify(FailureCause.HTTP))

        return self.store.last if turn_id == self.store.current_turn else None

    async def _run_turn(self, turn_id: int, message: str, history: list[dict[str, str]]) -> None:
        outcome = await self._stream_reader.read(
            message,
            history,
            on_delta=lambda content: self._reconciler.apply_delta(turn_id, content),
        )
        if isinstance(outcome, Streamed):
            if outcome.remote_error:
                logger.warning("Turn %d: service reported error in stream: %s", turn_id, outcome.text)
            self._reconciler.commit(turn_id, outcome.text)
            return

        self._log_stream_outcome(turn_id, outcome)
        if not self._reconciler.await_fallback(turn_id):
            return

        try:
            answer = await self._fallback.request(message, history)
        except ChatError as e:
            logger.error("Turn %d: fallback failed (%s): %s", turn_id, e.cause, e)
            answer = self.classifier.classify(e.cause)
        self._reconciler.commit(turn_id, answer)

    @staticmethod
    def _log_stream_outcome(turn_id: int, outcome: Outcome) -> None:
        if isinstance(outcome, Failed):
            logger.warning("Turn %d: stream failed (%s), trying fallback: %s", turn_id, outcome.cause, outcome.detail)
        elif isinstance(outcome, NoContent):
            logger.warning("Turn %d: stream ended without content, trying fallback", turn_id)
