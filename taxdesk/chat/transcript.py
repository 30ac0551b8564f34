"""Transcript store -- the ordered conversation shown in the chat window.

Messages are frozen. The only mutable slot is the trailing assistant entry
of the current turn, and the store only swaps it out when asked by the
Reconciler (replace_pending / finalize). Listeners get a snapshot after
every mutation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Callable

logger = logging.getLogger(__name__)

TranscriptListener = Callable[[list["Message"]], None]

GREETING_TEMPLATE = (
    "Hello! \U0001f44b Welcome to {company}.\n\n"
    "I can help you with:\n"
    "- Tax Filing & ITR\n"
    "- GST Registration & Returns\n"
    "- Company Registration\n"
    "- Accounting Services\n\n"
    "How can I assist you today?"
)


class Role(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Message:
    """A single transcript entry."""

    role: Role
    content: str
    pending: bool = False

    def to_wire(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


class TranscriptStore:
    """Ordered conversation plus the id of the turn currently in flight."""

    def __init__(self, company_name: str, greet: bool = True) -> None:
        self._company_name = company_name
        self._greet = greet
        self._turn_id = 0
        self._listeners: list[TranscriptListener] = []
        self._messages: list[Message] = self._initial()

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    @property
    def current_turn(self) -> int:
        return self._turn_id

    @property
    def last(self) -> Message:
        return self._messages[-1]

    def subscribe(self, listener: TranscriptListener) -> None:
        self._listeners.append(listener)

    def history(self, window: int) -> list[dict[str, str]]:
        """Last ``window`` committed entries in wire form."""
        if window <= 0:
            return []
        committed = [m for m in self._messages if not m.pending]
        return [m.to_wire() for m in committed[-window:]]

    def begin_turn(self, text: str) -> int:
        """Append the user message and an empty pending reply; return the new turn id."""
        self._turn_id += 1
        self._messages.append(Message(Role.USER, text))
        self._messages.append(Message(Role.ASSISTANT, "", pending=True))
        self._notify()
        return self._turn_id

    def replace_pending(self, content: str) -> None:
        self._swap_pending(content, pending=True)

    def finalize(self, content: str) -> None:
        self._swap_pending(content, pending=False)

    def reset(self, company_name: str | None = None) -> None:
        """Start a new chat. Advancing the turn id orphans anything in flight."""
        if company_name:
            self._company_name = company_name
        self._turn_id += 1
        self._messages = self._initial()
        self._notify()

    def _swap_pending(self, content: str, pending: bool) -> None:
        last = self._messages[-1] if self._messages else None
        if last is None or last.role is not Role.ASSISTANT or not last.pending:
            raise RuntimeError("no pending assistant message to update")
        self._messages[-1] = replace(last, content=content, pending=pending)
        self._notify()

    def _initial(self) -> list[Message]:
        if not self._greet:
            return []
        return [Message(Role.ASSISTANT, GREETING_TEMPLATE.format(company=self._company_name))]

    def _notify(self) -> None:
        snapshot = self.messages
        for listener in self._listeners:
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Transcript listener %r failed", listener)
