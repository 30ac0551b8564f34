"""Reconciler -- sole writer of the in-flight assistant message.

Per turn:  STREAMING -> COMMITTED
           STREAMING -> AWAITING_FALLBACK -> COMMITTED

Every write names the turn it belongs to. Writes for a turn that is no
longer current (a new chat was started) or that has already committed are
dropped, which keeps commits exactly-once when stream and fallback
completions interleave. Single event loop only: a threaded port needs a
compare-and-commit in place of the turn check.
"""

from __future__ import annotations

import logging
from enum import StrEnum

from taxdesk.chat.transcript import TranscriptStore

logger = logging.getLogger(__name__)


class TurnState(StrEnum):
    STREAMING = "streaming"
    AWAITING_FALLBACK = "awaiting_fallback"
    COMMITTED = "committed"


class Reconciler:
    def __init__(self, store: TranscriptStore) -> None:
        self._store = store
        self._turn_id: int | None = None
        self._state = TurnState.COMMITTED

    @property
    def state(self) -> TurnState:
        return self._state

    def is_open(self, turn_id: int) -> bool:
        """True while ``turn_id`` is current and not yet committed."""
        return (
            turn_id == self._turn_id
            and turn_id == self._store.current_turn
            and self._state is not TurnState.COMMITTED
        )

    def start(self, turn_id: int) -> None:
        """Take ownership of the pending message created for ``turn_id``."""
        self._turn_id = turn_id
        self._state = TurnState.STREAMING

    def apply_delta(self, turn_id: int, content: str) -> bool:
        """Overwrite the pending content with the cumulative stream buffer."""
        if not self._accepts(turn_id, "delta"):
            return False
        if self._state is not TurnState.STREAMING:
            logger.debug("Turn %d: delta after stream phase ignored", turn_id)
            return False
        if not content:
            return False
        self._store.replace_pending(content)
        return True

    def await_fallback(self, turn_id: int) -> bool:
        if not self._accepts(turn_id, "fallback transition"):
            return False
        self._state = TurnState.AWAITING_FALLBACK
        return True

    def commit(self, turn_id: int, content: str) -> bool:
        """Finalize the turn. Returns False if the write was discarded."""
        if not self._accepts(turn_id, "commit"):
            return False
        if not content:
            raise ValueError("refusing to commit an empty assistant message")
        self._store.finalize(content)
        self._state = TurnState.COMMITTED
        logger.debug("Turn %d committed (%d chars)", turn_id, len(content))
        return True

    def _accepts(self, turn_id: int, what: str) -> bool:
        if turn_id != self._turn_id or turn_id != self._store.current_turn:
            logger.debug("Stale %s for turn %d discarded", what, turn_id)
            return False
        if self._state is TurnState.COMMITTED:
            logger.debug("Turn %d already committed, %s discarded", turn_id, what)
            return False
        return True
