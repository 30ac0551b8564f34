"""Terminal chat client for the website assistant.

Opens a ChatSession against the relay and renders replies as they stream.

Usage:
    TAXDESK_API_URL=http://localhost:5000/api python -m taxdesk.cli

Commands:
    /new        start a new chat
    /quick N    ask quick question N (1-based, see list on start)
    /quit       exit
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import TextIO

from taxdesk.chat import QUICK_QUESTIONS, ChatSession, Message, Role
from taxdesk.config import Settings

logger = logging.getLogger(__name__)


class TerminalRenderer:
    """Prints the trailing assistant reply progressively.

    Deltas carry the full reply so far. When the new text extends what is
    already on screen only the suffix is printed; when it does not (the
    fallback or an apology replaced the partial stream) the reply is
    reprinted on a fresh line.
    """

    def __init__(self, out: TextIO | None = None) -> None:
        self._out = out or sys.stdout
        self._shown = ""
        self._open = False

    def __call__(self, messages: list[Message]) -> None:
        if not messages:
            return
        last = messages[-1]
        if last.role is not Role.ASSISTANT:
            return
        if not last.pending and not self._open:
            return  # greeting or a reset, printed by the caller

        if last.content.startswith(self._shown):
            self._out.write(last.content[len(self._shown):])
        else:
            self._out.write(f"\n{last.content}")
        self._shown = last.content
        self._open = last.pending

        if not last.pending:
            self._out.write("\n\n")
            self._shown = ""
        self._out.flush()

    def begin(self) -> None:
        self._out.write("assistant> ")
        self._out.flush()
        self._shown = ""
        self._open = True


async def run(session: ChatSession, stdin_reader=input) -> None:
    """Read-eval loop over a session until /quit or EOF."""
    renderer = TerminalRenderer()
    session.subscribe(renderer)

    print(session.messages[-1].content)
    print("\nQuick questions: " + ", ".join(f"{i}) {q}" for i, q in enumerate(QUICK_QUESTIONS, 1)))
    print()

    while True:
        try:
            line = (await asyncio.to_thread(stdin_reader, "you> ")).strip()
        except EOFError:
            break
        if not line:
            continue
        if line == "/quit":
            break
        if line == "/new":
            session.new_chat()
            print(session.messages[-1].content + "\n")
            continue
        if line.startswith("/quick"):
            try:
                index = int(line.split(maxsplit=1)[1]) - 1
            except (IndexError, ValueError):
                index = -1
            if not 0 <= index < len(QUICK_QUESTIONS):
                print(f"Usage: /quick 1-{len(QUICK_QUESTIONS)}")
                continue
            print(f"you> {QUICK_QUESTIONS[index]}")
            renderer.begin()
            await session.ask_quick_question(index)
            continue

        renderer.begin()
        await session.submit(line)


async def main() -> None:
    """Entry point."""
    settings = Settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    session = await ChatSession.open(settings)
    try:
        if not session.enabled:
            print("The assistant is currently disabled.", file=sys.stderr)
            sys.exit(1)
        await run(session)
    finally:
        await session.close()


def cli() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    cli()
