"""Tests for the terminal chat client."""

import io
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from taxdesk.chat import Message, Role
from taxdesk.cli import TerminalRenderer, main, run

from tests.conftest import RelayStub, make_session, sse, status


def _pending(text: str) -> list[Message]:
    return [Message(Role.USER, "q"), Message(Role.ASSISTANT, text, pending=True)]


def _final(text: str) -> list[Message]:
    return [Message(Role.USER, "q"), Message(Role.ASSISTANT, text)]


class TestTerminalRenderer:
    def test_prints_only_new_suffix(self):
        out = io.StringIO()
        renderer = TerminalRenderer(out)
        renderer.begin()
        renderer(_pending(""))
        renderer(_pending("Hel"))
        renderer(_pending("Hello"))
        renderer(_final("Hello"))
        assert out.getvalue() == "assistant> Hello\n\n"

    def test_replacement_reprints_on_new_line(self):
        """Fallback text that doesn't extend the partial reply is shown whole."""
        out = io.StringIO()
        renderer = TerminalRenderer(out)
        renderer.begin()
        renderer(_pending("Par"))
        renderer(_final("Fallback answer"))
        assert out.getvalue() == "assistant> Par\nFallback answer\n\n"

    def test_ignores_committed_messages_outside_a_turn(self):
        out = io.StringIO()
        renderer = TerminalRenderer(out)
        renderer([Message(Role.ASSISTANT, "Greeting")])
        renderer([])
        assert out.getvalue() == ""

    def test_ignores_user_entries(self):
        out = io.StringIO()
        renderer = TerminalRenderer(out)
        renderer.begin()
        renderer([Message(Role.USER, "q")])
        assert out.getvalue() == "assistant> "


class TestRun:
    @pytest.mark.asyncio
    async def test_conversation_loop(self, capsys):
        relay = RelayStub(stream=sse('data: {"content":"Rs 999"}\n', "data: [DONE]\n"))
        session = make_session(relay)
        lines = iter(["", "GST cost?", "/quick 2", "/quick 9", "/new", "/quit", "never read"])

        await run(session, stdin_reader=lambda prompt: next(lines))

        printed = capsys.readouterr().out
        assert "Welcome to ReturnFilers" in printed
        assert "1) GST Registration" in printed
        assert "assistant> Rs 999" in printed
        assert "you> ITR Filing Cost" in printed
        assert "Usage: /quick 1-5" in printed
        assert [c["message"] for c in relay.stream_calls] == ["GST cost?", "ITR Filing Cost"]
        assert len(session.messages) == 1

    @pytest.mark.asyncio
    async def test_eof_ends_loop(self, capsys):
        relay = RelayStub(stream=status(500))
        session = make_session(relay)

        def reader(prompt):
            raise EOFError

        await run(session, stdin_reader=reader)
        assert relay.stream_calls == []


class TestMain:
    @pytest.mark.asyncio
    async def test_disabled_chatbot_exits_and_closes(self, capsys):
        session = MagicMock()
        session.enabled = False
        session.close = AsyncMock()

        with patch("taxdesk.cli.ChatSession.open", AsyncMock(return_value=session)):
            with pytest.raises(SystemExit) as exc:
                await main()

        assert exc.value.code == 1
        session.close.assert_awaited_once()
        assert "disabled" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_enabled_runs_loop(self):
        session = MagicMock()
        session.enabled = True
        session.close = AsyncMock()

        with (
            patch("taxdesk.cli.ChatSession.open", AsyncMock(return_value=session)),
            patch("taxdesk.cli.run", AsyncMock()) as run_mock,
        ):
            await main()

        run_mock.assert_awaited_once_with(session)
        session.close.assert_awaited_once()
