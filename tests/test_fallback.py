"""Tests for FallbackRequester (non-streaming POST /chat)."""

import httpx
import pytest

from taxdesk.chat.errors import (
    ChatError,
    DeadlineExceeded,
    FailureCause,
    FallbackFormatError,
    HttpError,
    TransportError,
)
from taxdesk.chat.fallback import FallbackRequester

from tests.conftest import RELAY, RelayStub, connect_error, hang, json_reply, status


def _requester(relay: RelayStub, timeout: float = 2.0) -> FallbackRequester:
    return FallbackRequester(relay.client(), f"{RELAY}/chat", timeout=timeout)


class TestFallbackRequester:
    @pytest.mark.asyncio
    async def test_success(self):
        relay = RelayStub(fallback=json_reply({"success": True, "response": "GST costs Rs 999"}))
        history = [{"role": "user", "content": "hi"}]
        answer = await _requester(relay).request("GST?", history)
        assert answer == "GST costs Rs 999"
        assert relay.fallback_calls == [{"message": "GST?", "history": history}]

    @pytest.mark.asyncio
    async def test_extra_fields_ignored(self):
        relay = RelayStub(fallback=json_reply({"success": True, "response": "ok", "provider": "Groq"}))
        assert await _requester(relay).request("x", []) == "ok"

    @pytest.mark.asyncio
    async def test_http_status_error(self):
        relay = RelayStub(fallback=status(503, "down"))
        with pytest.raises(HttpError) as exc:
            await _requester(relay).request("x", [])
        assert exc.value.status_code == 503
        assert exc.value.cause is FailureCause.HTTP

    @pytest.mark.asyncio
    async def test_connect_error(self):
        relay = RelayStub(fallback=connect_error())
        with pytest.raises(TransportError) as exc:
            await _requester(relay).request("x", [])
        assert exc.value.cause is FailureCause.NETWORK

    @pytest.mark.asyncio
    async def test_deadline(self):
        relay = RelayStub(fallback=hang())
        with pytest.raises(DeadlineExceeded) as exc:
            await _requester(relay, timeout=0.1).request("x", [])
        assert exc.value.cause is FailureCause.TIMEOUT

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"success": False, "message": "Message is required"},
            {"success": True},
            {"success": True, "response": ""},
            {"success": True, "response": "   "},
            {"success": True, "response": 42},
            {"success": "true", "response": "ok"},
            ["not", "an", "object"],
        ],
    )
    async def test_malformed_bodies(self, body):
        relay = RelayStub(fallback=json_reply(body))
        with pytest.raises(FallbackFormatError) as exc:
            await _requester(relay).request("x", [])
        assert exc.value.cause is FailureCause.MALFORMED

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>oops</html>")

        relay = RelayStub(fallback=handler)
        with pytest.raises(FallbackFormatError):
            await _requester(relay).request("x", [])

    @pytest.mark.asyncio
    async def test_all_failures_are_chat_errors(self):
        for handler in (status(500), connect_error(), json_reply({"success": False})):
            relay = RelayStub(fallback=handler)
            with pytest.raises(ChatError):
                await _requester(relay).request("x", [])
