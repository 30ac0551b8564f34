"""Shared fixtures: a scriptable chat relay behind httpx.MockTransport.

Handlers are async callables taking an httpx.Request and returning an
httpx.Response, so a test can script the stream and the fallback
independently (delays, hangs, transport errors, bad payloads).
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Awaitable, Callable

import httpx
import pytest

from taxdesk.chat import ChatSession, FallbackRequester, SiteSettings, StreamReader

Handler = Callable[[httpx.Request], Awaitable[httpx.Response]]

RELAY = "http://relay.test/api"


# ---------------------------------------------------------------------------
# Handler factories
# ---------------------------------------------------------------------------


def sse(*chunks: str | bytes, delay: float = 0.0, hang_after: bool = False, fail_after: bool = False) -> Handler:
    """200 streaming response emitting each chunk separately."""

    async def handler(request: httpx.Request) -> httpx.Response:
        async def body():
            for chunk in chunks:
                if delay:
                    await asyncio.sleep(delay)
                yield chunk.encode() if isinstance(chunk, str) else chunk
            if hang_after:
                await asyncio.sleep(3600)
            if fail_after:
                raise httpx.ReadError("connection reset")

        return httpx.Response(200, content=body(), headers={"content-type": "text/event-stream"})

    return handler


def json_reply(body: Any, status_code: int = 200, delay: float = 0.0) -> Handler:
    async def handler(request: httpx.Request) -> httpx.Response:
        if delay:
            await asyncio.sleep(delay)
        return httpx.Response(status_code, json=body)

    return handler


def status(status_code: int, text: str = "") -> Handler:
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, text=text)

    return handler


def hang() -> Handler:
    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(3600)
        return httpx.Response(200)

    return handler


def connect_error() -> Handler:
    async def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    return handler


# ---------------------------------------------------------------------------
# Relay stub
# ---------------------------------------------------------------------------


class RelayStub:
    """Routes /chat/stream, /chat and /settings to scripted handlers and records bodies."""

    def __init__(
        self,
        stream: Handler | None = None,
        fallback: Handler | None = None,
        settings: Handler | None = None,
    ) -> None:
        self.stream = stream or sse("data: [DONE]\n")
        self.fallback = fallback or json_reply({"success": True, "response": "Fallback answer"})
        self.settings = settings or status(404)
        self.stream_calls: list[dict] = []
        self.fallback_calls: list[dict] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.endswith("/chat/stream"):
            self.stream_calls.append(json.loads(request.content))
            return await self.stream(request)
        if path.endswith("/chat"):
            self.fallback_calls.append(json.loads(request.content))
            return await self.fallback(request)
        if path.endswith("/settings"):
            return await self.settings(request)
        return httpx.Response(404)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


def make_session(
    relay: RelayStub,
    stream_timeout: float = 2.0,
    fallback_timeout: float = 2.0,
    site: SiteSettings | None = None,
    greet: bool = True,
) -> ChatSession:
    http = relay.client()
    return ChatSession(
        StreamReader(http, f"{RELAY}/chat/stream", timeout=stream_timeout),
        FallbackRequester(http, f"{RELAY}/chat", timeout=fallback_timeout),
        site=site,
        greet=greet,
    )


@pytest.fixture
def relay() -> RelayStub:
    return RelayStub()
