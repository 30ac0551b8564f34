"""REST API for the website assistant.

Endpoints:
  POST /chat         - Single-shot answer {success, response, provider}
  POST /chat/stream  - SSE stream of {"content": delta} frames, then [DONE]
  GET  /chat/test    - Check which providers are configured and working
  GET  /settings     - Public site settings consumed by the chat widget
  GET  /health       - Health check
"""

from __future__ import annotations

import json
import logging
from typing import Any

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response, StreamingResponse
from starlette.routing import Route

from taxdesk.api.providers import ProviderChain, ProviderError
from taxdesk.config import Settings

logger = logging.getLogger(__name__)


def create_app(
    providers: ProviderChain,
    settings: Settings,
) -> Starlette:
    """Create the Starlette ASGI app with all routes."""

    unavailable = (
        "Our AI assistant is temporarily unavailable. "
        f"Please call us at {settings.phone} for immediate assistance."
    )

    async def _read_chat_body(request: Request) -> tuple[str, list[dict[str, Any]]] | JSONResponse:
        try:
            body = await request.json()
        except Exception:
            return JSONResponse({"success": False, "message": "Invalid JSON body"}, status_code=400)
        if not isinstance(body, dict):
            return JSONResponse({"success": False, "message": "Invalid JSON body"}, status_code=400)

        message = body.get("message")
        if not isinstance(message, str) or not message.strip():
            return JSONResponse({"success": False, "message": "Message is required"}, status_code=400)

        history = body.get("history") or []
        if not isinstance(history, list):
            history = []
        return message, history

    async def chat(request: Request) -> JSONResponse:
        """POST /chat - Send a message, get a response."""
        parsed = await _read_chat_body(request)
        if isinstance(parsed, JSONResponse):
            return parsed
        message, history = parsed
        logger.info("Chat request: %s...", message[:50])

        try:
            response_text, provider = await providers.complete(message, history)
        except ProviderError as e:
            logger.warning("No provider answered: %s", e)
            return JSONResponse({"success": False, "message": unavailable}, status_code=503)
        except Exception as e:
            logger.error("Chat error: %s", e)
            return JSONResponse(
                {
                    "success": False,
                    "message": f"Something went wrong. Please try again or call us at {settings.phone}.",
                },
                status_code=500,
            )
        return JSONResponse({"success": True, "response": response_text, "provider": provider})

    async def chat_stream(request: Request) -> Response:
        """POST /chat/stream - SSE streaming chat."""
        parsed = await _read_chat_body(request)
        if isinstance(parsed, JSONResponse):
            return parsed
        message, history = parsed

        async def event_generator():
            sent = 0
            try:
                async for delta in providers.stream(message, history):
                    sent += 1
                    yield f"data: {json.dumps({'content': delta})}\n\n"
            except Exception as e:
                if sent:
                    # An error frame would replace the partial answer on the client
                    logger.warning("Stream broke after %d deltas, ending early: %s", sent, e)
                elif isinstance(e, ProviderError):
                    logger.warning("Stream had no provider: %s", e)
                    yield f"data: {json.dumps({'error': unavailable})}\n\n"
                else:
                    logger.error("Stream error: %s", e)
                    yield f"data: {json.dumps({'error': unavailable})}\n\n"
            yield "data: [DONE]\n\n"

        return StreamingResponse(
            event_generator(),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )

    async def chat_test(request: Request) -> JSONResponse:
        """GET /chat/test - Provider diagnostics."""
        results = await providers.test()
        any_working = any(r["working"] for r in results.values())
        return JSONResponse(
            {
                "success": any_working,
                "message": "✅ AI is ready!" if any_working else "❌ No AI provider working",
                "results": results,
            }
        )

    async def site_settings(request: Request) -> JSONResponse:
        """GET /settings - Public settings for the chat widget."""
        return JSONResponse(
            {
                "success": True,
                "data": {
                    "companyName": settings.company_name,
                    "phone": settings.phone,
                    "email": settings.email,
                    "features": {"enableChatbot": settings.enable_chatbot},
                },
            }
        )

    async def health(request: Request) -> JSONResponse:
        """GET /health - Liveness plus provider configuration."""
        return JSONResponse(
            {
                "status": "healthy",
                "providers": [p.name for p in providers.configured],
            }
        )

    routes = [
        Route("/chat", chat, methods=["POST"]),
        Route("/chat/stream", chat_stream, methods=["POST"]),
        Route("/chat/test", chat_test, methods=["GET"]),
        Route("/settings", site_settings, methods=["GET"]),
        Route("/health", health, methods=["GET"]),
    ]

    return Starlette(routes=routes)
