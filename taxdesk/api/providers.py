"""LLM provider chain behind the chat relay.

Tries Groq first (fast), then each OpenRouter free model in order, over
the OpenAI-compatible chat/completions API with direct httpx calls.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from typing import Any

import httpx

from taxdesk.api.prompts import build_system_prompt
from taxdesk.config import Settings

logger = logging.getLogger(__name__)

# Keys copied verbatim from .env.example are not real keys
_PLACEHOLDER_KEYS = frozenset({"your_groq_api_key_here", "your_openrouter_api_key_here"})


class ProviderError(RuntimeError):
    """A provider (or the whole chain) produced no answer."""


def clean_response(text: str) -> str:
    """Collapse blank-line runs, drop markdown headers, trim."""
    if not text:
        return ""
    text = re.sub(r"\n{3,}", "\n\n", text)
    text = re.sub(r"^#{1,3}\s+", "", text, flags=re.MULTILINE)
    return text.strip()


@dataclass
class Provider:
    """One OpenAI-compatible endpoint plus the models to try on it."""

    name: str
    base_url: str
    api_key: str
    models: list[str]
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, Any] = field(default_factory=dict)

    @property
    def configured(self) -> bool:
        return bool(self.api_key) and self.api_key not in _PLACEHOLDER_KEYS


class ProviderChain:
    """Ordered providers with failover, shared by /chat and /chat/stream."""

    def __init__(self, settings: Settings, http: httpx.AsyncClient | None = None) -> None:
        self._settings = settings
        self._http = http
        self.providers = [
            Provider(
                name="Groq",
                base_url=settings.groq_base_url,
                api_key=settings.groq_api_key,
                models=[settings.groq_model],
                params={"top_p": 0.9, "frequency_penalty": 0.3, "presence_penalty": 0.3},
            ),
            Provider(
                name="OpenRouter",
                base_url=settings.openrouter_base_url,
                api_key=settings.openrouter_api_key,
                models=list(settings.openrouter_models),
                headers={"HTTP-Referer": settings.site_url, "X-Title": f"{settings.company_name} AI"},
            ),
        ]
        self._system_prompt = build_system_prompt(settings.company_name, settings.phone, settings.email)

    async def start(self) -> None:
        """Create the shared httpx client unless one was injected."""
        if self._http is None:
            timeout = self._settings.provider_timeout
            self._http = httpx.AsyncClient(
                timeout=httpx.Timeout(connect=10.0, read=timeout, write=10.0, pool=10.0),
                limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
            )
        configured = [p.name for p in self.providers if p.configured]
        if configured:
            logger.info("Providers configured: %s", ", ".join(configured))
        else:
            logger.warning("Neither GROQ_API_KEY nor OPENROUTER_API_KEY is set -- chat will answer 503")

    async def close(self) -> None:
        if self._http:
            await self._http.aclose()
            self._http = None

    @property
    def configured(self) -> list[Provider]:
        return [p for p in self.providers if p.configured]

    # ------------------------------------------------------------------
    # Non-streaming
    # ------------------------------------------------------------------

    async def complete(self, message: str, history: list[dict[str, Any]]) -> tuple[str, str]:
        """Return (cleaned answer, provider name) from the first provider that answers."""
        messages = self._build_messages(message, history)
        for provider in self.configured:
            for model in provider.models:
                try:
                    text = await self._call(provider, model, messages)
                except ProviderError as e:
                    logger.warning("%s model %s failed: %s", provider.name, model, str(e)[:100])
                    continue
                logger.info("Response via %s (%s)", provider.name, model)
                return clean_response(text), provider.name
        raise ProviderError("All providers failed")

    async def _call(self, provider: Provider, model: str, messages: list[dict[str, str]]) -> str:
        http = self._client()
        try:
            response = await http.post(
                f"{provider.base_url}/chat/completions",
                json=self._build_payload(provider, model, messages),
                headers=self._headers(provider),
            )
        except httpx.HTTPError as e:
            raise ProviderError(f"{type(e).__name__}: {e}") from e

        if response.status_code != 200:
            raise ProviderError(f"HTTP {response.status_code}: {_error_message(response)}")
        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ProviderError(f"Invalid {provider.name} response") from e
        if not content:
            raise ProviderError(f"Empty {provider.name} response")
        return content

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    async def stream(self, message: str, history: list[dict[str, Any]]) -> AsyncGenerator[str, None]:
        """Yield text deltas from the first provider that starts streaming.

        Failover only happens before the first delta; once text has been
        sent a failure propagates.
        """
        messages = self._build_messages(message, history)
        for provider in self.configured:
            for model in provider.models:
                started = False
                try:
                    async for delta in self._call_stream(provider, model, messages):
                        started = True
                        yield delta
                except ProviderError as e:
                    if started:
                        raise
                    logger.warning("%s model %s stream failed: %s", provider.name, model, str(e)[:100])
                    continue
                if started:
                    logger.info("Streamed via %s (%s)", provider.name, model)
                    return
        raise ProviderError("All providers failed")

    async def _call_stream(
        self,
        provider: Provider,
        model: str,
        messages: list[dict[str, str]],
    ) -> AsyncGenerator[str, None]:
        http = self._client()
        payload = self._build_payload(provider, model, messages, stream=True)
        try:
            async with http.stream(
                "POST",
                f"{provider.base_url}/chat/completions",
                json=payload,
                headers=self._headers(provider),
            ) as response:
                if response.status_code != 200:
                    body = await response.aread()
                    raise ProviderError(f"HTTP {response.status_code}: {body.decode(errors='replace')[:200]}")

                async for line in response.aiter_lines():
                    if not line.startswith("data: "):
                        continue
                    data = line[6:]
                    if data == "[DONE]":
                        return
                    delta = _parse_delta(data)
                    if delta:
                        yield delta
        except httpx.HTTPError as e:
            raise ProviderError(f"{type(e).__name__}: {e}") from e

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    async def test(self) -> dict[str, dict[str, Any]]:
        """Probe every provider with a tiny prompt (GET /chat/test)."""
        results: dict[str, dict[str, Any]] = {}
        for provider in self.providers:
            result: dict[str, Any] = {"configured": provider.configured, "working": False, "error": None}
            if provider.configured:
                prompt = f'Say "{provider.name} is working" in exactly 3 words.'
                messages = self._build_messages(prompt, [])
                for model in provider.models:
                    try:
                        result["response"] = await self._call(provider, model, messages)
                        result["working"] = True
                        result["error"] = None
                        break
                    except ProviderError as e:
                        result["error"] = str(e)
            results[provider.name.lower()] = result
        return results

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _client(self) -> httpx.AsyncClient:
        if not self._http:
            raise RuntimeError("httpx client not initialized -- call start() first")
        return self._http

    def _build_messages(self, message: str, history: list[dict[str, Any]]) -> list[dict[str, str]]:
        window = self._settings.provider_history_window
        recent = history[-window:] if window else []
        return [
            {"role": "system", "content": self._system_prompt},
            *(
                {"role": str(h.get("role", "user")), "content": str(h.get("content", ""))}
                for h in recent
                if isinstance(h, dict)
            ),
            {"role": "user", "content": message},
        ]

    def _build_payload(
        self,
        provider: Provider,
        model: str,
        messages: list[dict[str, str]],
        stream: bool = False,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "max_tokens": self._settings.max_tokens,
            "temperature": self._settings.temperature,
            **provider.params,
        }
        if stream:
            payload["stream"] = True
        return payload

    @staticmethod
    def _headers(provider: Provider) -> dict[str, str]:
        return {
            "authorization": f"Bearer {provider.api_key}",
            "content-type": "application/json",
            **provider.headers,
        }


def _parse_delta(data: str) -> str:
    """Pull choices[0].delta.content out of one OpenAI-style SSE payload."""
    try:
        chunk = json.loads(data)
        return chunk["choices"][0]["delta"].get("content") or ""
    except (ValueError, KeyError, IndexError, TypeError, AttributeError):
        return ""


def _error_message(response: httpx.Response) -> str:
    try:
        return str(response.json().get("error", {}).get("message", "unknown error"))[:200]
    except Exception:
        return response.text[:200]
