"""Fallback requester -- one non-streaming POST /chat when streaming gave nothing."""

from __future__ import annotations

import asyncio
import logging

import httpx

from taxdesk.chat.errors import DeadlineExceeded, FallbackFormatError, HttpError, TransportError

logger = logging.getLogger(__name__)


class FallbackRequester:
    def __init__(
        self,
        http: httpx.AsyncClient,
        url: str,
        timeout: float = 15.0,
    ) -> None:
        self._http = http
        self._url = url
        self._timeout = timeout

    async def request(self, message: str, history: list[dict[str, str]]) -> str:
        """Return the answer text or raise a ChatError naming the cause."""
        payload = {"message": message, "history": history}
        try:
            async with asyncio.timeout(self._timeout):
                response = await self._http.post(self._url, json=payload)
        except TimeoutError as e:
            raise DeadlineExceeded(f"fallback exceeded {self._timeout:g}s") from e
        except httpx.TimeoutException as e:
            raise DeadlineExceeded(str(e) or type(e).__name__) from e
        except httpx.HTTPError as e:
            raise TransportError(str(e) or type(e).__name__) from e

        if not response.is_success:
            raise HttpError(response.status_code, response.text)

        try:
            data = response.json()
        except ValueError as e:
            raise FallbackFormatError(f"unparseable body: {e}") from e

        if not isinstance(data, dict) or data.get("success") is not True:
            raise FallbackFormatError("response lacks success flag")
        text = data.get("response")
        if not isinstance(text, str) or not text.strip():
            raise FallbackFormatError("response text missing")

        logger.info("Fallback answered (%d chars)", len(text))
        return text
