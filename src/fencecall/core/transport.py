"""Streaming chat completion transport."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any, ClassVar, Protocol

import httpx
from loguru import logger

from fencecall.config import Settings
from fencecall.errors import TransportError


class CompletionTransport(Protocol):
    """Opens one streamed completion and exposes the raw response body."""

    model: str

    def stream(self, messages: list[dict[str, str]]) -> AbstractAsyncContextManager[AsyncIterator[bytes]]: ...


class HttpCompletionTransport:
    """OpenAI-compatible `/chat/completions` client streaming SSE bytes."""

    DEFAULT_HEADERS: ClassVar[dict[str, str]] = {"Accept": "text/event-stream", "X-Title": "fencecall"}

    def __init__(
        self,
        *,
        url: str,
        api_key: str,
        model: str,
        max_tokens: int,
        temperature: float,
        timeout_seconds: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._api_key = api_key
        self.model = model
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_seconds))

    @classmethod
    def from_settings(cls, settings: Settings, client: httpx.AsyncClient | None = None) -> HttpCompletionTransport:
        return cls(
            url=settings.completions_url,
            api_key=settings.resolved_api_key,
            model=settings.model,
            max_tokens=settings.max_tokens,
            temperature=settings.temperature,
            timeout_seconds=settings.request_timeout_seconds,
            client=client,
        )

    def _payload(self, messages: list[dict[str, str]]) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": messages,
            "max_tokens": self._max_tokens,
            "n": 1,
            "stop": None,
            "stream": True,
            "temperature": self._temperature,
        }

    @asynccontextmanager
    async def stream(self, messages: list[dict[str, str]]) -> AsyncIterator[AsyncIterator[bytes]]:
        headers = {**self.DEFAULT_HEADERS, "Authorization": f"Bearer {self._api_key}"}
        logger.info("transport.request model={} messages={}", self.model, len(messages))
        try:
            async with self._client.stream("POST", self._url, json=self._payload(messages), headers=headers) as response:
                if response.status_code >= 400:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    raise TransportError(f"completion request failed: status={response.status_code} {body[:500]}")
                yield response.aiter_bytes()
        except httpx.HTTPError as exc:
            raise TransportError(f"completion request failed: {exc!s}") from exc

    async def aclose(self) -> None:
        await self._client.aclose()
