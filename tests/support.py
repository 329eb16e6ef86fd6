"""Shared fakes for the test suite."""

from __future__ import annotations

import json
from collections.abc import AsyncIterable, AsyncIterator, Iterable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, TypeVar

T = TypeVar("T")


def delta_payload(content: str | None) -> dict[str, Any]:
    delta = {} if content is None else {"content": content}
    return {"choices": [{"index": 0, "delta": delta}]}


def sse_reply(*fragments: str | None, done: bool = True) -> list[bytes]:
    chunks = [f"data: {json.dumps(delta_payload(fragment))}\n\n".encode() for fragment in fragments]
    if done:
        chunks.append(b"data: [DONE]\n\n")
    return chunks


async def aiter_of(items: Iterable[T]) -> AsyncIterator[T]:
    for item in items:
        yield item


async def collect(items: AsyncIterable[T]) -> list[T]:
    return [item async for item in items]


@dataclass
class FakeTransport:
    replies: list[list[bytes] | Exception]
    model: str = "fake-model"
    calls: list[list[dict[str, str]]] = field(default_factory=list)
    closed: int = 0

    @asynccontextmanager
    async def stream(self, messages: list[dict[str, str]]) -> AsyncIterator[AsyncIterator[bytes]]:
        self.calls.append(messages)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        try:
            yield aiter_of(reply)
        finally:
            self.closed += 1
