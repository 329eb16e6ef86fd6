"""Assembly of streamed delta content into one message."""

from __future__ import annotations

from collections.abc import AsyncIterable, AsyncIterator, Callable
from typing import Protocol

from fencecall.pipeline.deltas import DeltaMessage
from fencecall.pipeline.json_fields import JsonFieldStreamer


class MessageSink(Protocol):
    """Anything that accepts appended text for one message index."""

    def append_to_message(self, index: int, append: str) -> None: ...


class ContentAccumulator:
    """Append delta fragments to one in-flight message and keep the full text.

    Iterating `accumulate()` yields each non-empty fragment right after it was
    appended to the sink, for live rendering. Once the deltas are exhausted,
    `flush()` returns the complete text for structural scanning.
    """

    def __init__(
        self,
        sink: MessageSink,
        message_index: int,
        *,
        transform: Callable[[str], str] | None = None,
    ) -> None:
        self._sink = sink
        self._message_index = message_index
        self._transform = transform
        self._parts: list[str] = []

    @classmethod
    def for_json_agent(cls, sink: MessageSink, message_index: int) -> ContentAccumulator:
        streamer = JsonFieldStreamer()
        return cls(sink, message_index, transform=streamer.feed)

    @property
    def message_index(self) -> int:
        return self._message_index

    @property
    def text(self) -> str:
        return "".join(self._parts)

    def add(self, delta: DeltaMessage) -> str:
        """Record one delta; returns the fragment appended, possibly empty."""
        fragment = delta.content
        if fragment and self._transform is not None:
            fragment = self._transform(fragment)
        if not fragment:
            return ""
        self._parts.append(fragment)
        self._sink.append_to_message(self._message_index, fragment)
        return fragment

    async def accumulate(self, deltas: AsyncIterable[DeltaMessage]) -> AsyncIterator[str]:
        async for delta in deltas:
            fragment = self.add(delta)
            if fragment:
                yield fragment

    def flush(self) -> str | None:
        """Full text once the stream ended, or None when nothing arrived."""
        text = self.text
        return text or None
