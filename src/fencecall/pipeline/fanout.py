"""Fan-out of one async producer to several independent consumers."""

from __future__ import annotations

import asyncio
import itertools
from collections import deque
from collections.abc import AsyncIterator
from typing import Generic, TypeVar

T = TypeVar("T")


class StreamBroadcaster(Generic[T]):
    """Share one async iterator between subscribers, each with its own cursor.

    The source is pulled lazily by whichever subscriber runs ahead. Items stay
    buffered until every subscriber has read them, so memory is bounded by the
    distance between the fastest and the slowest subscriber. Subscribe before
    iterating; a late subscriber starts at the oldest buffered item. When the
    last subscriber closes, the source is closed too.
    """

    def __init__(self, source: AsyncIterator[T]) -> None:
        self._source = source
        self._buffer: deque[T] = deque()
        self._offset = 0
        self._cursors: dict[int, int] = {}
        self._ids = itertools.count()
        self._lock = asyncio.Lock()
        self._exhausted = False
        self._error: BaseException | None = None
        self._closed = False

    @property
    def buffered(self) -> int:
        return len(self._buffer)

    def subscribe(self) -> AsyncIterator[T]:
        if self._closed:
            raise RuntimeError("broadcaster already closed")
        subscriber = next(self._ids)
        self._cursors[subscriber] = self._offset
        return self._iterate(subscriber)

    async def _iterate(self, subscriber: int) -> AsyncIterator[T]:
        try:
            while True:
                cursor = self._cursors[subscriber]
                if cursor >= self._offset + len(self._buffer) and not await self._pull(cursor):
                    if self._error is not None:
                        raise self._error
                    return
                yield self._buffer[cursor - self._offset]
                self._cursors[subscriber] = cursor + 1
                self._trim()
        finally:
            await self._unsubscribe(subscriber)

    async def _pull(self, cursor: int) -> bool:
        """Make the item at `cursor` available; False once the source is exhausted."""
        async with self._lock:
            # Another subscriber may have pulled while this one waited on the lock.
            if cursor < self._offset + len(self._buffer):
                return True
            if self._exhausted:
                return False
            try:
                item = await anext(self._source)
            except StopAsyncIteration:
                self._exhausted = True
                return False
            except Exception as exc:
                self._exhausted = True
                self._error = exc
                return False
            self._buffer.append(item)
            return True

    def _trim(self) -> None:
        if not self._cursors:
            self._buffer.clear()
            return
        lowest = min(self._cursors.values())
        while self._offset < lowest and self._buffer:
            self._buffer.popleft()
            self._offset += 1

    async def _unsubscribe(self, subscriber: int) -> None:
        self._cursors.pop(subscriber, None)
        self._trim()
        if self._cursors or self._closed:
            return
        self._closed = True
        if not self._exhausted:
            self._exhausted = True
            aclose = getattr(self._source, "aclose", None)
            if aclose is not None:
                await aclose()


def tee(source: AsyncIterator[T], count: int = 2) -> tuple[AsyncIterator[T], ...]:
    """Split `source` into `count` independent iterators."""
    broadcaster = StreamBroadcaster(source)
    return tuple(broadcaster.subscribe() for _ in range(count))
