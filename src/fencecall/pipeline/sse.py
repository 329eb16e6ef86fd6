"""Server-sent event framing."""

from __future__ import annotations

from collections.abc import AsyncIterable, AsyncIterator

DATA_PREFIX = b"data:"


def _payload_of(line: bytes) -> str | None:
    if line.endswith(b"\r"):
        line = line[:-1]
    if not line.startswith(DATA_PREFIX):
        return None
    payload = line[len(DATA_PREFIX) :]
    if payload.startswith(b" "):
        payload = payload[1:]
    return payload.decode("utf-8", errors="replace")


class SSEFrameDecoder:
    """Reassemble `data:` payloads from arbitrarily split byte chunks.

    Lines are only decoded once complete, so a chunk boundary may fall inside a
    line, a field name or a multi-byte character without affecting the output.
    """

    def __init__(self) -> None:
        self._buffer = b""

    def feed(self, chunk: bytes) -> list[str]:
        self._buffer += chunk
        *lines, self._buffer = self._buffer.split(b"\n")
        payloads: list[str] = []
        for line in lines:
            payload = _payload_of(line)
            if payload is not None:
                payloads.append(payload)
        return payloads

    def flush(self) -> list[str]:
        remaining, self._buffer = self._buffer, b""
        if not remaining:
            return []
        payload = _payload_of(remaining)
        return [] if payload is None else [payload]


async def decode_sse_frames(chunks: AsyncIterable[bytes]) -> AsyncIterator[str]:
    """Decode a byte stream into SSE data payload strings, in arrival order."""
    decoder = SSEFrameDecoder()
    async for chunk in chunks:
        for payload in decoder.feed(chunk):
            yield payload
    for payload in decoder.flush():
        yield payload
