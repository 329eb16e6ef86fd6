"""Delta payload decoding."""

from __future__ import annotations

import json
from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass, field
from typing import Any

from fencecall.errors import PayloadDecodeError

DONE_SENTINEL = "[DONE]"


@dataclass(frozen=True)
class DeltaChoice:
    """One choice record of a streamed completion chunk."""

    index: int
    content: str | None = None


@dataclass(frozen=True)
class DeltaMessage:
    """Parsed payload of one SSE data event."""

    choices: list[DeltaChoice] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def content(self) -> str:
        """Content fragment of the first choice, empty when absent."""
        if not self.choices:
            return ""
        return self.choices[0].content or ""

    @classmethod
    def from_payload(cls, payload: str) -> DeltaMessage:
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise PayloadDecodeError(payload, str(exc)) from exc
        if not isinstance(data, dict):
            raise PayloadDecodeError(payload, "expected a JSON object")

        choices: list[DeltaChoice] = []
        for position, choice in enumerate(data.get("choices") or []):
            if not isinstance(choice, dict):
                continue
            delta = choice.get("delta") or {}
            content = delta.get("content") if isinstance(delta, dict) else None
            choices.append(
                DeltaChoice(
                    index=choice.get("index", position),
                    content=content if isinstance(content, str) else None,
                )
            )
        return cls(choices=choices, raw=data)


async def close_on_sentinel(payloads: AsyncIterable[str], sentinel: str = DONE_SENTINEL) -> AsyncIterator[str]:
    """Pass payloads through until the sentinel, then stop reading."""
    async for payload in payloads:
        if payload == sentinel:
            return
        yield payload


async def decode_deltas(payloads: AsyncIterable[str]) -> AsyncIterator[DeltaMessage]:
    """Parse data payloads into delta messages, ending at `[DONE]`."""
    async for payload in close_on_sentinel(payloads):
        yield DeltaMessage.from_payload(payload)
